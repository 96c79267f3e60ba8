"""Tests for the Claude stream-json classifier and tool summaries."""

import pytest

from agent_deck.chat.models import InsertMode, MessageType, ParsedUpdate, ToolCallBuffer
from agent_deck.providers.claude_events import classify_claude_event, parse_result_usage, status_for_stop_reason
from agent_deck.providers.tool_render import parse_tool_args, render_tool_call, tool_kind

LIMIT = 120


def _stream(event: dict) -> dict:
    return {"type": "stream_event", "event": event}


def _tool_start(index: int, name: str) -> dict:
    return _stream(
        {
            "type": "content_block_start",
            "index": index,
            "content_block": {"type": "tool_use", "id": f"toolu_{index}", "name": name, "input": {}},
        }
    )


def _json_delta(index: int, fragment: str) -> dict:
    return _stream(
        {"type": "content_block_delta", "index": index, "delta": {"type": "input_json_delta", "partial_json": fragment}}
    )


def _block_stop(index: int) -> dict:
    return _stream({"type": "content_block_stop", "index": index})


class TestToolCallBuffer:
    def test_fragments_close_into_one_tool_entry(self):
        buffer = None
        seen: list[ParsedUpdate] = []
        for payload in (
            _tool_start(1, "Read"),
            _json_delta(1, '{"file_path":'),
            _json_delta(1, '"a.txt"}'),
            _block_stop(1),
        ):
            result = classify_claude_event(payload, buffer, LIMIT)
            buffer = result.tool_buffer
            seen.extend(result.updates)

        assert buffer is None
        assert len(seen) == 1
        assert seen[0].message_type == MessageType.TOOL
        assert seen[0].mode == InsertMode.NEW_ENTRY
        assert "a.txt" in seen[0].content

    def test_start_opens_buffer(self):
        result = classify_claude_event(_tool_start(2, "Bash"), None, LIMIT)

        assert result.updates == []
        assert result.tool_buffer == ToolCallBuffer(tool_name="Bash", block_index=2)

    def test_delta_extends_buffer(self):
        buffer = ToolCallBuffer(tool_name="Read", block_index=1, partial_args_json='{"path":')
        result = classify_claude_event(_json_delta(1, '"x"}'), buffer, LIMIT)

        assert result.tool_buffer.partial_args_json == '{"path":"x"}'

    def test_stop_for_other_block_keeps_buffer(self):
        buffer = ToolCallBuffer(tool_name="Read", block_index=1, partial_args_json="{}")
        result = classify_claude_event(_block_stop(0), buffer, LIMIT)

        assert result.tool_buffer is buffer
        assert result.updates == []

    def test_malformed_arguments_still_render(self):
        buffer = ToolCallBuffer(tool_name="Read", block_index=1, partial_args_json='{"file_path": "x')
        result = classify_claude_event(_block_stop(1), buffer, LIMIT)

        assert result.updates == [ParsedUpdate.tool("[Read] (unknown file)")]
        assert result.tool_buffer is None

    def test_new_tool_start_flushes_unclosed_buffer(self):
        buffer = ToolCallBuffer(tool_name="Bash", block_index=1, partial_args_json='{"command":"ls"}')
        result = classify_claude_event(_tool_start(2, "Read"), buffer, LIMIT)

        assert result.updates == [ParsedUpdate.tool("[Bash] ls")]
        assert result.tool_buffer.tool_name == "Read"

    def test_result_flushes_open_buffer(self):
        buffer = ToolCallBuffer(tool_name="Bash", block_index=1, partial_args_json='{"command":"pwd"}')
        result = classify_claude_event({"type": "result", "subtype": "success", "result": ""}, buffer, LIMIT)

        assert result.updates == [ParsedUpdate.tool("[Bash] pwd")]
        assert result.tool_buffer is None
        assert result.turn_ended


class TestStreamDeltas:
    def test_text_delta_appends(self):
        payload = _stream({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hi"}})
        result = classify_claude_event(payload, None, LIMIT)

        assert result.updates == [ParsedUpdate.text("Hi")]
        assert result.live_status == "Thinking"

    def test_thinking_delta_appends_reasoning(self):
        payload = _stream(
            {"type": "content_block_delta", "index": 0, "delta": {"type": "thinking_delta", "thinking": "hmm"}}
        )
        result = classify_claude_event(payload, None, LIMIT)

        assert result.updates == [ParsedUpdate.reasoning("hmm")]

    @pytest.mark.parametrize(
        ("stop_reason", "expected"),
        [("tool_use", "Using tool"), ("end_turn", "Finalizing response"), (None, "Thinking")],
    )
    def test_message_delta_status(self, stop_reason, expected):
        payload = _stream({"type": "message_delta", "delta": {"stop_reason": stop_reason}})

        assert classify_claude_event(payload, None, LIMIT).live_status == expected
        assert status_for_stop_reason(stop_reason) == expected


class TestAssistantMessage:
    def test_parts_collapse_in_first_appearance_order(self):
        payload = {
            "type": "assistant",
            "message": {
                "stop_reason": "tool_use",
                "content": [
                    {"type": "thinking", "thinking": "Need the file."},
                    {"type": "text", "text": "I'll read"},
                    {"type": "tool_use", "name": "Read", "input": {"file_path": "/x/a.py"}},
                    {"type": "text", "text": " it."},
                ],
            },
        }
        result = classify_claude_event(payload, None, LIMIT)

        assert result.updates == [
            ParsedUpdate.reasoning("Need the file.", InsertMode.REPLACE_OR_CREATE, guarded=True),
            ParsedUpdate.text("I'll read it.", InsertMode.REPLACE_OR_CREATE, guarded=True),
            ParsedUpdate.tool("[Read] /x/a.py"),
        ]
        assert result.live_status == "Using tool"

    def test_each_tool_is_its_own_entry(self):
        payload = {
            "type": "assistant",
            "message": {
                "content": [
                    {"type": "tool_use", "name": "Bash", "input": {"command": "ls"}},
                    {"type": "tool_use", "name": "Bash", "input": {"command": "pwd"}},
                ]
            },
        }
        updates = classify_claude_event(payload, None, LIMIT).updates

        assert [u.content for u in updates] == ["[Bash] ls", "[Bash] pwd"]


class TestResultAndSystem:
    def test_success_result_ends_turn(self):
        payload = {
            "type": "result",
            "subtype": "success",
            "is_error": False,
            "result": "Done",
            "session_id": "sess-1",
        }
        result = classify_claude_event(payload, None, LIMIT)

        assert result.turn_ended
        assert result.live_status is None
        assert result.native_session_id == "sess-1"
        assert result.updates == [ParsedUpdate.text("Done", InsertMode.REPLACE_OR_CREATE, guarded=True)]

    def test_error_result(self):
        payload = {"type": "result", "subtype": "error_max_turns", "is_error": True}
        result = classify_claude_event(payload, None, LIMIT)

        assert result.turn_ended
        assert result.updates == [ParsedUpdate.error("error_max_turns")]

    def test_result_usage(self):
        payload = {
            "type": "result",
            "usage": {
                "input_tokens": 10,
                "cache_read_input_tokens": 1000,
                "cache_creation_input_tokens": 90,
                "output_tokens": 400,
            },
            "modelUsage": {"claude-sonnet": {"contextWindow": 200000}},
        }
        usage = parse_result_usage(payload)

        assert usage.used_tokens == 1500
        assert usage.max_tokens == 200000
        assert usage.usage_percent == pytest.approx(0.75)
        assert usage.cached_input_tokens == 1000

    def test_system_init(self):
        payload = {"type": "system", "subtype": "init", "model": "claude-sonnet-4-5", "session_id": "sess-9"}
        result = classify_claude_event(payload, None, LIMIT)

        assert result.live_status == "Initialized (claude-sonnet-4-5)"
        assert result.native_session_id == "sess-9"

    def test_user_envelope_means_thinking(self):
        payload = {"type": "user", "message": {"content": [{"type": "tool_result", "content": "ok"}]}}

        assert classify_claude_event(payload, None, LIMIT).live_status == "Thinking"

    def test_unknown_envelope_passes_buffer_through(self):
        buffer = ToolCallBuffer(tool_name="Read")
        result = classify_claude_event({"type": "rate_limit_event"}, buffer, LIMIT)

        assert result.is_empty
        assert result.tool_buffer is buffer


class TestToolRender:
    def test_parse_tool_args_rejects_non_objects(self):
        assert parse_tool_args("[1, 2]") == {}
        assert parse_tool_args("") == {}
        assert parse_tool_args('{"a": 1}') == {"a": 1}

    def test_tool_kind_is_case_insensitive(self):
        assert tool_kind("MultiEdit") == "edit"
        assert tool_kind("mcp__github__search") is None

    def test_read_with_range(self):
        assert render_tool_call("Read", {"file_path": "a.py", "offset": 10, "limit": 20}) == "[Read] a.py (lines 10-29)"

    def test_edit_preview(self):
        rendered = render_tool_call("Edit", {"file_path": "a.py", "old_string": "x = 1", "new_string": "x = 2"})

        assert rendered == "[Edit] a.py\n- x = 1\n+ x = 2"

    def test_multi_edit_header(self):
        args = {
            "file_path": "a.py",
            "edits": [{"old_string": "a", "new_string": "b"}, {"old_string": "c", "new_string": "d"}],
        }

        assert render_tool_call("MultiEdit", args).splitlines()[0] == "[Edit] a.py (2 edits)"

    def test_long_edit_preview_is_capped(self):
        new = "\n".join(f"line {i}" for i in range(20))
        lines = render_tool_call("Edit", {"file_path": "a.py", "new_string": new}).splitlines()

        assert len(lines) == 1 + 12 + 1
        assert lines[-1] == "+ … (8 more lines)"

    def test_write(self):
        assert render_tool_call("Write", {"file_path": "f.txt", "content": "a\nb\n"}) == "[Write] f.txt (2 lines)"

    def test_bash_with_description(self):
        rendered = render_tool_call("Bash", {"command": "pytest -q", "description": "Run tests"})

        assert rendered == "[Bash] pytest -q (Run tests)"

    def test_search_tools(self):
        assert render_tool_call("Grep", {"pattern": "TODO", "path": "src"}) == "[Grep] TODO in src"
        assert render_tool_call("Glob", {"pattern": "**/*.py"}) == "[Glob] **/*.py in ."

    def test_fetch_tools(self):
        assert render_tool_call("WebFetch", {"url": "https://example.com"}) == "[Fetch] https://example.com"
        assert render_tool_call("WebSearch", {"query": "python"}) == "[Search web] python"

    def test_task(self):
        args = {"description": "Explore repo", "subagent_type": "Explore"}

        assert render_tool_call("Task", args) == "[Task] Explore repo (Explore)"

    def test_generic_tool(self):
        assert render_tool_call("mcp__x__y", {"a": 1}) == '[Tool] mcp__x__y {"a":1}'
        assert render_tool_call("", {}) == "[Tool] tool"

    def test_single_line_summaries_are_capped(self):
        rendered = render_tool_call("Bash", {"command": "echo " + "y" * 400})

        assert len(rendered) <= 200
        assert rendered.endswith("…")
