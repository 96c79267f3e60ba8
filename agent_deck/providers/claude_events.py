"""Classifier for Claude Code ``--output-format stream-json`` output.

Each stdout line is one envelope keyed by ``type``:

- ``system``        init handshake (model, session id)
- ``stream_event``  raw Messages API stream events (``--include-partial-messages``):
  ``content_block_start`` / ``content_block_delta`` / ``content_block_stop``,
  ``message_start`` / ``message_delta`` / ``message_stop``
- ``assistant``     a complete assistant message
- ``user``          tool results handed back to the model
- ``result``        end of the turn, with the final text and usage

Tool arguments arrive as ``input_json_delta`` fragments between a block
start and stop, so this classifier threads a ``ToolCallBuffer`` through its
calls: it receives the session's current buffer and hands back the next one.
"""

from __future__ import annotations

from agent_deck.chat.models import (
    ClassifiedEvent,
    ContextUsageSnapshot,
    InsertMode,
    ParsedUpdate,
    ToolCallBuffer,
)
from agent_deck.providers.payload import (
    JsonRecord,
    as_int,
    as_list,
    as_record,
    as_str,
    pick_int,
    pick_str,
    truncate,
)
from agent_deck.providers.tool_render import parse_tool_args, render_tool_call

DEFAULT_STATUS = "Thinking"

_TOOL_BLOCKS = {"tool_use", "server_tool_use"}
_THINKING_BLOCKS = {"thinking", "redacted_thinking"}


def status_for_stop_reason(stop_reason: str | None) -> str:
    if stop_reason == "tool_use":
        return "Using tool"
    if stop_reason == "end_turn":
        return "Finalizing response"
    return DEFAULT_STATUS


def close_tool_buffer(buffer: ToolCallBuffer) -> ParsedUpdate:
    """Turn a finished buffer into exactly one tool entry."""
    args = parse_tool_args(buffer.partial_args_json)
    return ParsedUpdate.tool(render_tool_call(buffer.tool_name, args))


def _index_matches(buffer: ToolCallBuffer, index: int | None) -> bool:
    return index is None or buffer.block_index is None or buffer.block_index == index


# ---------------------------------------------------------------------------
# stream_event
# ---------------------------------------------------------------------------


def _on_stream_event(event: JsonRecord, result: ClassifiedEvent) -> None:
    event_type = as_str(event.get("type"))
    index = as_int(event.get("index"))

    if event_type == "content_block_start":
        block = as_record(event.get("content_block")) or {}
        if as_str(block.get("type")) in _TOOL_BLOCKS:
            if result.tool_buffer is not None:
                # Previous block never saw its stop signal; keep the call visible.
                result.updates.append(close_tool_buffer(result.tool_buffer))
            result.tool_buffer = ToolCallBuffer(
                tool_name=pick_str(block, "name") or "tool",
                block_index=index,
            )
        result.set_status(DEFAULT_STATUS)
        return

    if event_type == "content_block_delta":
        delta = as_record(event.get("delta")) or {}
        delta_type = as_str(delta.get("type"))
        if delta_type == "input_json_delta":
            fragment = as_str(delta.get("partial_json"))
            if fragment and result.tool_buffer is not None:
                result.tool_buffer = result.tool_buffer.extend(fragment)
        elif delta_type == "text_delta":
            text = as_str(delta.get("text"))
            if text:
                result.updates.append(ParsedUpdate.text(text))
        elif delta_type == "thinking_delta":
            thinking = as_str(delta.get("thinking"))
            if thinking:
                result.updates.append(ParsedUpdate.reasoning(thinking))
        result.set_status(DEFAULT_STATUS)
        return

    if event_type == "content_block_stop":
        buffer = result.tool_buffer
        if buffer is not None and _index_matches(buffer, index):
            result.updates.append(close_tool_buffer(buffer))
            result.tool_buffer = None
        result.set_status(DEFAULT_STATUS)
        return

    if event_type == "message_delta":
        delta = as_record(event.get("delta")) or {}
        result.set_status(status_for_stop_reason(as_str(delta.get("stop_reason"))))
        return

    if event_type in ("message_start", "message_stop", "ping"):
        result.set_status(DEFAULT_STATUS)


# ---------------------------------------------------------------------------
# assistant (complete message)
# ---------------------------------------------------------------------------


def _on_assistant(data: JsonRecord, result: ClassifiedEvent) -> None:
    message = as_record(data.get("message")) or {}
    reasoning_parts: list[str] = []
    text_parts: list[str] = []
    # First-appearance order of the collapsed reasoning/text slots and tool calls.
    slots: list[str | ParsedUpdate] = []

    for raw_part in as_list(message.get("content")):
        part = as_record(raw_part)
        if part is None:
            continue
        part_type = as_str(part.get("type"))
        if part_type in _THINKING_BLOCKS:
            thinking = as_str(part.get("thinking"))
            if thinking:
                reasoning_parts.append(thinking)
                if "reasoning" not in slots:
                    slots.append("reasoning")
        elif part_type in _TOOL_BLOCKS:
            name = pick_str(part, "name") or "tool"
            slots.append(ParsedUpdate.tool(render_tool_call(name, as_record(part.get("input")) or {})))
        elif part_type == "text":
            text = as_str(part.get("text"))
            if text:
                text_parts.append(text)
                if "text" not in slots:
                    slots.append("text")

    for slot in slots:
        if slot == "reasoning":
            result.updates.append(
                ParsedUpdate.reasoning("\n\n".join(reasoning_parts), InsertMode.REPLACE_OR_CREATE, guarded=True)
            )
        elif slot == "text":
            result.updates.append(
                ParsedUpdate.text("".join(text_parts), InsertMode.REPLACE_OR_CREATE, guarded=True)
            )
        elif isinstance(slot, ParsedUpdate):
            result.updates.append(slot)

    result.set_status(status_for_stop_reason(as_str(message.get("stop_reason"))))


# ---------------------------------------------------------------------------
# result / system
# ---------------------------------------------------------------------------


def parse_result_usage(data: JsonRecord) -> ContextUsageSnapshot | None:
    usage = as_record(data.get("usage"))
    if usage is None:
        return None
    input_tokens = pick_int(usage, "input_tokens") or 0
    output_tokens = pick_int(usage, "output_tokens") or 0
    cache_read = pick_int(usage, "cache_read_input_tokens") or 0
    cache_creation = pick_int(usage, "cache_creation_input_tokens") or 0

    windows = [
        pick_int(as_record(model_usage), "contextWindow", "context_window")
        for model_usage in (as_record(data.get("modelUsage")) or {}).values()
    ]
    windows = [w for w in windows if w]

    total = input_tokens + cache_read + cache_creation + output_tokens
    return ContextUsageSnapshot.build(
        used_tokens=total,
        max_tokens=max(windows) if windows else None,
        input_tokens=input_tokens + cache_read + cache_creation,
        output_tokens=output_tokens,
        cached_input_tokens=cache_read,
        last_turn_tokens=total,
    )


def _on_result(data: JsonRecord, result: ClassifiedEvent) -> None:
    if result.tool_buffer is not None:
        result.updates.append(close_tool_buffer(result.tool_buffer))
        result.tool_buffer = None

    text = as_str(data.get("result"))
    subtype = as_str(data.get("subtype")) or ""
    if data.get("is_error") is True or subtype.startswith("error"):
        result.updates.append(ParsedUpdate.error(text or subtype or "Claude turn failed"))
    elif text:
        result.updates.append(ParsedUpdate.text(text, InsertMode.REPLACE_OR_CREATE, guarded=True))

    result.native_session_id = pick_str(data, "session_id")
    result.context_usage = parse_result_usage(data)
    result.end_turn()


def _on_system(data: JsonRecord, result: ClassifiedEvent) -> None:
    if as_str(data.get("subtype")) == "init":
        model = pick_str(data, "model")
        result.set_status(f"Initialized ({model})" if model else "Initialized")
        result.native_session_id = pick_str(data, "session_id")
        return
    result.set_status(DEFAULT_STATUS)


def classify_claude_event(
    data: JsonRecord,
    tool_buffer: ToolCallBuffer | None,
    status_limit: int,
) -> ClassifiedEvent:
    """Normalize one Claude stream-json envelope."""
    result = ClassifiedEvent(tool_buffer=tool_buffer)
    envelope = as_str(data.get("type"))

    if envelope == "stream_event":
        event = as_record(data.get("event"))
        if event is not None:
            _on_stream_event(event, result)
    elif envelope == "assistant":
        _on_assistant(data, result)
    elif envelope == "result":
        _on_result(data, result)
    elif envelope == "system":
        _on_system(data, result)
    elif envelope == "user":
        result.set_status(DEFAULT_STATUS)

    if result.live_status:
        result.live_status = truncate(result.live_status, status_limit)
    return result
