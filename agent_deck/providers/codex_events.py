"""Classifier for the Codex app-server notification stream.

Codex speaks JSON-RPC over stdio. Besides request responses, the server
pushes ``{"method": ..., "params": ...}`` notifications while a turn runs:

- ``item/agentMessage/delta``       streamed assistant text
- ``item/reasoning/*Delta``         streamed reasoning text
- ``item/started`` / ``item/completed``  lifecycle of agent messages, shell
  commands, file changes, MCP tool calls, reasoning and error items
- ``turn/started`` / ``turn/completed`` / ``error``
- ``thread/tokenUsage/updated``     context-window telemetry
- ``thread/started`` / ``thread/name/updated``  thread identity
"""

from __future__ import annotations

import shlex
from typing import Callable

from agent_deck.chat.models import ClassifiedEvent, ContextUsageSnapshot, InsertMode, ParsedUpdate
from agent_deck.providers.payload import (
    JsonRecord,
    as_list,
    as_number,
    as_record,
    as_str,
    error_text,
    normalize_content,
    pick,
    pick_int,
    pick_str,
    truncate,
)

DEFAULT_STATUS = "Thinking"

# Stderr lines codex prints on every resume; they never indicate a failure.
_IGNORED_STDERR = (
    "state db missing rollout path for thread",
)

_ADDED_TAGS = {"+", "add", "added", "addition", "insert", "inserted"}
_REMOVED_TAGS = {"-", "delete", "deleted", "deletion", "remove", "removed"}
_CONTEXT_TAGS = {" ", "context", "unchanged", "equal", "normal"}


def should_ignore_stderr(line: str) -> bool:
    normalized = line.strip().lower()
    return any(marker in normalized for marker in _IGNORED_STDERR)


# ---------------------------------------------------------------------------
# Item renderers
# ---------------------------------------------------------------------------


def _command_text(item: JsonRecord) -> str:
    command = pick(item, "command", "cmd")
    if isinstance(command, list):
        return shlex.join(str(part) for part in command) or "command"
    return as_str(command) or "command"


def render_command(item: JsonRecord) -> str:
    command = _command_text(item)
    exit_code = pick_int(item, "exitCode", "exit_code")
    duration_ms = as_number(pick(item, "durationMs", "duration_ms"))
    status = pick_str(item, "status")

    details: list[str] = []
    if exit_code is not None:
        details.append(f"exit {exit_code}")
    elif status:
        details.append(status)
    if duration_ms is not None:
        details.append(f"{round(duration_ms)}ms")

    if details:
        return f"[Command] {command} ({', '.join(details)})"
    return f"[Command] {command}"


def _diff_line(line: object) -> str:
    """Render one structured diff line with a ``+``/``-``/space prefix."""
    if isinstance(line, str):
        if line.startswith(("+", "-", " ", "@@", "\\")):
            return line
        return f" {line}"

    record = as_record(line) or {}
    text = pick_str(record, "text", "content", "line", "value") or ""

    sign = as_str(record.get("sign"))
    if sign in ("+", "-", " "):
        return f"{sign}{text}"

    tag = (pick_str(record, "type", "kind", "op", "tag") or "").strip().lower()
    if tag in _ADDED_TAGS:
        return f"+{text}"
    if tag in _REMOVED_TAGS:
        return f"-{text}"
    if tag in _CONTEXT_TAGS:
        return f" {text}"

    return _diff_line(text)


def _hunk_header(hunk: JsonRecord) -> str | None:
    header = pick_str(hunk, "header")
    if header:
        return header
    old_start = pick_int(hunk, "oldStart", "old_start")
    new_start = pick_int(hunk, "newStart", "new_start")
    if old_start is None or new_start is None:
        return None
    old_lines = pick_int(hunk, "oldLines", "old_lines") or 0
    new_lines = pick_int(hunk, "newLines", "new_lines") or 0
    return f"@@ -{old_start},{old_lines} +{new_start},{new_lines} @@"


def _render_hunks(change: JsonRecord) -> list[str]:
    rendered: list[str] = []
    for raw_hunk in as_list(change.get("hunks")):
        hunk = as_record(raw_hunk)
        if hunk is None:
            continue
        header = _hunk_header(hunk)
        if header:
            rendered.append(header)
        rendered.extend(_diff_line(line) for line in as_list(hunk.get("lines")))
    rendered.extend(_diff_line(line) for line in as_list(change.get("lines")))
    return rendered


def _change_kind(change: JsonRecord) -> str | None:
    kind = change.get("kind")
    if isinstance(kind, str):
        return kind
    return pick_str(as_record(kind), "type")


def render_file_change(item: JsonRecord) -> str:
    changes = [c for c in as_list(item.get("changes")) if isinstance(c, dict)]
    status = pick_str(item, "status")
    count = len(changes)
    header = f"[Files] {count} change{'' if count == 1 else 's'}"
    if status:
        header += f" ({status})"

    lines = [header]
    for change in changes:
        path = pick_str(change, "path", "filePath", "file_path", "file") or "(unknown file)"
        kind = _change_kind(change)
        label = f"{path} [{kind}]" if kind else path

        added = pick_int(change, "added", "additions", "linesAdded", "lines_added")
        removed = pick_int(change, "removed", "deletions", "linesRemoved", "lines_removed")
        if added is not None or removed is not None:
            lines.append(f"{label} (+{added or 0} -{removed or 0})")
            continue

        inline = pick_str(change, "diff", "unifiedDiff", "unified_diff", "patch", "preview")
        if inline:
            lines.append(label)
            lines.append(inline.rstrip("\n"))
            continue

        lines.append(label)
        lines.extend(_render_hunks(change))

    return "\n".join(lines)


def render_mcp_call(item: JsonRecord) -> str:
    server = pick_str(item, "server") or "mcp"
    tool = pick_str(item, "tool") or "tool"
    status = pick_str(item, "status") or "completed"
    return f"[MCP] {server}/{tool} ({status})"


def _reasoning_text(item: JsonRecord) -> str:
    parts = [normalize_content(part) for part in as_list(item.get("summary"))]
    parts = [p for p in parts if p]
    if not parts:
        parts = [normalize_content(part) for part in as_list(item.get("content"))]
        parts = [p for p in parts if p]
    if not parts:
        text = pick_str(item, "text")
        return text or ""
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------


def _item_type_from_method(method: str) -> str | None:
    segments = method.split("/")
    if len(segments) >= 3 and segments[0] == "item":
        return segments[1]
    return None


def derive_status(params: JsonRecord, method: str) -> str:
    """Status for a progress notification without explicit display text.

    Priority: explicit status text, then a phrase for the item type, then
    the default.
    """
    explicit = pick_str(params, "statusText", "status_text", "message")
    if explicit and explicit.strip():
        return explicit.strip()

    item = as_record(params.get("item")) or {}
    item_type = pick_str(item, "type") or _item_type_from_method(method)
    if item_type == "commandExecution":
        command = pick(item, "command", "cmd")
        if command:
            return f"Running {_command_text(item)}"
        return "Running command"
    if item_type == "fileChange":
        return "Editing files"
    if item_type == "mcpToolCall":
        server = pick_str(item, "server") or "mcp"
        tool = pick_str(item, "tool") or "tool"
        return f"Using {server}/{tool}"
    if item_type == "agentMessage":
        return "Writing response"
    return DEFAULT_STATUS


# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------


def _total_tokens(breakdown: JsonRecord) -> int:
    total = pick_int(breakdown, "totalTokens", "total_tokens")
    if total is not None:
        return total
    return (pick_int(breakdown, "inputTokens", "input_tokens") or 0) + (
        pick_int(breakdown, "outputTokens", "output_tokens") or 0
    )


def parse_token_usage(params: JsonRecord) -> ContextUsageSnapshot | None:
    usage = as_record(params.get("tokenUsage"))
    if usage is not None:
        total = as_record(usage.get("total"))
        last = as_record(usage.get("last"))
        window = pick_int(usage, "modelContextWindow") or pick_int(params, "modelContextWindow")
    else:
        msg = as_record(params.get("msg")) or params
        info = as_record(msg.get("info"))
        if info is None:
            return None
        total = as_record(info.get("total_token_usage"))
        last = as_record(info.get("last_token_usage"))
        window = pick_int(info, "model_context_window")

    if total is None and last is None:
        return None
    total = total or last or {}
    last = last or total

    return ContextUsageSnapshot.build(
        used_tokens=_total_tokens(last),
        max_tokens=window,
        input_tokens=pick_int(total, "inputTokens", "input_tokens") or 0,
        output_tokens=pick_int(total, "outputTokens", "output_tokens") or 0,
        cached_input_tokens=pick_int(total, "cachedInputTokens", "cached_input_tokens") or 0,
        reasoning_output_tokens=pick_int(total, "reasoningOutputTokens", "reasoning_output_tokens") or 0,
        last_turn_tokens=_total_tokens(last),
    )


# ---------------------------------------------------------------------------
# Notification handlers
# ---------------------------------------------------------------------------

_Handler = Callable[[JsonRecord, ClassifiedEvent], None]


def _on_agent_delta(params: JsonRecord, result: ClassifiedEvent) -> None:
    delta = as_str(params.get("delta"))
    if delta:
        result.updates.append(ParsedUpdate.text(delta))


def _on_reasoning_delta(params: JsonRecord, result: ClassifiedEvent) -> None:
    delta = as_str(params.get("delta"))
    if delta:
        result.updates.append(ParsedUpdate.reasoning(delta))


def _on_item_completed(params: JsonRecord, result: ClassifiedEvent) -> None:
    item = as_record(params.get("item"))
    if item is None:
        return
    item_type = as_str(item.get("type"))

    if item_type == "agentMessage":
        text = as_str(item.get("text"))
        if text:
            result.updates.append(ParsedUpdate.text(text, InsertMode.REPLACE_OR_CREATE))
    elif item_type == "reasoning":
        text = _reasoning_text(item)
        if text:
            result.updates.append(ParsedUpdate.reasoning(text, InsertMode.REPLACE_OR_CREATE))
    elif item_type == "commandExecution":
        result.updates.append(ParsedUpdate.tool(render_command(item)))
    elif item_type == "fileChange":
        result.updates.append(ParsedUpdate.tool(render_file_change(item)))
    elif item_type == "mcpToolCall":
        result.updates.append(ParsedUpdate.tool(render_mcp_call(item)))
    elif item_type == "error":
        result.updates.append(ParsedUpdate.error(error_text(item.get("message"), "Codex error")))


def _on_error(params: JsonRecord, result: ClassifiedEvent) -> None:
    result.updates.append(ParsedUpdate.error(error_text(params.get("error"), "Codex error")))
    if params.get("willRetry") is True:
        result.set_status("Reconnecting")
    else:
        result.end_turn()


def _on_turn_started(params: JsonRecord, result: ClassifiedEvent) -> None:
    result.set_status(DEFAULT_STATUS)


def _on_turn_completed(params: JsonRecord, result: ClassifiedEvent) -> None:
    turn = as_record(params.get("turn")) or {}
    if as_str(turn.get("status")) == "failed":
        result.updates.append(ParsedUpdate.error(error_text(turn.get("error"), "Turn failed")))
    result.end_turn()


def _on_token_usage(params: JsonRecord, result: ClassifiedEvent) -> None:
    result.context_usage = parse_token_usage(params)


def _on_thread_started(params: JsonRecord, result: ClassifiedEvent) -> None:
    thread = as_record(params.get("thread")) or {}
    result.native_session_id = pick_str(thread, "id") or pick_str(params, "threadId", "thread_id")


def _on_thread_renamed(params: JsonRecord, result: ClassifiedEvent) -> None:
    name = pick_str(params, "threadName", "thread_name", "name")
    if name and name.strip():
        result.session_name = name.strip()


_HANDLERS: dict[str, _Handler] = {
    "item/agentMessage/delta": _on_agent_delta,
    "item/reasoning/textDelta": _on_reasoning_delta,
    "item/reasoning/summaryTextDelta": _on_reasoning_delta,
    "item/completed": _on_item_completed,
    "error": _on_error,
    "turn/started": _on_turn_started,
    "turn/completed": _on_turn_completed,
    "thread/tokenUsage/updated": _on_token_usage,
    "codex/event/token_count": _on_token_usage,
    "thread/started": _on_thread_started,
    "thread/name/updated": _on_thread_renamed,
}

_PROGRESS_PREFIXES = ("item/", "turn/")


def classify_codex_event(data: JsonRecord, status_limit: int) -> ClassifiedEvent:
    """Normalize one Codex app-server message."""
    result = ClassifiedEvent()

    # JSON-RPC response carrying a request failure (e.g. turn/start rejected).
    rpc_error = as_record(data.get("error"))
    if rpc_error is not None:
        result.updates.append(ParsedUpdate.error(error_text(rpc_error, "Codex request failed")))
        result.end_turn()
        return result

    method = as_str(data.get("method"))
    if not method:
        return result
    params = as_record(data.get("params")) or {}

    handler = _HANDLERS.get(method)
    if handler is not None:
        handler(params, result)
    elif method.startswith(_PROGRESS_PREFIXES):
        result.set_status(derive_status(params, method))

    if result.status_set and result.live_status:
        result.live_status = truncate(result.live_status, status_limit)
    return result

