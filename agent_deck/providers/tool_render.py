"""One-line (or short multi-line) summaries of Claude tool invocations."""

from __future__ import annotations

import json
from typing import Any, Callable

from agent_deck.providers.payload import as_list, as_record, pick_int, pick_str, truncate

SUMMARY_MAX_CHARS = 200
EDIT_PREVIEW_LINES = 12

ToolArgs = dict[str, Any]

# Lower-cased tool name -> renderer kind.
TOOL_KINDS: dict[str, str] = {
    "read": "read",
    "notebookread": "read",
    "edit": "edit",
    "multiedit": "edit",
    "notebookedit": "edit",
    "write": "write",
    "bash": "shell",
    "bashoutput": "shell",
    "grep": "search",
    "glob": "search",
    "ls": "search",
    "webfetch": "fetch",
    "websearch": "fetch",
    "task": "task",
    "agent": "task",
}


def parse_tool_args(raw: str) -> ToolArgs:
    """Parse accumulated argument JSON; malformed or non-object input is ``{}``."""
    if not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


def _path(args: ToolArgs) -> str:
    return pick_str(args, "file_path", "path", "notebook_path", "filePath") or "(unknown file)"


def _preview(prefix: str, text: str) -> list[str]:
    lines = text.splitlines() or [""]
    shown = [f"{prefix} {line}" for line in lines[:EDIT_PREVIEW_LINES]]
    hidden = len(lines) - EDIT_PREVIEW_LINES
    if hidden > 0:
        shown.append(f"{prefix} … ({hidden} more lines)")
    return shown


def _render_read(name: str, args: ToolArgs) -> str:
    path = _path(args)
    offset = pick_int(args, "offset")
    limit = pick_int(args, "limit")
    if offset is not None and limit is not None:
        return f"[Read] {path} (lines {offset}-{offset + limit - 1})"
    if offset is not None:
        return f"[Read] {path} (from line {offset})"
    return f"[Read] {path}"


def _render_edit(name: str, args: ToolArgs) -> str:
    path = _path(args)
    edits = [e for e in as_list(args.get("edits")) if isinstance(e, dict)]
    if not edits:
        edits = [args]

    header = f"[Edit] {path}"
    if len(edits) > 1:
        header += f" ({len(edits)} edits)"
    elif args.get("replace_all") is True:
        header += " (replace all)"

    lines = [header]
    for edit in edits:
        old = pick_str(edit, "old_string", "old_source") or ""
        new = pick_str(edit, "new_string", "new_source") or ""
        if old:
            lines.extend(_preview("-", old))
        if new:
            lines.extend(_preview("+", new))
    return "\n".join(lines)


def _render_write(name: str, args: ToolArgs) -> str:
    content = pick_str(args, "content") or ""
    count = len(content.splitlines())
    return f"[Write] {_path(args)} ({count} line{'' if count == 1 else 's'})"


def _render_shell(name: str, args: ToolArgs) -> str:
    command = pick_str(args, "command", "cmd")
    if not command:
        shell_id = pick_str(args, "bash_id", "shell_id")
        return f"[Bash] output of {shell_id}" if shell_id else "[Bash]"
    first_line = command.strip().splitlines()[0] if command.strip() else command
    summary = f"[Bash] {first_line}"
    if first_line != command.strip():
        summary += " …"
    description = pick_str(args, "description")
    if description:
        summary += f" ({description})"
    return summary


def _render_search(name: str, args: ToolArgs) -> str:
    label = name or "Search"
    pattern = pick_str(args, "pattern", "query", "glob")
    where = pick_str(args, "path", "directory") or "."
    if pattern:
        return f"[{label}] {pattern} in {where}"
    return f"[{label}] {where}"


def _render_fetch(name: str, args: ToolArgs) -> str:
    url = pick_str(args, "url")
    if url:
        return f"[Fetch] {url}"
    query = pick_str(args, "query") or ""
    return f"[Search web] {query}".rstrip()


def _render_task(name: str, args: ToolArgs) -> str:
    description = pick_str(args, "description") or truncate(pick_str(args, "prompt") or "", 80) or "sub-task"
    agent = pick_str(args, "subagent_type", "agent")
    if agent:
        return f"[Task] {description} ({agent})"
    return f"[Task] {description}"


def _render_generic(name: str, args: ToolArgs) -> str:
    if not args:
        return f"[Tool] {name}"
    compact = json.dumps(args, ensure_ascii=False, separators=(",", ":"))
    return f"[Tool] {name} {compact}"


_RENDERERS: dict[str, Callable[[str, ToolArgs], str]] = {
    "read": _render_read,
    "edit": _render_edit,
    "write": _render_write,
    "shell": _render_shell,
    "search": _render_search,
    "fetch": _render_fetch,
    "task": _render_task,
}


def tool_kind(name: str) -> str | None:
    return TOOL_KINDS.get((name or "").strip().lower())


def render_tool_call(name: str, args: ToolArgs) -> str:
    """Summarize one tool invocation for the chat transcript.

    Edit-style tools render a multi-line before/after preview; everything
    else is a single line capped at ``SUMMARY_MAX_CHARS``.
    """
    name = (name or "").strip() or "tool"
    args = as_record(args) or {}
    kind = tool_kind(name)
    if kind == "edit":
        return _render_edit(name, args)
    renderer = _RENDERERS.get(kind or "", _render_generic)
    return truncate(renderer(name, args), SUMMARY_MAX_CHARS)
