"""Dispatch raw provider payloads to the matching classifier."""

from __future__ import annotations

from loguru import logger

from agent_deck.chat.models import ClassifiedEvent, ToolCallBuffer
from agent_deck.providers.claude_events import classify_claude_event
from agent_deck.providers.codex_events import classify_codex_event
from agent_deck.providers.gemini_events import classify_gemini_event
from agent_deck.providers.payload import as_record
from agent_deck.providers.registry import ProviderTag, parse_provider_tag

STATUS_MAX_CHARS = 120


def classify(
    provider: str | ProviderTag,
    payload: object,
    tool_buffer: ToolCallBuffer | None = None,
    *,
    status_limit: int = STATUS_MAX_CHARS,
) -> ClassifiedEvent:
    """Normalize one raw payload from ``provider``.

    Never raises. Unknown providers, non-object payloads and unrecognized
    shapes all produce an empty event that carries ``tool_buffer`` through
    unchanged.
    """
    tag = parse_provider_tag(provider)
    data = as_record(payload)
    if tag is None or data is None:
        logger.debug(f"[classify] ignoring payload: provider={provider!r}, type={type(payload).__name__}")
        return ClassifiedEvent(tool_buffer=tool_buffer)

    try:
        if tag is ProviderTag.CODEX:
            result = classify_codex_event(data, status_limit)
            result.tool_buffer = tool_buffer
        elif tag is ProviderTag.CLAUDE:
            result = classify_claude_event(data, tool_buffer, status_limit)
        else:
            result = classify_gemini_event(data, status_limit)
            result.tool_buffer = tool_buffer
    except Exception:
        logger.opt(exception=True).debug(f"[classify] {tag.value} classifier failed; payload absorbed")
        return ClassifiedEvent(tool_buffer=tool_buffer)

    if result.is_empty:
        logger.debug(f"[classify] {tag.value}: unrecognized shape (keys={sorted(data)[:8]})")
    return result
