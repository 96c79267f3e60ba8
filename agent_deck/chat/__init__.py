"""Canonical conversation model shared by classifiers and the engine."""

from agent_deck.chat.models import (
    ClassifiedEvent,
    ContextUsageSnapshot,
    InsertMode,
    Message,
    MessageRole,
    MessageType,
    ParsedUpdate,
    ToolCallBuffer,
)

__all__ = [
    "ClassifiedEvent",
    "ContextUsageSnapshot",
    "InsertMode",
    "Message",
    "MessageRole",
    "MessageType",
    "ParsedUpdate",
    "ToolCallBuffer",
]
