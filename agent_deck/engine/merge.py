"""Merge normalized updates into a session's message list.

Lists are treated as immutable values: a merge that changes nothing returns
the very same list object, anything else returns a new list. Only the last
message is ever rewritten; earlier entries are never touched or reordered.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from agent_deck.chat.models import InsertMode, Message, MessageRole, ParsedUpdate

# Providers occasionally redeliver identical completed-item notifications.
DUPLICATE_WINDOW = 8


def has_recent_duplicate(messages: list[Message], update: ParsedUpdate, window: int = DUPLICATE_WINDOW) -> bool:
    """True if one of the trailing ``window`` messages equals ``update``."""
    if window <= 0:
        return False
    for message in messages[-window:]:
        if message.same_kind(update.role, update.message_type) and message.content == update.content:
            return True
    return False


def has_turn_duplicate(messages: list[Message], update: ParsedUpdate, window: int = DUPLICATE_WINDOW) -> bool:
    """Like ``has_recent_duplicate`` but never looks past the latest user message."""
    if window <= 0:
        return False
    for message in reversed(messages[-window:]):
        if message.role is MessageRole.USER:
            return False
        if message.same_kind(update.role, update.message_type) and message.content == update.content:
            return True
    return False


def _create(session_id: str, update: ParsedUpdate) -> Message:
    return Message.create(session_id, update.role, update.message_type, update.content)


def merge_update(
    messages: list[Message],
    session_id: str,
    update: ParsedUpdate,
    window: int = DUPLICATE_WINDOW,
) -> list[Message]:
    """Apply one update; returns ``messages`` itself when nothing changed."""
    if not update.content:
        return messages

    last = messages[-1] if messages else None
    same_kind = last is not None and last.same_kind(update.role, update.message_type)

    if update.mode is InsertMode.APPEND:
        if same_kind:
            return [*messages[:-1], replace(last, content=last.content + update.content)]
        return [*messages, _create(session_id, update)]

    if update.mode is InsertMode.REPLACE_OR_CREATE:
        if update.guarded and has_turn_duplicate(messages, update, window):
            return messages
        if same_kind:
            if last.content == update.content:
                return messages
            return [*messages[:-1], replace(last, content=update.content)]
        return [*messages, _create(session_id, update)]

    if has_recent_duplicate(messages, update, window):
        return messages
    return [*messages, _create(session_id, update)]


def merge_updates(
    messages: list[Message],
    session_id: str,
    updates: Iterable[ParsedUpdate],
    window: int = DUPLICATE_WINDOW,
) -> list[Message]:
    """Fold several updates in order; identity is preserved if all are no-ops."""
    for update in updates:
        messages = merge_update(messages, session_id, update, window)
    return messages
