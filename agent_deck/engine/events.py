"""Change events published by the engine and a lightweight signal bus."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from agent_deck.chat.models import ContextUsageSnapshot, Message

EventHandler = Callable[[object], None]

MESSAGES_CHANGED = "messages"
STATUS_CHANGED = "status"
QUEUE_CHANGED = "queue"
CONTEXT_USAGE_CHANGED = "context_usage"
SESSION_RENAMED = "session_renamed"
NATIVE_SESSION_BOUND = "native_session"


@dataclass(frozen=True)
class MessagesChanged:
    """Message list for a session was replaced."""

    session_id: str
    messages: list[Message]


@dataclass(frozen=True)
class StatusChanged:
    """Busy flag, turn clock or live status text changed."""

    session_id: str
    busy: bool
    live_status: str | None
    started_at: float | None


@dataclass(frozen=True)
class QueueChanged:
    session_id: str
    queued: int


@dataclass(frozen=True)
class ContextUsageChanged:
    session_id: str
    usage: ContextUsageSnapshot


@dataclass(frozen=True)
class SessionRenamed:
    session_id: str
    name: str


@dataclass(frozen=True)
class NativeSessionBound:
    """Provider-side session/thread id learned from the event stream."""

    session_id: str
    native_session_id: str


class EventHub:
    """Simple in-process pub/sub for engine observers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_name: str, payload: object) -> None:
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
            except Exception as exc:
                logger.warning(f"[events] {event_name} handler error: {exc}")
