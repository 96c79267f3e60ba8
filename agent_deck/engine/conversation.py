"""Conversation engine: provider events in, canonical chat state out.

Usage:
    engine = ConversationEngine(adapter=my_adapter, history=my_store)
    engine.events.subscribe(MESSAGES_CHANGED, redraw)
    engine.activate_session("chat_001")
    await engine.submit("chat_001", "fix the failing test")
    ...
    # adapter output for that session, in emission order:
    await engine.on_provider_event("chat_001", "codex", payload)

Everything except the adapter calls runs synchronously; the only suspension
points are ``AgentAdapter.submit`` and ``AgentAdapter.interrupt``.
"""

from __future__ import annotations

from enum import Enum

from loguru import logger

from agent_deck.chat.models import (
    ClassifiedEvent,
    ContextUsageSnapshot,
    Message,
    MessageRole,
    MessageType,
    ParsedUpdate,
)
from agent_deck.config.schema import EngineConfig
from agent_deck.engine.context_usage import ContextUsageTracker
from agent_deck.engine.events import (
    CONTEXT_USAGE_CHANGED,
    MESSAGES_CHANGED,
    NATIVE_SESSION_BOUND,
    QUEUE_CHANGED,
    SESSION_RENAMED,
    STATUS_CHANGED,
    ContextUsageChanged,
    EventHub,
    MessagesChanged,
    NativeSessionBound,
    QueueChanged,
    SessionRenamed,
    StatusChanged,
)
from agent_deck.engine.lifecycle import TurnTracker
from agent_deck.engine.merge import merge_updates
from agent_deck.providers.base import AgentAdapter, EmptyHistory, HistorySource
from agent_deck.providers.classifier import classify
from agent_deck.providers.codex_events import should_ignore_stderr
from agent_deck.providers.registry import ProviderTag


class SubmitOutcome(str, Enum):
    SENT = "sent"
    QUEUED = "queued"
    FAILED = "failed"
    IGNORED = "ignored"


class ConversationEngine:
    """Per-session chat state for any number of agent sessions."""

    def __init__(
        self,
        adapter: AgentAdapter,
        history: HistorySource | None = None,
        config: EngineConfig | None = None,
        events: EventHub | None = None,
    ) -> None:
        self.adapter = adapter
        self.history = history or EmptyHistory()
        self.config = config or EngineConfig()
        self.events = events or EventHub()

        self.turns = TurnTracker()
        self.context = ContextUsageTracker()
        self._messages: dict[str, list[Message]] = {}
        self._native_ids: dict[str, str] = {}
        self._names: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def messages(self, session_id: str) -> list[Message]:
        return self._messages.get(session_id, [])

    def live_status(self, session_id: str) -> str | None:
        turn = self.turns.peek(session_id)
        return turn.live_status if turn else None

    def turn_started_at(self, session_id: str) -> float | None:
        turn = self.turns.peek(session_id)
        return turn.started_at if turn else None

    def queued_count(self, session_id: str) -> int:
        turn = self.turns.peek(session_id)
        return len(turn.queue) if turn else 0

    def queued_items(self, session_id: str) -> list[str]:
        turn = self.turns.peek(session_id)
        return list(turn.queue) if turn else []

    def context_usage(self, session_id: str) -> ContextUsageSnapshot | None:
        return self.context.get(session_id)

    def is_session_busy(self, session_id: str) -> bool:
        return self.turns.is_busy(session_id)

    @property
    def is_busy(self) -> bool:
        """True while any session has a turn in flight."""
        return self.turns.any_busy()

    def native_session_id(self, session_id: str) -> str | None:
        return self._native_ids.get(session_id)

    def session_name(self, session_id: str) -> str | None:
        return self._names.get(session_id)

    # ------------------------------------------------------------------
    # Session activation
    # ------------------------------------------------------------------

    def activate_session(self, session_id: str) -> list[Message]:
        """Load persisted history for ``session_id``, replacing what is in memory."""
        messages = list(self.history.load_messages(session_id))
        logger.debug(f"[engine] activated {session_id} with {len(messages)} stored message(s)")
        self._set_messages(session_id, messages)
        return messages

    def close_session(self, session_id: str) -> None:
        """Drop all in-memory state for a removed session."""
        self._messages.pop(session_id, None)
        self._native_ids.pop(session_id, None)
        self._names.pop(session_id, None)
        self.turns.forget(session_id)
        self.context.clear(session_id)

    # ------------------------------------------------------------------
    # Adapter -> engine
    # ------------------------------------------------------------------

    async def on_provider_event(
        self,
        session_id: str,
        provider: str | ProviderTag,
        payload: object,
    ) -> ClassifiedEvent:
        """Classify one raw payload and apply it to the session."""
        turn = self.turns.get(session_id)
        result = classify(
            provider,
            payload,
            turn.tool_buffer,
            status_limit=self.config.status_max_chars,
        )
        turn.tool_buffer = result.tool_buffer

        self._apply_updates(session_id, result.updates)

        if result.context_usage is not None and self.context.update(session_id, result.context_usage):
            self.events.publish(CONTEXT_USAGE_CHANGED, ContextUsageChanged(session_id, result.context_usage))

        if result.native_session_id and self._native_ids.get(session_id) != result.native_session_id:
            self._native_ids[session_id] = result.native_session_id
            self.events.publish(NATIVE_SESSION_BOUND, NativeSessionBound(session_id, result.native_session_id))

        if result.session_name and self._names.get(session_id) != result.session_name:
            self._names[session_id] = result.session_name
            self.events.publish(SESSION_RENAMED, SessionRenamed(session_id, result.session_name))

        if result.turn_ended:
            logger.info(f"[engine] turn ended for {session_id}")
            await self._finish_turn(session_id, drain=True)
        elif result.status_set:
            was_busy = turn.busy
            if self.turns.set_status(session_id, result.live_status):
                if not was_busy and turn.busy:
                    logger.info(f"[engine] late event put idle session {session_id} back to busy")
                self._publish_status(session_id)

        return result

    def on_user_message(self, session_id: str, message: Message) -> bool:
        """Record a user submission echoed back by the adapter (deduplicated by id)."""
        existing = self.messages(session_id)
        if any(m.id == message.id for m in existing):
            return False
        self._set_messages(session_id, [*existing, message])
        return True

    def on_adapter_error(self, session_id: str, text: str) -> None:
        """Surface an adapter-level error line (e.g. process stderr) in the chat."""
        if not text.strip() or should_ignore_stderr(text):
            return
        logger.warning(f"[engine] adapter error in {session_id}: {text.strip()}")
        self._apply_updates(session_id, [ParsedUpdate.error(text.strip())])

    async def on_process_exit(self, session_id: str) -> None:
        """The agent process for ``session_id`` exited; treat it as the end of the turn."""
        if self.turns.is_busy(session_id):
            logger.info(f"[engine] process exited mid-turn for {session_id}")
        await self._finish_turn(session_id, drain=True)

    # ------------------------------------------------------------------
    # Engine -> adapter
    # ------------------------------------------------------------------

    async def submit(self, session_id: str, text: str) -> SubmitOutcome:
        """Send ``text`` now, or queue it while the session is busy."""
        if not text.strip():
            return SubmitOutcome.IGNORED

        turn = self.turns.get(session_id)
        if turn.busy or len(turn.queue):
            # Items left over from a failed send stay ahead of new ones.
            queued = turn.queue.push(text)
            logger.info(f"[queue] {session_id} queued submission ({queued} pending)")
            self.events.publish(QUEUE_CHANGED, QueueChanged(session_id, queued))
            if not turn.busy:
                await self._drain(session_id)
            return SubmitOutcome.QUEUED

        return await self._send(session_id, text)

    async def interrupt(self, session_id: str) -> None:
        """Stop the current turn.

        Local state is cleared first, without waiting for the agent process
        to confirm; the adapter call is best-effort.
        """
        self.turns.finish(session_id)
        self._publish_status(session_id)
        try:
            await self.adapter.interrupt(session_id)
        except Exception as exc:
            logger.warning(f"[engine] interrupt failed for {session_id}: {exc}")
        if self.config.drain_queue_on_interrupt:
            await self._drain(session_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _send(self, session_id: str, text: str) -> SubmitOutcome:
        self.turns.begin(session_id, self.config.default_status)
        self._publish_status(session_id)
        try:
            await self.adapter.submit(session_id, text)
        except Exception as exc:
            logger.warning(f"[engine] submission failed for {session_id}: {exc}")
            # Appended directly: repeated failures must each be visible.
            failure = Message.create(
                session_id,
                MessageRole.SYSTEM,
                MessageType.ERROR,
                f"Failed to send message: {exc}",
            )
            self._set_messages(session_id, [*self.messages(session_id), failure])
            self.turns.finish(session_id)
            self._publish_status(session_id)
            return SubmitOutcome.FAILED
        return SubmitOutcome.SENT

    async def _finish_turn(self, session_id: str, drain: bool) -> None:
        self.turns.finish(session_id)
        self._publish_status(session_id)
        if drain:
            await self._drain(session_id)

    async def _drain(self, session_id: str) -> None:
        """Send the oldest queued submission while the session is idle."""
        turn = self.turns.get(session_id)
        while not turn.busy:
            text = turn.queue.pop()
            if text is None:
                return
            logger.info(f"[queue] {session_id} idle; sending queued submission ({len(turn.queue)} left)")
            self.events.publish(QUEUE_CHANGED, QueueChanged(session_id, len(turn.queue)))
            if await self._send(session_id, text) is SubmitOutcome.FAILED:
                return

    def _apply_updates(self, session_id: str, updates: list[ParsedUpdate]) -> None:
        if not updates:
            return
        current = self.messages(session_id)
        merged = merge_updates(current, session_id, updates, self.config.duplicate_window)
        if merged is not current:
            self._set_messages(session_id, merged)

    def _set_messages(self, session_id: str, messages: list[Message]) -> None:
        self._messages[session_id] = messages
        self.events.publish(MESSAGES_CHANGED, MessagesChanged(session_id, messages))

    def _publish_status(self, session_id: str) -> None:
        turn = self.turns.get(session_id)
        self.events.publish(
            STATUS_CHANGED,
            StatusChanged(
                session_id=session_id,
                busy=turn.busy,
                live_status=turn.live_status,
                started_at=turn.started_at,
            ),
        )

