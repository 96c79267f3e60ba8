"""Turn lifecycle bookkeeping: busy/idle state, live status, outbound queue."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from agent_deck.chat.models import ToolCallBuffer


class TurnState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


class OutboundQueue:
    """FIFO of submissions deferred while a session is busy."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()

    def push(self, text: str) -> int:
        self._items.append(text)
        return len(self._items)

    def pop(self) -> str | None:
        return self._items.popleft() if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))


@dataclass
class SessionTurn:
    """Turn state for one session."""

    state: TurnState = TurnState.IDLE
    started_at: float | None = None
    live_status: str | None = None
    tool_buffer: ToolCallBuffer | None = None
    queue: OutboundQueue = field(default_factory=OutboundQueue)

    @property
    def busy(self) -> bool:
        return self.state is TurnState.BUSY


class TurnTracker:
    """Per-session ``Idle``/``Busy`` state machine.

    Sessions never share state: the busy flag, clock, status, tool-call buffer
    and queue are all keyed by session id.
    """

    def __init__(self) -> None:
        self._turns: dict[str, SessionTurn] = {}

    def get(self, session_id: str) -> SessionTurn:
        turn = self._turns.get(session_id)
        if turn is None:
            turn = SessionTurn()
            self._turns[session_id] = turn
        return turn

    def peek(self, session_id: str) -> SessionTurn | None:
        """Turn state for a known session, without creating one."""
        return self._turns.get(session_id)

    def begin(self, session_id: str, status: str) -> SessionTurn:
        """Idle -> Busy. Keeps the original start time if already busy."""
        turn = self.get(session_id)
        if not turn.busy or turn.started_at is None:
            turn.started_at = time.time()
        turn.state = TurnState.BUSY
        turn.live_status = status
        return turn

    def finish(self, session_id: str) -> bool:
        """Busy -> Idle. Returns True if the session was busy."""
        turn = self.get(session_id)
        was_busy = turn.busy
        turn.state = TurnState.IDLE
        turn.started_at = None
        turn.live_status = None
        turn.tool_buffer = None
        return was_busy

    def set_status(self, session_id: str, status: str | None) -> bool:
        """Apply a classifier status hint; returns True if anything changed.

        A non-empty status on an idle session puts it back to busy: events
        may still arrive after an optimistic interrupt.
        """
        turn = self.get(session_id)
        if status is None:
            changed = turn.live_status is not None
            turn.live_status = None
            return changed
        if not turn.busy:
            self.begin(session_id, status)
            return True
        if turn.live_status == status:
            return False
        turn.live_status = status
        return True

    def is_busy(self, session_id: str) -> bool:
        turn = self.peek(session_id)
        return turn is not None and turn.busy

    def any_busy(self) -> bool:
        return any(turn.busy for turn in self._turns.values())

    def busy_sessions(self) -> list[str]:
        return [sid for sid, turn in self._turns.items() if turn.busy]

    def forget(self, session_id: str) -> None:
        self._turns.pop(session_id, None)
