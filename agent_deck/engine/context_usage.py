"""Per-session context-window usage."""

from __future__ import annotations

from agent_deck.chat.models import ContextUsageSnapshot


class ContextUsageTracker:
    """Latest token-usage snapshot per session.

    Providers report cumulative totals, so every report replaces the
    previous snapshot outright instead of being added to it.
    """

    def __init__(self) -> None:
        self._snapshots: dict[str, ContextUsageSnapshot] = {}

    def update(self, session_id: str, snapshot: ContextUsageSnapshot) -> bool:
        """Store ``snapshot``; returns False if it is the object already stored."""
        if self._snapshots.get(session_id) is snapshot:
            return False
        self._snapshots[session_id] = snapshot
        return True

    def get(self, session_id: str) -> ContextUsageSnapshot | None:
        return self._snapshots.get(session_id)

    def clear(self, session_id: str) -> None:
        self._snapshots.pop(session_id, None)

    def snapshot(self) -> dict[str, ContextUsageSnapshot]:
        return dict(self._snapshots)
