"""Tests for turn bookkeeping and usage tracking."""

import pytest

from agent_deck.chat.models import ContextUsageSnapshot, ToolCallBuffer
from agent_deck.engine.context_usage import ContextUsageTracker
from agent_deck.engine.lifecycle import OutboundQueue, TurnState, TurnTracker


class TestOutboundQueue:
    def test_fifo(self):
        queue = OutboundQueue()
        assert queue.push("a") == 1
        assert queue.push("b") == 2

        assert list(queue) == ["a", "b"]
        assert queue.pop() == "a"
        assert queue.pop() == "b"
        assert queue.pop() is None
        assert len(queue) == 0


class TestTurnTracker:
    def test_begin_and_finish(self):
        tracker = TurnTracker()
        turn = tracker.begin("s1", "Thinking")

        assert turn.state is TurnState.BUSY
        assert turn.started_at is not None
        assert tracker.is_busy("s1")

        turn.tool_buffer = ToolCallBuffer(tool_name="Read")
        assert tracker.finish("s1") is True
        assert turn.state is TurnState.IDLE
        assert turn.started_at is None
        assert turn.live_status is None
        assert turn.tool_buffer is None
        assert tracker.finish("s1") is False

    def test_begin_keeps_start_time_while_busy(self):
        tracker = TurnTracker()
        started = tracker.begin("s1", "Thinking").started_at

        assert tracker.begin("s1", "Using tool").started_at == started

    def test_set_status(self):
        tracker = TurnTracker()
        tracker.begin("s1", "Thinking")

        assert tracker.set_status("s1", "Thinking") is False
        assert tracker.set_status("s1", "Running tests") is True
        assert tracker.set_status("s1", None) is True
        assert tracker.is_busy("s1")
        assert tracker.get("s1").live_status is None

    def test_status_on_idle_session_resumes_turn(self):
        tracker = TurnTracker()

        assert tracker.set_status("s1", "Writing response") is True
        assert tracker.is_busy("s1")
        assert tracker.get("s1").started_at is not None

    def test_unknown_session_is_idle(self):
        tracker = TurnTracker()

        assert not tracker.is_busy("nope")
        assert not tracker.any_busy()

    def test_peek_does_not_create_session(self):
        tracker = TurnTracker()

        assert tracker.peek("s1") is None
        assert tracker.peek("s1") is None
        turn = tracker.begin("s1", "Thinking")
        assert tracker.peek("s1") is turn


class TestContextUsage:
    def test_build_percent(self):
        usage = ContextUsageSnapshot.build(used_tokens=1500, max_tokens=10000)

        assert usage.usage_percent == pytest.approx(15.0)
        assert usage.format_status() == "15% context used (1,500/10,000)"

    def test_build_without_ceiling(self):
        usage = ContextUsageSnapshot.build(used_tokens=42, max_tokens=0)

        assert usage.max_tokens is None
        assert usage.usage_percent is None
        assert usage.format_status() == "42 tokens"

    def test_tracker_replaces_snapshot(self):
        tracker = ContextUsageTracker()
        first = ContextUsageSnapshot.build(used_tokens=100, max_tokens=1000, cached_input_tokens=50)
        second = ContextUsageSnapshot.build(used_tokens=200, max_tokens=1000)

        assert tracker.update("s1", first)
        assert not tracker.update("s1", first)
        assert tracker.update("s1", second)
        assert tracker.get("s1").cached_input_tokens == 0

        tracker.clear("s1")
        assert tracker.get("s1") is None
        assert tracker.snapshot() == {}
