"""Conversation merge engine, turn lifecycle and usage tracking."""

from agent_deck.engine.context_usage import ContextUsageTracker
from agent_deck.engine.conversation import ConversationEngine, SubmitOutcome
from agent_deck.engine.events import EventHub
from agent_deck.engine.lifecycle import OutboundQueue, TurnState, TurnTracker
from agent_deck.engine.merge import DUPLICATE_WINDOW, merge_update, merge_updates

__all__ = [
    "ContextUsageTracker",
    "ConversationEngine",
    "DUPLICATE_WINDOW",
    "EventHub",
    "OutboundQueue",
    "SubmitOutcome",
    "TurnState",
    "TurnTracker",
    "merge_update",
    "merge_updates",
]
