"""Provider wire-format classifiers and adapter boundaries."""

from agent_deck.providers.base import AgentAdapter, EmptyHistory, HistorySource
from agent_deck.providers.classifier import STATUS_MAX_CHARS, classify
from agent_deck.providers.registry import PROVIDER_DEFS, ProviderDef, ProviderTag, get_provider_def

__all__ = [
    "AgentAdapter",
    "EmptyHistory",
    "HistorySource",
    "PROVIDER_DEFS",
    "ProviderDef",
    "ProviderTag",
    "STATUS_MAX_CHARS",
    "classify",
    "get_provider_def",
]
