"""Boundaries between the conversation engine and its collaborators."""

from abc import ABC, abstractmethod

from agent_deck.chat.models import Message


class AgentAdapter(ABC):
    """
    Abstract base class for agent process adapters.

    Implementations own process spawning and transport for one or more
    providers. They push raw output into the engine through
    ``ConversationEngine.on_provider_event`` and receive outbound work here.
    """

    @abstractmethod
    async def submit(self, session_id: str, text: str) -> None:
        """
        Deliver one user submission to the agent behind ``session_id``.

        Raises:
            Exception: any transport failure; the engine reports it in the
                session and returns the session to idle.
        """
        pass

    @abstractmethod
    async def interrupt(self, session_id: str) -> None:
        """Ask the agent to stop the current turn. Best-effort, no completion guarantee."""
        pass


class HistorySource(ABC):
    """Read-only access to persisted messages, used when a session is activated."""

    @abstractmethod
    def load_messages(self, session_id: str) -> list[Message]:
        pass


class EmptyHistory(HistorySource):
    """History source for sessions that start with no prior messages."""

    def load_messages(self, session_id: str) -> list[Message]:
        return []
