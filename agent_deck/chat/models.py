"""Conversation data models.

Every provider wire format is reduced to the same small vocabulary:
``ParsedUpdate`` values describe how one piece of content should land in a
session's ``Message`` list, and ``ClassifiedEvent`` bundles those updates with
the side information a single raw payload can carry (status text, turn end,
token telemetry, provider-native ids).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageType(str, Enum):
    TEXT = "text"
    TOOL = "tool"
    DIFF = "diff"
    ERROR = "error"
    REASONING = "reasoning"


class InsertMode(str, Enum):
    """How an update is merged into the tail of a message list."""

    APPEND = "append"
    REPLACE_OR_CREATE = "replaceOrCreate"
    NEW_ENTRY = "newEntry"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """One chat entry as shown to the user."""

    id: str
    session_id: str
    role: MessageRole
    message_type: MessageType
    content: str
    created_at: int = field(default_factory=_now_ms)  # epoch millis

    @classmethod
    def create(
        cls,
        session_id: str,
        role: MessageRole,
        message_type: MessageType,
        content: str,
    ) -> "Message":
        return cls(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            message_type=message_type,
            content=content,
        )

    def same_kind(self, role: MessageRole, message_type: MessageType) -> bool:
        return self.role == role and self.message_type == message_type


@dataclass(frozen=True)
class ParsedUpdate:
    """A normalized piece of content produced by a classifier.

    ``guarded`` updates are dropped when an identical message already sits in
    the trailing dedupe window after the latest user message (used for final
    snapshots that may repeat what the same turn already streamed).
    """

    role: MessageRole
    message_type: MessageType
    content: str
    mode: InsertMode
    guarded: bool = False

    @classmethod
    def text(cls, content: str, mode: InsertMode = InsertMode.APPEND, guarded: bool = False) -> "ParsedUpdate":
        return cls(MessageRole.ASSISTANT, MessageType.TEXT, content, mode, guarded)

    @classmethod
    def reasoning(cls, content: str, mode: InsertMode = InsertMode.APPEND, guarded: bool = False) -> "ParsedUpdate":
        return cls(MessageRole.ASSISTANT, MessageType.REASONING, content, mode, guarded)

    @classmethod
    def tool(cls, content: str) -> "ParsedUpdate":
        return cls(MessageRole.ASSISTANT, MessageType.TOOL, content, InsertMode.NEW_ENTRY)

    @classmethod
    def error(cls, content: str) -> "ParsedUpdate":
        return cls(MessageRole.SYSTEM, MessageType.ERROR, content, InsertMode.NEW_ENTRY)


@dataclass(frozen=True)
class ToolCallBuffer:
    """Arguments of one streamed tool invocation, between block start and stop."""

    tool_name: str
    block_index: int | None = None
    partial_args_json: str = ""

    def extend(self, fragment: str) -> "ToolCallBuffer":
        return ToolCallBuffer(
            tool_name=self.tool_name,
            block_index=self.block_index,
            partial_args_json=self.partial_args_json + fragment,
        )


@dataclass(frozen=True)
class ContextUsageSnapshot:
    """Token accounting for one session, replaced wholesale on each report."""

    used_tokens: int
    max_tokens: int | None = None
    usage_percent: float | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    cached_input_tokens: int = 0
    reasoning_output_tokens: int = 0
    last_turn_tokens: int = 0
    updated_at: float = field(default_factory=time.time)

    @classmethod
    def build(
        cls,
        used_tokens: int,
        max_tokens: int | None,
        **counters: int,
    ) -> "ContextUsageSnapshot":
        """Create a snapshot, deriving ``usage_percent`` from the window ceiling."""
        percent: float | None = None
        if max_tokens:
            percent = min(100.0, max(0.0, used_tokens / max_tokens * 100.0))
        return cls(
            used_tokens=used_tokens,
            max_tokens=max_tokens or None,
            usage_percent=percent,
            **counters,
        )

    def format_status(self) -> str:
        if self.usage_percent is None:
            return f"{self.used_tokens:,} tokens"
        pct = f"{self.usage_percent:.1f}".rstrip("0").rstrip(".")
        return f"{pct}% context used ({self.used_tokens:,}/{self.max_tokens:,})"


@dataclass
class ClassifiedEvent:
    """Result of classifying one raw provider payload.

    ``status_set`` distinguishes "leave the live status alone" from an
    explicit ``live_status = None`` (the session went idle).
    ``tool_buffer`` is the session's buffer after this payload; classifiers
    that do not stream tool arguments hand back whatever they were given.
    """

    updates: list[ParsedUpdate] = field(default_factory=list)
    live_status: str | None = None
    status_set: bool = False
    turn_ended: bool = False
    context_usage: ContextUsageSnapshot | None = None
    native_session_id: str | None = None
    session_name: str | None = None
    tool_buffer: ToolCallBuffer | None = None

    def set_status(self, text: str) -> "ClassifiedEvent":
        self.live_status = text
        self.status_set = True
        return self

    def end_turn(self) -> "ClassifiedEvent":
        self.turn_ended = True
        self.live_status = None
        self.status_set = True
        return self

    @property
    def is_empty(self) -> bool:
        return not (
            self.updates
            or self.status_set
            or self.turn_ended
            or self.context_usage
            or self.native_session_id
            or self.session_name
        )
