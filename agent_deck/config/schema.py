"""Configuration schema for agent-deck."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Conversation engine tunables."""

    duplicate_window: int = Field(default=8, ge=0)
    status_max_chars: int = Field(default=120, ge=8)
    default_status: str = "Thinking"
    drain_queue_on_interrupt: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"


class Config(BaseSettings):
    """Root configuration for agent-deck."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="AGENT_DECK_",
        env_nested_delimiter="__",
        extra="ignore",
    )
