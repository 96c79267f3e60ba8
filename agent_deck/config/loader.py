"""Load and save the agent-deck JSON config file."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from agent_deck.config.schema import Config


def get_config_path() -> Path:
    """Return default path for the config file."""
    return Path.home() / ".agent-deck" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """Load config from disk; falls back to defaults (plus env overrides)."""
    target = path or get_config_path()
    if not target.exists():
        return Config()

    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
        return Config(**payload) if isinstance(payload, dict) else Config()
    except (OSError, ValueError, ValidationError) as exc:
        logger.warning(f"[config] Failed to load {target}: {exc}; using defaults")
        return Config()


def save_config(config: Config, path: Path | None = None) -> Path:
    """Persist config to disk."""
    target = path or get_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(config.model_dump(mode="json"), indent=2), encoding="utf-8")
    return target
