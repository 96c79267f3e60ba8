"""Registry of supported agent providers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProviderTag(str, Enum):
    CODEX = "codex"
    CLAUDE = "claude"
    GEMINI = "gemini"


@dataclass(frozen=True)
class ProviderDef:
    """Provider metadata."""

    tag: ProviderTag
    name: str


PROVIDER_DEFS: dict[ProviderTag, ProviderDef] = {
    ProviderTag.CODEX: ProviderDef(tag=ProviderTag.CODEX, name="Codex CLI"),
    ProviderTag.CLAUDE: ProviderDef(tag=ProviderTag.CLAUDE, name="Claude Code"),
    ProviderTag.GEMINI: ProviderDef(tag=ProviderTag.GEMINI, name="Gemini CLI"),
}


def parse_provider_tag(value: object) -> ProviderTag | None:
    """Lenient tag parsing; returns None for unknown providers."""
    if isinstance(value, ProviderTag):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ProviderTag(value.strip().lower())
    except ValueError:
        return None


def get_provider_def(provider: str | ProviderTag) -> ProviderDef:
    """Get a provider definition by tag."""
    tag = parse_provider_tag(provider)
    if tag is None:
        choices = ", ".join(sorted(t.value for t in PROVIDER_DEFS))
        raise ValueError(f"Unknown provider '{provider}'. Expected one of: {choices}")
    return PROVIDER_DEFS[tag]
