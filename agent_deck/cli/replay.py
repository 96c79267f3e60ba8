"""Replay recorded adapter traffic through a ConversationEngine.

Transcript files are JSONL, one record per line::

    {"session_id": "s1", "kind": "submit", "text": "hello"}
    {"session_id": "s1", "provider": "codex", "payload": {"method": "turn/started"}}
    {"session_id": "s1", "kind": "stderr", "text": "boom"}
    {"session_id": "s1", "kind": "interrupt"}
    {"session_id": "s1", "kind": "exit"}

Records without ``kind`` but with ``provider``/``payload`` are provider events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from loguru import logger

from agent_deck.config.schema import EngineConfig
from agent_deck.engine.conversation import ConversationEngine
from agent_deck.providers.base import AgentAdapter
from agent_deck.providers.payload import as_str, parse_payload_json

DEFAULT_SESSION = "default"


class RecordingAdapter(AgentAdapter):
    """Adapter that only remembers what the engine asked it to do."""

    def __init__(self) -> None:
        self.submitted: list[tuple[str, str]] = []
        self.interrupted: list[str] = []

    async def submit(self, session_id: str, text: str) -> None:
        self.submitted.append((session_id, text))

    async def interrupt(self, session_id: str) -> None:
        self.interrupted.append(session_id)


@dataclass
class ReplayResult:
    engine: ConversationEngine
    adapter: RecordingAdapter
    session_ids: list[str] = field(default_factory=list)
    skipped: int = 0


def read_transcript(path: Path) -> list[dict]:
    records: list[dict] = []
    with path.open(encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            record = parse_payload_json(line)
            if not record:
                logger.warning(f"[replay] {path.name}:{line_no}: not a JSON object, skipped")
                continue
            records.append(record)
    return records


async def replay_records(
    records: Iterable[dict],
    only_session: str | None = None,
    config: EngineConfig | None = None,
) -> ReplayResult:
    adapter = RecordingAdapter()
    engine = ConversationEngine(adapter=adapter, config=config)
    result = ReplayResult(engine=engine, adapter=adapter)

    for record in records:
        session_id = as_str(record.get("session_id")) or DEFAULT_SESSION
        if only_session and session_id != only_session:
            continue
        if session_id not in result.session_ids:
            result.session_ids.append(session_id)

        kind = as_str(record.get("kind")) or ("event" if "provider" in record else "")
        text = as_str(record.get("text")) or ""
        if kind == "event":
            await engine.on_provider_event(session_id, str(record.get("provider", "")), record.get("payload"))
        elif kind == "submit":
            await engine.submit(session_id, text)
        elif kind == "interrupt":
            await engine.interrupt(session_id)
        elif kind == "exit":
            await engine.on_process_exit(session_id)
        elif kind == "stderr":
            engine.on_adapter_error(session_id, text)
        else:
            result.skipped += 1
            logger.debug(f"[replay] unknown record kind {kind!r}")

    return result
