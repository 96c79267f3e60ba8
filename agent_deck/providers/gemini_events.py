"""Classifier for the flat Gemini event shape.

Payloads are single objects such as ``{"delta": "Hel"}``,
``{"phase": "completed"}`` or ``{"status": "Searching files"}``.
"""

from __future__ import annotations

from agent_deck.chat.models import ClassifiedEvent, ParsedUpdate
from agent_deck.providers.payload import JsonRecord, as_str, error_text, pick, pick_str, truncate

COMPLETED_PHASES = {"completed", "done", "result"}
ERROR_PHASES = {"error", "failed"}


def _phase(data: JsonRecord) -> str:
    return (pick_str(data, "phase", "type", "event") or "").strip().lower()


def classify_gemini_event(data: JsonRecord, status_limit: int) -> ClassifiedEvent:
    """Normalize one Gemini event."""
    result = ClassifiedEvent()

    delta = as_str(data.get("delta"))
    if delta:
        result.updates.append(ParsedUpdate.text(delta))

    result.native_session_id = pick_str(data, "session_id", "sessionId")

    phase = _phase(data)
    if phase in COMPLETED_PHASES:
        result.end_turn()
        return result

    if phase in ERROR_PHASES:
        error = pick(data, "error")
        if error is not None:
            result.updates.append(ParsedUpdate.error(error_text(error, "Gemini error")))
        result.set_status("Error")
        return result

    status = pick_str(data, "status", "message")
    if status and status.strip():
        result.set_status(truncate(status, status_limit))
    return result
