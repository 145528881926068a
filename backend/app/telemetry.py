"""Structured events emitted by the practice engine.

Every event is logged as a single ``TELEMETRY {...}`` JSON line on the
``piano_coach.telemetry`` logger and handed to any in-process listeners.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List

logger = logging.getLogger("piano_coach.telemetry")

Listener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> None:
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> None:
    payload = {key: value.isoformat() if isinstance(value, datetime) else value for key, value in fields.items()}
    event = TelemetryEvent(name=name, payload=payload)

    with _lock:
        listeners = tuple(_listeners)
    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info("TELEMETRY %s", json.dumps({"event": name, **payload}, default=str))


def track_session_generated(user_id: str, session_length: int, activity_count: int, source: str) -> None:
    """Record a committed draft. ``source`` is ``remote`` or ``fallback``."""
    emit_event(
        "session_generated",
        user_id=user_id,
        session_length=session_length,
        activity_count=activity_count,
        source=source,
    )


def track_session_started(user_id: str, session_length: int, activity_count: int) -> None:
    emit_event("session_started", user_id=user_id, session_length=session_length, activity_count=activity_count)


def track_draft_restored(user_id: str, session_length: int, activity_count: int) -> None:
    emit_event("draft_restored", user_id=user_id, session_length=session_length, activity_count=activity_count)


def track_draft_discarded(user_id: str, reason: str) -> None:
    """``reason`` is one of ``corrupt``, ``user_mismatch`` or ``expired``."""
    emit_event("draft_discarded", user_id=user_id, reason=reason)


def track_generation_cancelled(user_id: str, reason: str) -> None:
    emit_event("generation_cancelled", user_id=user_id, reason=reason)


def track_generation_fallback(user_id: str, reason: str) -> None:
    emit_event("generation_fallback", user_id=user_id, reason=reason)


__all__ = [
    "Listener",
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
    "track_draft_discarded",
    "track_draft_restored",
    "track_generation_cancelled",
    "track_generation_fallback",
    "track_session_generated",
    "track_session_started",
]
