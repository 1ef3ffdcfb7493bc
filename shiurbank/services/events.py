"""Structured log events for catalog, web and playback activity.

Every event is rendered as ``[TYPE] message (key=value, ...)`` and carries the
same details as record extras (``event_type``, ``event_message``,
``event_context``, ``event_payload``, ``event_correlation`` and
``event_duration_ms``) so handlers can index them without parsing text.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union


DEFAULT_EVENT_LOGGER = logging.getLogger("shiurbank.events")

_MAX_VALUE_LENGTH = 200

EventLogger = Union[logging.Logger, logging.LoggerAdapter]


class EventType(str, Enum):
    APP = "APP_EVENT"
    FILE = "FILE_OP"
    PLAYBACK = "PLAYBACK"


def _truncate(text: str) -> Optional[str]:
    trimmed = text.strip()
    if not trimmed:
        return None
    if len(trimmed) > _MAX_VALUE_LENGTH:
        return trimmed[:_MAX_VALUE_LENGTH] + "…"
    return trimmed


def sanitize_context_value(value: Any) -> Any:
    """Return a log-friendly, JSON-serialisable version of *value*."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return sanitize_context_value(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return _truncate(", ".join(str(item) for item in value))
    return _truncate(str(value))


def normalize_context(values: Optional[Mapping[Any, Any]]) -> Dict[str, Any]:
    """Drop empty keys and values, sanitising what remains."""

    normalised: Dict[str, Any] = {}
    for key, raw_value in (values or {}).items():
        if key is None or key == "":
            continue
        value = sanitize_context_value(raw_value)
        if value is None or value == "" or value == {}:
            continue
        normalised[str(key)] = value
    return normalised


def format_event_message(event_type: str, message: str, details: Mapping[str, Any]) -> str:
    head = f"[{event_type}] {message}" if event_type else message
    if not details:
        return head
    rendered = ", ".join(f"{key}={value}" for key, value in details.items())
    return f"{head} ({rendered})"


def emit_structured_event(
    event_type: Union[EventType, str],
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    correlation: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: EventLogger = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log *message* under *event_type* with normalised details attached."""

    type_name = event_type.value if isinstance(event_type, EventType) else str(event_type or "")
    base_message = str(message).strip()
    sections = {
        "event_correlation": normalize_context(correlation),
        "event_context": normalize_context(context),
        "event_payload": normalize_context(payload),
    }
    details: Dict[str, Any] = {}
    for section in sections.values():
        details.update(section)

    extra: Dict[str, Any] = {"event_message": base_message, "event_type": type_name}
    extra.update({name: section for name, section in sections.items() if section})
    if duration_ms is not None:
        extra["event_duration_ms"] = float(duration_ms)
    logger.log(level, format_event_message(type_name, base_message, details), extra=extra)


def emit_playback_event(
    previous: Any,
    current: Any,
    *,
    item: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    level: int = logging.DEBUG,
    logger: EventLogger = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log a playback state transition such as ``loading -> playing``."""

    message = f"{sanitize_context_value(previous)} -> {sanitize_context_value(current)}"
    emit_structured_event(
        EventType.PLAYBACK,
        message,
        payload=payload,
        context={"item": item},
        level=level,
        logger=logger,
    )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "EventType",
    "emit_playback_event",
    "emit_structured_event",
    "format_event_message",
    "normalize_context",
    "sanitize_context_value",
]
