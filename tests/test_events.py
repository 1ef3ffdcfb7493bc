from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from shiurbank.services.events import (
    EventType,
    emit_playback_event,
    emit_structured_event,
    format_event_message,
    normalize_context,
    sanitize_context_value,
)


class _Colour(Enum):
    RED = "red"


class _State(str, Enum):
    LOADING = "loading"
    PLAYING = "playing"


def test_sanitize_context_value_handles_common_types() -> None:
    assert sanitize_context_value(_Colour.RED) == "red"
    assert sanitize_context_value(Path("/tmp/a.mp3")) == "/tmp/a.mp3"
    assert sanitize_context_value(["a", "b"]) == "a, b"
    assert sanitize_context_value("   ") is None
    assert sanitize_context_value(True) is True
    long_value = sanitize_context_value("x" * 250)
    assert long_value.endswith("…")
    assert len(long_value) == 201


def test_normalize_context_drops_empty_values() -> None:
    assert normalize_context({"a": 1, "b": None, "c": "", "": "x"}) == {"a": 1}
    assert normalize_context(None) == {}


def test_structured_event_formats_message_and_extras(caplog) -> None:
    logger = logging.getLogger("shiurbank.tests.events")

    with caplog.at_level(logging.INFO, logger="shiurbank.tests.events"):
        emit_structured_event(
            "APP_EVENT",
            "Listed audio files",
            context={"count": 3},
            correlation={"request_id": "abc"},
            duration_ms=1.5,
            logger=logger,
        )

    record = caplog.records[-1]
    assert record.getMessage() == "[APP_EVENT] Listed audio files (request_id=abc, count=3)"
    assert record.event_type == "APP_EVENT"
    assert record.event_context == {"count": 3}
    assert record.event_correlation == {"request_id": "abc"}
    assert record.event_duration_ms == 1.5


def test_file_and_playback_events_use_their_types(caplog) -> None:
    logger = logging.getLogger("shiurbank.tests.events")

    with caplog.at_level(logging.DEBUG, logger="shiurbank.tests.events"):
        emit_structured_event(
            EventType.FILE, "resolve_audio", payload={"status": "ok"}, logger=logger
        )
        emit_playback_event(_State.LOADING, _State.PLAYING, item="a.mp3", logger=logger)

    file_record, playback_record = caplog.records[-2:]
    assert file_record.getMessage() == "[FILE_OP] resolve_audio (status=ok)"
    assert file_record.levelno == logging.INFO
    assert playback_record.getMessage() == "[PLAYBACK] loading -> playing (item=a.mp3)"
    assert playback_record.event_type == EventType.PLAYBACK.value
    assert playback_record.levelno == logging.DEBUG


def test_format_event_message_without_details() -> None:
    assert format_event_message("APP_EVENT", "Started", {}) == "[APP_EVENT] Started"
    assert format_event_message("", "Started", {"a": 1}) == "Started (a=1)"

