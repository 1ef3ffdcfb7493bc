from __future__ import annotations

import io
import wave
from pathlib import Path
from types import SimpleNamespace

import pytest

from shiurbank.config import AppConfig
from shiurbank.services import catalog as catalog_module
from shiurbank.services.catalog import (
    AudioCatalog,
    AudioNotFoundError,
    content_type,
    probe_duration,
)


def _build_wav_bytes(duration_seconds: float = 0.5, sample_rate: int = 8_000) -> bytes:
    frame_count = int(sample_rate * duration_seconds)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(2)
        handle.setframerate(sample_rate)
        handle.writeframes(b"\x00\x00" * frame_count)
    return buffer.getvalue()


def _populate(config: AppConfig) -> None:
    root = config.audio_root
    (root / "series-1").mkdir(parents=True, exist_ok=True)
    (root / "series-1" / "bereishis.wav").write_bytes(_build_wav_bytes(2.0))
    (root / "series-1" / "noach.mp3").write_bytes(b"ID3audio")
    (root / "intro.ogg").write_bytes(b"OggS")
    (root / "notes.txt").write_text("not audio", encoding="utf-8")


def test_list_files_returns_sorted_audio_locators(temp_config: AppConfig) -> None:
    _populate(temp_config)
    catalog = AudioCatalog(temp_config)

    assert catalog.list_files() == [
        "intro.ogg",
        "series-1/bereishis.wav",
        "series-1/noach.mp3",
    ]
    assert catalog.list_files(series_id=1) == ["bereishis.wav", "noach.mp3"]
    assert catalog.list_files(series_id=2) == []


def test_describe_reports_metadata(temp_config: AppConfig) -> None:
    _populate(temp_config)
    catalog = AudioCatalog(temp_config, duration_probe=lambda path: 42.0)

    record = catalog.describe("series-1/noach.mp3")

    assert record.name == "noach.mp3"
    assert record.mime_type == "audio/mpeg"
    assert record.size_bytes == len(b"ID3audio")
    assert record.duration_seconds == 42.0


def test_list_records_skips_links_that_escape_the_root(temp_config: AppConfig) -> None:
    root = temp_config.audio_root
    (root / "good.mp3").write_bytes(b"ID3good")
    outside = root.parent / "outside.mp3"
    outside.write_bytes(b"ID3outside")
    (root / "link.mp3").symlink_to(outside)
    catalog = AudioCatalog(temp_config, duration_probe=lambda path: None)

    assert catalog.list_files() == ["good.mp3", "link.mp3"]
    assert [record.locator for record in catalog.list_records()] == ["good.mp3"]


def test_probe_duration_reads_wav_header(tmp_path: Path) -> None:
    target = tmp_path / "clip.wav"
    target.write_bytes(_build_wav_bytes(1.5))

    assert probe_duration(target) == pytest.approx(1.5)


def test_probe_duration_reads_tags_with_mutagen(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "clip.mp3"
    target.write_bytes(b"ID3")
    monkeypatch.setattr(
        catalog_module,
        "MutagenFile",
        lambda path: SimpleNamespace(info=SimpleNamespace(length=12.5)),
    )

    assert probe_duration(target) == 12.5


def test_probe_duration_unreadable_metadata_is_unknown(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "clip.mp3"
    target.write_bytes(b"ID3")

    def broken(path):
        raise catalog_module.MutagenError("truncated")

    monkeypatch.setattr(catalog_module, "MutagenFile", broken)
    assert probe_duration(target) is None

    monkeypatch.setattr(catalog_module, "MutagenFile", lambda path: None)
    assert probe_duration(target) is None


def test_probe_duration_tolerates_corrupt_wav(tmp_path: Path) -> None:
    target = tmp_path / "broken.wav"
    target.write_bytes(b"RIFFnonsense")

    assert probe_duration(target) is None


@pytest.mark.parametrize(
    "locator",
    ["../settings.json", "series-1/../../settings.json", "missing.mp3", "notes.txt", ""],
)
def test_resolve_rejects_bad_locators(temp_config: AppConfig, locator: str) -> None:
    _populate(temp_config)
    (temp_config.storage_root / "settings.json").write_text("{}", encoding="utf-8")
    catalog = AudioCatalog(temp_config)

    with pytest.raises(AudioNotFoundError):
        catalog.resolve(locator)


def test_resolve_series_locator(temp_config: AppConfig) -> None:
    _populate(temp_config)
    catalog = AudioCatalog(temp_config)

    resolved = catalog.resolve("noach.mp3", series_id=1)

    assert resolved == (temp_config.audio_root / "series-1" / "noach.mp3").resolve()


def test_catalog_emits_file_events(temp_config: AppConfig) -> None:
    _populate(temp_config)
    events = []

    def emitter(event_type, message, **kwargs):
        events.append((event_type, message, kwargs["payload"]))

    catalog = AudioCatalog(temp_config, event_emitter=emitter)
    catalog.list_files()
    with pytest.raises(AudioNotFoundError):
        catalog.resolve("missing.mp3")

    assert events[0][0] == "FILE_OP"
    assert events[0][1] == "list_audio"
    assert events[0][2]["count"] == 3
    assert events[0][2]["status"] == "ok"
    assert events[1][1] == "resolve_audio"
    assert events[1][2]["status"] == "error"


def test_content_type_uses_streaming_table() -> None:
    assert content_type("a.opus") == "audio/opus"
    assert content_type("a.m4a") == "audio/mp4"
    assert content_type("a.unknown") == "audio/mpeg"
