"""Filesystem-backed catalog of the audio recordings that can be streamed."""

from __future__ import annotations

import contextlib
import logging
import time
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

from ..config import AppConfig
from ..playback.formats import get_file_extension, get_mime_type, is_audio_file
from .events import EventType


LOGGER = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "audio/mpeg"

# Content types sent with streamed files; these differ from the playback MIME
# types for ``.opus`` which is served bare rather than as an Ogg codec hint.
_CONTENT_TYPES: Dict[str, str] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "opus": "audio/opus",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "webm": "audio/webm",
    "aiff": "audio/aiff",
    "aif": "audio/aiff",
    "wma": "audio/x-ms-wma",
}


class AudioNotFoundError(LookupError):
    """Raised when a locator does not name a streamable file."""


@dataclass
class AudioFileRecord:
    locator: str
    name: str
    mime_type: str
    size_bytes: int
    duration_seconds: Optional[float]


def content_type(file_name: str) -> str:
    """Return the ``Content-Type`` used when streaming *file_name*."""

    return _CONTENT_TYPES.get(get_file_extension(file_name), DEFAULT_CONTENT_TYPE)


def _wav_duration(path: Path) -> Optional[float]:
    try:
        with wave.open(str(path), "rb") as handle:
            frame_rate = handle.getframerate()
            frame_count = handle.getnframes()
    except (wave.Error, EOFError, OSError) as error:
        LOGGER.debug("Could not read WAV header for %s: %s", path, error)
        return None
    if frame_rate <= 0:
        return None
    return frame_count / float(frame_rate)


def _mutagen_duration(path: Path) -> Optional[float]:
    try:
        metadata = MutagenFile(str(path))
    except (MutagenError, OSError) as error:
        LOGGER.debug("mutagen could not parse %s: %s", path, error)
        return None
    if metadata is None:
        LOGGER.debug("mutagen could not read metadata for %s", path)
        return None
    info = getattr(metadata, "info", None)
    length = getattr(info, "length", None)
    if not length:
        return None
    LOGGER.debug("mutagen reported duration %.2fs for %s", float(length), path)
    return float(length)


def probe_duration(path: Path) -> Optional[float]:
    """Return the duration of *path* in seconds when it can be determined."""

    if path.suffix.lower() == ".wav":
        return _wav_duration(path)
    return _mutagen_duration(path)


class AudioCatalog:
    """List and resolve audio files stored below the configured audio root."""

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
        duration_probe: Callable[[Path], Optional[float]] = probe_duration,
    ) -> None:
        self._config = config
        self._event_emitter = event_emitter
        self._duration_probe = duration_probe

    @property
    def audio_root(self) -> Path:
        return self._config.audio_root

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting file events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_file_event(self, operation: str, **payload: Any):
        """Emit a structured event capturing execution time for a file operation."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        try:
            yield event_payload
        except Exception as exc:
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            event_payload.setdefault("status", "ok")
            filtered = {key: value for key, value in event_payload.items() if value is not None}
            self._event_emitter(
                EventType.FILE,
                operation,
                payload=filtered,
                duration_ms=duration_ms,
            )

    def list_files(self, series_id: Optional[int] = None) -> List[str]:
        """Return the sorted POSIX locators of every audio file in the catalog."""

        root = self._root_for(series_id)
        with self._track_file_event("list_audio", root=root) as event:
            if not root.exists():
                LOGGER.debug("Audio root %s does not exist yet", root)
                event["count"] = 0
                return []
            locators = sorted(
                path.relative_to(root).as_posix()
                for path in root.rglob("*")
                if path.is_file() and is_audio_file(path.name)
            )
            event["count"] = len(locators)
            LOGGER.info("Found %s audio files in %s", len(locators), root)
            return locators

    def describe(self, locator: str, series_id: Optional[int] = None) -> AudioFileRecord:
        path = self.resolve(locator, series_id)
        return AudioFileRecord(
            locator=locator,
            name=locator.split("/")[-1],
            mime_type=get_mime_type(locator),
            size_bytes=path.stat().st_size,
            duration_seconds=self._duration_probe(path),
        )

    def list_records(self, series_id: Optional[int] = None) -> List[AudioFileRecord]:
        """Describe every listed file, skipping ones that cannot be resolved.

        A locator can vanish between the directory scan and ``describe`` or be a
        symlink that points outside the audio root.
        """

        records: List[AudioFileRecord] = []
        for locator in self.list_files(series_id):
            try:
                records.append(self.describe(locator, series_id))
            except AudioNotFoundError as error:
                LOGGER.debug("Skipping unresolvable audio file %s: %s", locator, error)
        return records


    def resolve(self, locator: str, series_id: Optional[int] = None) -> Path:
        """Return the absolute path for *locator*.

        Raises :class:`AudioNotFoundError` when the locator escapes the audio
        root, does not exist, or is not an audio file.
        """

        root = self._root_for(series_id).resolve()
        with self._track_file_event("resolve_audio", locator=locator, series_id=series_id):
            if not locator or not is_audio_file(locator):
                raise AudioNotFoundError(f"Not an audio file: {locator!r}")
            candidate = (root / locator).resolve()
            try:
                candidate.relative_to(root)
            except ValueError as error:
                raise AudioNotFoundError(f"Locator escapes the audio root: {locator!r}") from error
            if not candidate.is_file():
                raise AudioNotFoundError(f"Audio file not found: {locator!r}")
            return candidate

    def _root_for(self, series_id: Optional[int]) -> Path:
        if series_id is None:
            return self._config.audio_root
        return self._config.series_root(series_id)


__all__ = [
    "AudioCatalog",
    "AudioFileRecord",
    "AudioNotFoundError",
    "content_type",
    "probe_duration",
]
