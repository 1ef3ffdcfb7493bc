"""Audio format detection and capability queries."""

from __future__ import annotations

from typing import Dict, Iterable, Literal, Protocol, Tuple


CanPlayVerdict = Literal["", "maybe", "probably"]

DEFAULT_MIME_TYPE = "audio/mpeg"

# Extension lookup used when deciding whether a player can handle a file.
_MIME_TYPES: Dict[str, str] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "opus": 'audio/ogg; codecs="opus"',
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "webm": "audio/webm",
    "weba": "audio/webm",
    "oga": "audio/ogg",
    "mp4": "audio/mp4",
    "m4b": "audio/mp4",
    "3gp": "audio/3gpp",
    "amr": "audio/amr",
    "aiff": "audio/aiff",
    "aif": "audio/aiff",
    "wma": "audio/x-ms-wma",
}

AUDIO_EXTENSIONS: Tuple[str, ...] = tuple(_MIME_TYPES)


def get_file_extension(file_name: str) -> str:
    """Return the lower-cased extension of *file_name* without the dot."""

    parts = file_name.lower().split(".")
    return parts[-1] if len(parts) > 1 else ""


def get_mime_type(file_name: str) -> str:
    """Return the MIME type a player should be asked about for *file_name*."""

    return _MIME_TYPES.get(get_file_extension(file_name), DEFAULT_MIME_TYPE)


def is_audio_file(file_name: str) -> bool:
    return get_file_extension(file_name) in _MIME_TYPES


def _base_type(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


class FormatProbe(Protocol):
    """Answer whether a player can decode a given MIME type."""

    def can_play_type(self, mime_type: str) -> CanPlayVerdict:
        ...


class StaticFormatProbe:
    """Capability query backed by a fixed list of supported MIME types.

    Exact matches (including codec parameters) are reported as ``"probably"``.
    When only the base type is listed the answer is ``"maybe"``, mirroring how
    media players hedge on codec parameters they have not been told about.
    """

    def __init__(self, supported: Iterable[str]) -> None:
        self._exact = {item.strip().lower() for item in supported if item and item.strip()}
        self._base = {_base_type(item) for item in self._exact}

    def can_play_type(self, mime_type: str) -> CanPlayVerdict:
        normalized = (mime_type or "").strip().lower()
        if not normalized:
            return ""
        if normalized in self._exact:
            return "probably"
        if _base_type(normalized) in self._base:
            return "maybe"
        return ""


def can_play_format(probe: FormatProbe, mime_type: str) -> bool:
    """Return ``True`` unless *probe* flatly rejects *mime_type*."""

    return probe.can_play_type(mime_type) != ""


__all__ = [
    "AUDIO_EXTENSIONS",
    "CanPlayVerdict",
    "DEFAULT_MIME_TYPE",
    "FormatProbe",
    "StaticFormatProbe",
    "can_play_format",
    "get_file_extension",
    "get_mime_type",
    "is_audio_file",
]
