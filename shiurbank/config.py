"""Configuration loading utilities for the ShiurBank player."""

from __future__ import annotations

import contextlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple


LOGGER = logging.getLogger(__name__)


_PERMISSION_SENTINEL = ".shiurbank_write_check"

DEFAULT_SUPPORTED_MIME_TYPES: Tuple[str, ...] = (
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    'audio/ogg; codecs="opus"',
    "audio/mp4",
    "audio/aac",
    "audio/flac",
    "audio/webm",
)


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The preferred location is returned when it can be created and written to.
    Otherwise each candidate in ``fallbacks`` is tried in order and the first
    writable one is returned together with a flag indicating that a fallback
    was used. When nothing works the original ``preferred`` path is returned.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


@dataclass(frozen=True)
class PlayerConfig:
    """Tunables for the playback controller."""

    skip_seconds: float = 15.0
    ready_poll_interval: float = 0.1
    max_ready_polls: Optional[int] = 300
    fallback_interval: float = 0.25
    supported_mime_types: Tuple[str, ...] = DEFAULT_SUPPORTED_MIME_TYPES

    @classmethod
    def from_mapping(cls, mapping: Optional[Dict[str, Any]]) -> "PlayerConfig":
        if not mapping:
            return cls()
        defaults = cls()
        max_polls = mapping.get("max_ready_polls", defaults.max_ready_polls)
        supported = mapping.get("supported_mime_types")
        return cls(
            skip_seconds=float(mapping.get("skip_seconds", defaults.skip_seconds)),
            ready_poll_interval=float(
                mapping.get("ready_poll_interval", defaults.ready_poll_interval)
            ),
            max_ready_polls=None if max_polls is None else int(max_polls),
            fallback_interval=float(
                mapping.get("fallback_interval", defaults.fallback_interval)
            ),
            supported_mime_types=(
                tuple(str(item) for item in supported)
                if supported is not None
                else defaults.supported_mime_types
            ),
        )


@dataclass(frozen=True)
class AppConfig:
    """Simple container describing runtime paths for the application."""

    storage_root: Path
    audio_root: Path
    player: PlayerConfig = field(default_factory=PlayerConfig)

    @property
    def settings_file(self) -> Path:
        """Location of the persisted player preferences."""

        return (self.storage_root / "settings.json").resolve()

    def series_root(self, series_id: int) -> Path:
        """Directory holding the recordings of a single series."""

        return (self.audio_root / f"series-{int(series_id)}").resolve()

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_storage = (base_path / mapping["storage_root"]).resolve()
        storage_fallback = Path.home() / ".shiurbank" / "storage"
        storage_root, _ = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(storage_fallback,),
        )

        preferred_audio = (base_path / mapping["audio_root"]).resolve()
        audio_root, _ = _select_writable_directory(
            preferred_audio,
            label="audio",
            fallbacks=(storage_root / "_audio",),
        )

        return cls(
            storage_root=storage_root,
            audio_root=audio_root,
            player=PlayerConfig.from_mapping(mapping.get("player")),
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the application configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["AppConfig", "PlayerConfig", "DEFAULT_SUPPORTED_MIME_TYPES", "load_config"]
