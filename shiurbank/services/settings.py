"""Persistence helpers for player preferences."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from ..config import AppConfig
from ..playback.controller import UnsupportedRateError, validate_rate


LOGGER = logging.getLogger(__name__)

MAX_SKIP_SECONDS = 300.0


@dataclass
class PlayerSettings:
    """Container for customisable player options."""

    playback_rate: float = 1.0
    skip_seconds: float = 15.0


def _coerce_skip_seconds(value: Any, default: float) -> float:
    """Return *value* as a skip interval, or *default* when it is missing or invalid."""

    if value is None:
        return default
    seconds = None
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            seconds = float(value)
        except ValueError:
            seconds = None
    if seconds is None or not 0 < seconds <= MAX_SKIP_SECONDS:
        LOGGER.warning("Ignoring stored skip interval %r", value)
        return default
    return seconds



class SettingsStore:
    """Load and store :class:`PlayerSettings` alongside other persisted assets."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._path = config.settings_file
        self._defaults = PlayerSettings(skip_seconds=config.player.skip_seconds)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PlayerSettings:
        settings = PlayerSettings(**asdict(self._defaults))
        if not self._path.exists():
            return settings

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return settings
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring settings file %s: expected a JSON object", self._path)
            return settings

        try:
            settings.playback_rate = validate_rate(payload.get("playback_rate", settings.playback_rate))
        except UnsupportedRateError:
            LOGGER.warning("Ignoring stored playback rate %r", payload.get("playback_rate"))
        settings.skip_seconds = _coerce_skip_seconds(
            payload.get("skip_seconds"), self._defaults.skip_seconds
        )
        return settings

    def save(self, settings: PlayerSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(settings)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")


__all__ = ["MAX_SKIP_SECONDS", "PlayerSettings", "SettingsStore"]
