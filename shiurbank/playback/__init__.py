"""Headless playback state machine and its collaborators."""

from .controller import (
    ALLOWED_RATES,
    PlayableItem,
    PlaybackController,
    PlaybackSession,
    PlaybackState,
    PlayerView,
    UnsupportedRateError,
    format_time,
)
from .formats import FormatProbe, StaticFormatProbe, can_play_format, get_mime_type
from .media import MediaElement, SimulatedMediaElement
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler

__all__ = [
    "ALLOWED_RATES",
    "AsyncioScheduler",
    "FormatProbe",
    "ManualScheduler",
    "MediaElement",
    "PlayableItem",
    "PlaybackController",
    "PlaybackSession",
    "PlaybackState",
    "PlayerView",
    "Scheduler",
    "SimulatedMediaElement",
    "StaticFormatProbe",
    "UnsupportedRateError",
    "can_play_format",
    "format_time",
    "get_mime_type",
]
