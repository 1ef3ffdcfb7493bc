"""Media element abstraction shared by the playback controller."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional, Protocol

from .scheduler import Cancellable, Scheduler


LOGGER = logging.getLogger(__name__)

MediaListener = Callable[[], Any]
DurationLookup = Callable[[str], Optional[float]]

MEDIA_EVENTS = ("emptied", "loadedmetadata", "play", "pause", "timeupdate", "ended")


class MediaElement(Protocol):
    """The subset of an audio element the controller drives."""

    src: Optional[str]
    current_time: float
    playback_rate: float

    @property
    def duration(self) -> Optional[float]:
        ...

    @property
    def paused(self) -> bool:
        ...

    @property
    def ended(self) -> bool:
        ...

    def load(self) -> None:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def add_listener(self, event: str, callback: MediaListener) -> None:
        ...


def duration_is_known(duration: Optional[float]) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


class SimulatedMediaElement:
    """Clock-driven stand-in for a platform audio element.

    Position advances with the scheduler clock while playing. Metadata arrives
    ``metadata_delay`` seconds after :meth:`load` when ``duration_lookup``
    knows the source; a lookup returning ``None`` models a stream whose
    metadata never shows up.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        duration_lookup: DurationLookup,
        *,
        metadata_delay: float = 0.05,
    ) -> None:
        self._scheduler = scheduler
        self._duration_lookup = duration_lookup
        self._metadata_delay = metadata_delay
        self._listeners: DefaultDict[str, List[MediaListener]] = defaultdict(list)
        self.src: Optional[str] = None
        self._duration: Optional[float] = None
        self._paused = True
        self._ended = False
        self._rate = 1.0
        self._anchor_position = 0.0
        self._anchor_time = scheduler.now()
        self._metadata_handle: Optional[Cancellable] = None
        self._end_handle: Optional[Cancellable] = None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def add_listener(self, event: str, callback: MediaListener) -> None:
        if event not in MEDIA_EVENTS:
            raise ValueError(f"Unknown media event: {event}")
        self._listeners[event].append(callback)

    def _dispatch(self, event: str) -> None:
        for callback in list(self._listeners[event]):
            callback()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ended(self) -> bool:
        return self._ended

    # ------------------------------------------------------------------
    # Position and rate
    # ------------------------------------------------------------------
    @property
    def current_time(self) -> float:
        if self._paused:
            return self._anchor_position
        elapsed = (self._scheduler.now() - self._anchor_time) * self._rate
        position = self._anchor_position + elapsed
        if duration_is_known(self._duration):
            position = min(position, self._duration)
        return position

    @current_time.setter
    def current_time(self, value: float) -> None:
        position = max(0.0, float(value))
        if duration_is_known(self._duration):
            position = min(position, self._duration)
        self._anchor_position = position
        self._anchor_time = self._scheduler.now()
        self._ended = False
        self._schedule_end()
        self._dispatch("timeupdate")

    @property
    def playback_rate(self) -> float:
        return self._rate

    @playback_rate.setter
    def playback_rate(self, value: float) -> None:
        self._anchor_position = self.current_time
        self._anchor_time = self._scheduler.now()
        self._rate = float(value)
        self._schedule_end()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def load(self) -> None:
        self._cancel(self._metadata_handle)
        self._cancel(self._end_handle)
        self._metadata_handle = None
        self._end_handle = None
        self._paused = True
        self._ended = False
        self._duration = None
        self._anchor_position = 0.0
        self._anchor_time = self._scheduler.now()
        self._dispatch("emptied")

        if not self.src:
            return
        duration = self._duration_lookup(self.src)
        if not duration_is_known(duration):
            LOGGER.debug("No metadata available for media source %s", self.src)
            return
        self._metadata_handle = self._scheduler.call_later(
            self._metadata_delay, lambda: self._metadata_ready(float(duration))
        )

    def _metadata_ready(self, duration: float) -> None:
        self._metadata_handle = None
        self._duration = duration
        self._dispatch("loadedmetadata")

    def play(self) -> None:
        if not self.src:
            LOGGER.debug("Ignoring play request without a media source")
            return
        if self._ended or (
            duration_is_known(self._duration) and self._anchor_position >= self._duration
        ):
            self._anchor_position = 0.0
            self._ended = False
        if not self._paused:
            return
        self._anchor_time = self._scheduler.now()
        self._paused = False
        self._schedule_end()
        self._dispatch("play")

    def pause(self) -> None:
        if self._paused:
            return
        self._anchor_position = self.current_time
        self._anchor_time = self._scheduler.now()
        self._paused = True
        self._cancel(self._end_handle)
        self._end_handle = None
        self._dispatch("pause")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _schedule_end(self) -> None:
        self._cancel(self._end_handle)
        self._end_handle = None
        if self._paused or not duration_is_known(self._duration) or self._rate <= 0:
            return
        remaining = (self._duration - self._anchor_position) / self._rate
        self._end_handle = self._scheduler.call_later(remaining, self._finish)

    def _finish(self) -> None:
        self._end_handle = None
        self._anchor_position = self._duration or 0.0
        self._anchor_time = self._scheduler.now()
        self._paused = True
        self._ended = True
        self._dispatch("pause")
        self._dispatch("ended")

    @staticmethod
    def _cancel(handle: Optional[Cancellable]) -> None:
        if handle is not None:
            handle.cancel()


__all__ = [
    "DurationLookup",
    "MEDIA_EVENTS",
    "MediaElement",
    "MediaListener",
    "SimulatedMediaElement",
    "duration_is_known",
]
