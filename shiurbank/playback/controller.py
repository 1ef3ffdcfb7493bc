"""Playback state controller shared by every list of playable recordings.

The controller owns one media element and a list of :class:`PlayableItem`
entries. Only one item is ever attached to the media element; the per-item
views and the shared :class:`PlayerView` are refreshed after every mutating
operation and continuously (once per frame) while audio is playing.

State transitions follow ``Idle -> Loading -> Playing <-> Paused -> Ended``.
Switching to another item from any state pauses the current one and goes
straight to ``Loading`` for the new item.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from ..config import PlayerConfig
from ..services.events import EventType, emit_playback_event, emit_structured_event
from .formats import (
    DEFAULT_MIME_TYPE,
    FormatProbe,
    StaticFormatProbe,
    can_play_format,
    get_file_extension,
    get_mime_type,
)
from .media import MediaElement, duration_is_known
from .scheduler import Cancellable, Scheduler


LOGGER = logging.getLogger(__name__)

PLAY_GLYPH = "▶"
PAUSE_GLYPH = "⏸"
DURATION_PLACEHOLDER = "--:--"
ALLOWED_RATES = (0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0)
STREAM_URL_PREFIX = "/api/audio/stream/"


class UnsupportedRateError(ValueError):
    """Raised when a playback rate outside :data:`ALLOWED_RATES` is requested."""


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


def format_time(seconds: Optional[float]) -> str:
    """Render *seconds* as ``M:SS``."""

    if seconds is None or not math.isfinite(seconds):
        return "0:00"
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def default_stream_url(locator: str) -> str:
    return STREAM_URL_PREFIX + quote(locator, safe="")


def validate_rate(multiplier: Union[float, str]) -> float:
    """Return *multiplier* as a float if it is one of the allowed rates."""

    try:
        rate = float(multiplier)
    except (TypeError, ValueError) as error:
        raise UnsupportedRateError(f"Invalid playback rate: {multiplier!r}") from error
    if rate not in ALLOWED_RATES:
        allowed = ", ".join(f"{value:g}" for value in ALLOWED_RATES)
        raise UnsupportedRateError(f"Playback rate {rate:g} is not one of: {allowed}")
    return rate


@dataclass
class ItemView:
    """UI handle of one list entry."""

    glyph: str = PLAY_GLYPH
    playing: bool = False
    interactive: bool = True
    label: Optional[str] = None


@dataclass
class PlayableItem:
    identifier: str
    locator: str
    title: str
    mime_type: str = DEFAULT_MIME_TYPE
    view: ItemView = field(default_factory=ItemView)

    @classmethod
    def from_locator(cls, locator: str, *, title: Optional[str] = None) -> "PlayableItem":
        return cls(
            identifier=locator,
            locator=locator,
            title=title or locator.split("/")[-1],
            mime_type=get_mime_type(locator),
        )


@dataclass
class PlayerView:
    """The shared "now playing" panel."""

    visible: bool = False
    title: str = ""
    glyph: str = PLAY_GLYPH
    progress_percent: float = 0.0
    elapsed_text: str = "0:00"
    duration_text: str = DURATION_PLACEHOLDER


class PlaybackSession:
    """Single owner of the "currently playing" state."""

    def __init__(self, media: MediaElement, *, playback_rate: float = 1.0) -> None:
        self.media = media
        self.active_item_id: Optional[str] = None
        self.state = PlaybackState.IDLE
        self.playback_rate = validate_rate(playback_rate)

    @property
    def current_time(self) -> float:
        return self.media.current_time

    @property
    def duration(self) -> Optional[float]:
        return self.media.duration

    @property
    def paused(self) -> bool:
        return self.media.paused


class PlaybackController:
    """Drive a shared media element and keep item views in sync with it."""

    def __init__(
        self,
        session: PlaybackSession,
        scheduler: Scheduler,
        *,
        format_probe: FormatProbe,
        stream_url: Callable[[str], str] = default_stream_url,
        skip_interval: float = 15.0,
        ready_poll_interval: float = 0.1,
        max_ready_polls: Optional[int] = 300,
        fallback_interval: float = 0.25,
    ) -> None:
        self._session = session
        self._media = session.media
        self._scheduler = scheduler
        self._probe = format_probe
        self._stream_url = stream_url
        self.skip_interval = float(skip_interval)
        self._ready_poll_interval = ready_poll_interval
        self._max_ready_polls = max_ready_polls
        self._fallback_interval = fallback_interval
        self._items: Dict[str, PlayableItem] = {}
        self.player_view = PlayerView()

        self._frame_handle: Optional[Cancellable] = None
        self._fallback_handle: Optional[Cancellable] = None
        self._ready_handle: Optional[Cancellable] = None
        self._ready_polls = 0

        self._media.add_listener("loadedmetadata", self._on_loaded_metadata)
        self._media.add_listener("play", self._on_play)
        self._media.add_listener("pause", self._on_pause)
        self._media.add_listener("ended", self._on_ended)
        self.refresh()

    @classmethod
    def from_config(
        cls,
        config: PlayerConfig,
        session: PlaybackSession,
        scheduler: Scheduler,
        *,
        format_probe: Optional[FormatProbe] = None,
        stream_url: Callable[[str], str] = default_stream_url,
    ) -> "PlaybackController":
        return cls(
            session,
            scheduler,
            format_probe=format_probe or StaticFormatProbe(config.supported_mime_types),
            stream_url=stream_url,
            skip_interval=config.skip_seconds,
            ready_poll_interval=config.ready_poll_interval,
            max_ready_polls=config.max_ready_polls,
            fallback_interval=config.fallback_interval,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def state(self) -> PlaybackState:
        return self._session.state

    @property
    def items(self) -> List[PlayableItem]:
        return list(self._items.values())

    @property
    def active_item(self) -> Optional[PlayableItem]:
        active_id = self._session.active_item_id
        return self._items.get(active_id) if active_id is not None else None

    def get_item(self, identifier: str) -> Optional[PlayableItem]:
        return self._items.get(identifier)

    # ------------------------------------------------------------------
    # Item registration
    # ------------------------------------------------------------------
    def register_items(self, items: Iterable[PlayableItem]) -> List[PlayableItem]:
        """Replace the list of playable items.

        Items whose MIME type the format probe rejects are made
        non-interactive and labelled; they can never become active.
        """

        registered: Dict[str, PlayableItem] = {}
        for item in items:
            supported = can_play_format(self._probe, item.mime_type)
            item.view.interactive = supported
            if supported:
                item.view.label = None
            else:
                extension = get_file_extension(item.locator)
                if extension:
                    item.view.label = f"Cannot play .{extension} files"
                else:
                    item.view.label = "Cannot play files without an extension"
                LOGGER.debug("Marking %s as unsupported (%s)", item.locator, item.mime_type)
            registered[item.identifier] = item
        self._items = registered
        self.refresh()
        return self.items

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def play(self, item: Union[PlayableItem, str]) -> bool:
        """Start *item*, or pause it if it is the one already playing."""

        identifier = item.identifier if isinstance(item, PlayableItem) else str(item)
        target = self._items.get(identifier)
        if target is None:
            LOGGER.debug("Ignoring play request for unknown item %s", identifier)
            return False
        if not target.view.interactive:
            LOGGER.debug("Ignoring play request for unsupported item %s", identifier)
            return False

        session = self._session
        if session.active_item_id == target.identifier and not self._media.paused:
            self._media.pause()
            return True

        self._cancel_ready_poll()
        session.active_item_id = target.identifier
        # Loading first: the pause of the previous item must not register as Paused.
        self._transition(PlaybackState.LOADING)
        if not self._media.paused:
            self._media.pause()

        self.player_view.visible = True
        self.player_view.title = target.title

        self._media.src = self._stream_url(target.locator)
        self._media.load()
        self._media.playback_rate = session.playback_rate
        self.refresh()

        self._ready_polls = 0
        self._attempt_start()
        return True

    def toggle_play_pause(self) -> bool:
        session = self._session
        if session.active_item_id is None:
            return False
        if session.state is PlaybackState.LOADING:
            return False
        if session.state is PlaybackState.IDLE:
            return self.play(session.active_item_id)

        if self._media.paused:
            self._media.play()
        else:
            self._media.pause()
        self.refresh()
        return True

    def skip_by(self, delta_seconds: float) -> bool:
        if self._session.active_item_id is None:
            return False
        target = self._media.current_time + float(delta_seconds)
        duration = self._media.duration
        if duration_is_known(duration):
            target = min(max(0.0, target), duration)
        self._media.current_time = target
        self.refresh()
        return True

    def skip_forward(self) -> bool:
        return self.skip_by(self.skip_interval)

    def skip_backward(self) -> bool:
        return self.skip_by(-self.skip_interval)

    def seek_to(self, fraction: float) -> bool:
        duration = self._media.duration
        if not duration_is_known(duration):
            return False
        clamped = min(max(0.0, float(fraction)), 1.0)
        self._media.current_time = clamped * duration
        self.refresh()
        return True

    def set_rate(self, multiplier: Union[float, str]) -> float:
        rate = validate_rate(multiplier)
        self._session.playback_rate = rate
        self._media.playback_rate = rate
        emit_structured_event(
            EventType.PLAYBACK,
            "Playback rate changed",
            payload={"rate": rate},
            level=logging.DEBUG,
        )
        self.refresh()
        return rate

    def close(self) -> None:
        """Cancel every pending frame, timer and metadata poll."""

        self._stop_frame_loop()
        self._stop_fallback_updates()
        self._cancel_ready_poll()

    # ------------------------------------------------------------------
    # UI refresh
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        active_id = self._session.active_item_id
        playing = not self._media.paused
        for item in self._items.values():
            is_playing = playing and item.identifier == active_id
            item.view.playing = is_playing
            item.view.glyph = PAUSE_GLYPH if is_playing else PLAY_GLYPH
        self.player_view.glyph = PAUSE_GLYPH if playing else PLAY_GLYPH
        self._update_progress()

    def _update_progress(self) -> None:
        view = self.player_view
        position = self._media.current_time
        duration = self._media.duration
        if duration_is_known(duration):
            view.progress_percent = min(100.0, max(0.0, position / duration * 100.0))
            view.duration_text = format_time(duration)
        else:
            view.progress_percent = 0.0
            view.duration_text = DURATION_PLACEHOLDER
        view.elapsed_text = format_time(position)

    # ------------------------------------------------------------------
    # Metadata wait
    # ------------------------------------------------------------------
    def _attempt_start(self) -> None:
        self._ready_handle = None
        if duration_is_known(self._media.duration):
            self._media.play()
            return

        if self._max_ready_polls is not None and self._ready_polls >= self._max_ready_polls:
            LOGGER.warning(
                "Media metadata for %s did not arrive after %s polls; giving up",
                self._session.active_item_id,
                self._ready_polls,
            )
            self._transition(PlaybackState.IDLE)
            self.refresh()
            return

        self._ready_polls += 1
        self._ready_handle = self._scheduler.call_later(
            self._ready_poll_interval, self._attempt_start
        )

    def _cancel_ready_poll(self) -> None:
        if self._ready_handle is not None:
            self._ready_handle.cancel()
            self._ready_handle = None

    # ------------------------------------------------------------------
    # Frame loop and fallback timer
    # ------------------------------------------------------------------
    def _start_frame_loop(self) -> None:
        self._stop_frame_loop()
        if not self._media.paused:
            self._animate()

    def _animate(self, _timestamp: Optional[float] = None) -> None:
        self._frame_handle = None
        self._update_progress()
        if not self._media.paused and not self._media.ended:
            self._frame_handle = self._scheduler.request_frame(self._animate)

    def _stop_frame_loop(self) -> None:
        if self._frame_handle is not None:
            self._frame_handle.cancel()
            self._frame_handle = None

    def _start_fallback_updates(self) -> None:
        self._stop_fallback_updates()
        if self._fallback_interval > 0:
            self._fallback_handle = self._scheduler.call_later(
                self._fallback_interval, self._fallback_tick
            )

    def _fallback_tick(self) -> None:
        self._fallback_handle = None
        if self._media.paused or self._media.ended:
            return
        self._update_progress()
        self._fallback_handle = self._scheduler.call_later(
            self._fallback_interval, self._fallback_tick
        )

    def _stop_fallback_updates(self) -> None:
        if self._fallback_handle is not None:
            self._fallback_handle.cancel()
            self._fallback_handle = None

    # ------------------------------------------------------------------
    # Media events
    # ------------------------------------------------------------------
    def _on_loaded_metadata(self) -> None:
        emit_structured_event(
            EventType.PLAYBACK,
            "Metadata loaded",
            payload={
                "item": self._session.active_item_id,
                "duration": self._media.duration,
            },
            level=logging.DEBUG,
        )
        self.refresh()

    def _on_play(self) -> None:
        self._transition(PlaybackState.PLAYING)
        self.refresh()
        self._start_frame_loop()
        self._start_fallback_updates()

    def _on_pause(self) -> None:
        self._stop_frame_loop()
        self._stop_fallback_updates()
        if self._session.state is not PlaybackState.LOADING:
            self._transition(PlaybackState.PAUSED)
        self.refresh()

    def _on_ended(self) -> None:
        self._stop_frame_loop()
        self._stop_fallback_updates()
        self._media.current_time = 0
        self._transition(PlaybackState.ENDED)
        self.refresh()

    def _transition(self, state: PlaybackState) -> None:
        previous = self._session.state
        self._session.state = state
        if previous is not state:
            emit_playback_event(previous, state, item=self._session.active_item_id)


__all__ = [
    "ALLOWED_RATES",
    "DURATION_PLACEHOLDER",
    "ItemView",
    "PAUSE_GLYPH",
    "PLAY_GLYPH",
    "PlayableItem",
    "PlaybackController",
    "PlaybackSession",
    "PlaybackState",
    "PlayerView",
    "UnsupportedRateError",
    "default_stream_url",
    "format_time",
    "validate_rate",
]
