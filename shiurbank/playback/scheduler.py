"""Frame and timer scheduling primitives for the playback controller."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, List, Optional, Protocol, Tuple


DEFAULT_FRAME_INTERVAL = 1.0 / 60.0


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Minimal event-loop surface the controller relies on."""

    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> Cancellable:
        ...

    def request_frame(self, callback: Callable[[float], Any]) -> Cancellable:
        ...


class AsyncioScheduler:
    """Schedule frames and timers on an asyncio event loop."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        *,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._frame_interval = frame_interval

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay), callback)

    def request_frame(self, callback: Callable[[float], Any]) -> asyncio.TimerHandle:
        return self._loop.call_later(self._frame_interval, lambda: callback(self._loop.time()))


class ScheduledCall:
    """Handle returned by :class:`ManualScheduler`."""

    __slots__ = ("when", "callback", "is_frame", "cancelled")

    def __init__(self, when: float, callback: Callable[[], Any], *, is_frame: bool) -> None:
        self.when = when
        self.callback = callback
        self.is_frame = is_frame
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic virtual clock for headless harnesses.

    Nothing runs until :meth:`advance` is called. Calls scheduled for the same
    instant run in the order they were scheduled, and calls scheduled while
    advancing run in the same pass when they fall inside the window.
    """

    def __init__(self, *, frame_interval: float = DEFAULT_FRAME_INTERVAL, start: float = 0.0) -> None:
        self._now = float(start)
        self._frame_interval = frame_interval
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, delay: float, callback: Callable[[], Any], *, is_frame: bool) -> ScheduledCall:
        entry = ScheduledCall(self._now + max(0.0, delay), callback, is_frame=is_frame)
        heapq.heappush(self._queue, (entry.when, next(self._sequence), entry))
        return entry

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        return self._push(delay, callback, is_frame=False)

    def request_frame(self, callback: Callable[[float], Any]) -> ScheduledCall:
        return self._push(self._frame_interval, lambda: callback(self._now), is_frame=True)

    @property
    def pending_frames(self) -> int:
        return sum(1 for _, _, entry in self._queue if entry.is_frame and not entry.cancelled)

    @property
    def pending_calls(self) -> int:
        return sum(1 for _, _, entry in self._queue if not entry.is_frame and not entry.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, running everything that falls due."""

        deadline = self._now + max(0.0, seconds)
        while self._queue and self._queue[0][0] <= deadline:
            when, _, entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = max(self._now, when)
            entry.callback()
        self._now = deadline


__all__ = [
    "AsyncioScheduler",
    "Cancellable",
    "DEFAULT_FRAME_INTERVAL",
    "ManualScheduler",
    "ScheduledCall",
    "Scheduler",
]
