"""Timer ownership helpers for the capture loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger("wordcoach.scheduling")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay (seconds)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class Countdown:
    """A single owned timer: armed at most once at a time, cancelled in one place.

    A callback that fires after ``cancel()`` is dropped, so a late timer
    can never act on a state that has already moved on.
    """

    def __init__(self, scheduler: Scheduler, delay: float, on_elapsed: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self.delay = delay
        self._on_elapsed = on_elapsed
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        if self._handle is not None:
            return
        self._generation += 1
        generation = self._generation
        self._handle = self._scheduler.call_later(self.delay, lambda: self._fire(generation))

    def cancel(self) -> None:
        handle, self._handle = self._handle, None
        self._generation += 1
        if handle is not None:
            handle.cancel()

    def _fire(self, generation: int) -> None:
        if generation != self._generation or self._handle is None:
            LOGGER.debug("Dropping stale countdown callback")
            return
        self._handle = None
        self._on_elapsed()


__all__ = ["AsyncioScheduler", "Countdown", "Scheduler", "TimerHandle"]
