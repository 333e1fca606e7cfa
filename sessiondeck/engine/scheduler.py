"""Timer sources for debounced work.

``LoopScheduler`` arms real timers on the running asyncio loop.
``ManualScheduler`` keeps a virtual clock that only moves when told to,
so debounce and dwell-time behavior can be driven deterministically.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle: ...


class LoopScheduler:
    """Schedules coroutine callbacks with ``loop.call_later``.

    Must be used from inside a running event loop. Spawned tasks are
    tracked so ``drain()`` can wait for in-flight callbacks.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: TimerCallback) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._spawn, callback)

    def _spawn(self, callback: TimerCallback) -> None:
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for callbacks that already fired but have not finished."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


@dataclass
class ManualCall:
    when: float
    callback: TimerCallback
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock + timer queue advanced explicitly by the caller."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self._now = start
        self._calls: list[ManualCall] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> ManualCall:
        call = ManualCall(when=self._now + delay, callback=callback)
        self._calls.append(call)
        return call

    @property
    def pending_calls(self) -> int:
        return sum(1 for c in self._calls if not c.cancelled)

    def tick(self, seconds: float) -> None:
        """Move the clock forward without running any timers."""
        self._now += seconds

    async def advance(self, seconds: float) -> int:
        """Move the clock forward and run every timer that came due.

        Returns the number of callbacks run.
        """
        self._now += seconds
        due = sorted(
            (c for c in self._calls if not c.cancelled and c.when <= self._now),
            key=lambda c: c.when,
        )
        self._calls = [
            c for c in self._calls if not c.cancelled and c.when > self._now
        ]
        for call in due:
            await call.callback()
        return len(due)
