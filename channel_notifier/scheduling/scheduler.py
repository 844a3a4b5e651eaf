"""Periodic task scheduling with explicit cancellation.

Sampling ticks and feed poll cycles both run on a Scheduler. Callers hold
the returned TaskHandle and cancel it on any terminal transition, so no
component keeps interval ids or boolean "running" flags of its own.
"""

import asyncio
import heapq
import inspect
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class TaskHandle:
    """Handle to a scheduled repeating callback."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cancelled = False
        self._on_cancel: Callable[[], None] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop future runs. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Scheduler(ABC):
    """Source of time and periodic execution."""

    @abstractmethod
    def now(self) -> float:
        """Current time in monotonic seconds."""

    @abstractmethod
    def schedule(self, fn: Callback, interval: float, name: str = "") -> TaskHandle:
        """Run ``fn`` every ``interval`` seconds until the handle is cancelled.

        The first run happens one interval from now.
        """


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``.

    Coroutine results are wrapped in tasks. A callback that raises is
    logged and keeps its schedule.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.monotonic()

    def schedule(self, fn: Callback, interval: float, name: str = "") -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        handle = TaskHandle(name=name)
        timer: asyncio.TimerHandle | None = None

        def _run() -> None:
            nonlocal timer
            if handle.cancelled:
                return
            try:
                result = fn()
                if inspect.isawaitable(result):
                    task = self.loop.create_task(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._task_done)
            except Exception as e:
                logger.warning("Scheduled task %s failed: %s", name or fn, e)
            if not handle.cancelled:
                timer = self.loop.call_later(interval, _run)

        def _cancel() -> None:
            if timer is not None:
                timer.cancel()

        timer = self.loop.call_later(interval, _run)
        handle._on_cancel = _cancel
        return handle

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Scheduled coroutine failed: %s", exc)

    async def drain(self) -> None:
        """Wait for in-flight coroutine runs to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ManualScheduler(Scheduler):
    """Virtual-time scheduler. Nothing runs until ``advance()`` is called.

    Usage:
        scheduler = ManualScheduler()
        handle = scheduler.schedule(tick, 2.0)
        scheduler.advance(10.0)  # tick runs at t=2, 4, 6, 8, 10
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, TaskHandle, Callback, float]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule(self, fn: Callback, interval: float, name: str = "") -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = TaskHandle(name=name)
        heapq.heappush(
            self._queue, (self._now + interval, next(self._seq), handle, fn, interval)
        )
        return handle

    @property
    def pending(self) -> int:
        """Number of live scheduled tasks."""
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, seconds: float) -> None:
        """Move virtual time forward, running every callback that falls due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, fn, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            fn()
            if not handle.cancelled:
                heapq.heappush(
                    self._queue, (due + interval, next(self._seq), handle, fn, interval)
                )
        self._now = target
