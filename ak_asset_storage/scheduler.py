"""A minimal scheduler running one task at a fixed interval."""

from __future__ import annotations

import asyncio
import math

from .errors import ApplicationError, AppError
from .ports import ScheduledTask


class _Interval:
    """Ticks at multiples of a period; missed ticks are skipped."""

    def __init__(self, period: float) -> None:
        self._loop = asyncio.get_running_loop()
        self._period = period
        self._start = self._loop.time()
        self._deadline = self._start

    async def tick(self) -> None:
        now = self._loop.time()
        if now < self._deadline:
            await asyncio.sleep(self._deadline - now)
            self._deadline += self._period
            return
        elapsed = now - self._start
        self._deadline = self._start + (math.floor(elapsed / self._period) + 1) * self._period


class SimpleScheduler:
    """Runs a :class:`ScheduledTask` repeatedly in the background."""

    def __init__(self, task: ScheduledTask) -> None:
        self._task = task
        self._handle: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Start running the task; fails if already started."""
        if self._handle is not None:
            raise ApplicationError("Scheduler already started")
        period = self._task.interval()
        if period <= 0:
            raise ValueError("interval must be positive")
        self._handle = asyncio.get_running_loop().create_task(self._run_loop(period))

    async def _run_loop(self, period: float) -> None:
        interval = _Interval(period)
        task = self._task
        while task.should_continue():
            await interval.tick()
            try:
                await task.run()
            except AppError as exc:
                task.on_error(exc)

    def stop(self) -> None:
        """Stop the task and cancel the background loop."""
        self._task.stop()
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def is_running(self) -> bool:
        return self._handle is not None

    def task(self) -> ScheduledTask:
        return self._task