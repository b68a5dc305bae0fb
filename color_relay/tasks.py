"""Restartable periodic tasks on the asyncio loop."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Set, Union

log = logging.getLogger(__name__)

TickFn = Callable[[], Union[None, Awaitable[None]]]


class PeriodicTask:
    """Runs `fn` every `interval` seconds until stopped.

    The first tick fires one interval after `start()`. At most one schedule
    is live: `start()` cancels the previous one before scheduling anew.
    Exceptions from a tick are logged and the schedule keeps going.

    A tick that returns an awaitable is run as its own task, so a slow tick
    never delays the next one. `stop()` only cancels the schedule; ticks
    already in flight are left to finish.
    """

    def __init__(self, name: str, interval: float, fn: TickFn) -> None:
        self.name = name
        self.interval = interval
        self._fn = fn
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Future] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> asyncio.Task:
        """Cancel any prior run and schedule a new one; returns the task handle."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self._task

    def stop(self) -> None:
        """Cancel the current run, if any. Idempotent."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _spawn(self, awaitable) -> None:
        tick = asyncio.ensure_future(awaitable)
        self._inflight.add(tick)
        tick.add_done_callback(self._collect)

    def _collect(self, tick: asyncio.Future) -> None:
        self._inflight.discard(tick)
        if tick.cancelled():
            return
        exc = tick.exception()
        if exc is not None:
            log.error("%s tick failed", self.name, exc_info=exc)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                result = self._fn()
                if inspect.isawaitable(result):
                    self._spawn(result)
            except Exception:
                # Never let one failed tick kill the schedule
                log.exception("%s tick failed", self.name)
