"""
Controller-owned asyncio timers.

A `PeriodicTask` runs an async callback every `interval` seconds until
stopped. `TimerSet` keeps at most one live task per name so a flow can cancel
everything it started in one call.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class PeriodicTask:
    """Repeating timer: sleep, then run the callback, until stopped."""

    def __init__(self, name: str, interval: float, callback: TimerCallback, repeat: bool = True):
        self.name = name
        self.interval = interval
        self.callback = callback
        self.repeat = repeat
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self):
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"timer:{self.name}")

    async def _run(self):
        while not self._stopped:
            await asyncio.sleep(self.interval)
            if self._stopped:
                break
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Timer '{self.name}' callback error: {e}", exc_info=True)
            if not self.repeat:
                break

    def stop(self):
        """
        Stop the timer.

        A callback that stops its own timer (e.g. by transitioning out of
        scanning) is not cancelled mid-flight; the loop exits after it returns.
        """
        self._stopped = True
        if self._task is None or self._task.done():
            return
        if self._task is not asyncio.current_task():
            self._task.cancel()


class TimerSet:
    """Named timers with at most one live instance per name."""

    def __init__(self):
        self._timers: Dict[str, PeriodicTask] = {}

    def start(self, name: str, interval: float, callback: TimerCallback) -> PeriodicTask:
        """Start a repeating timer, replacing any existing one with the same name."""
        return self._start(PeriodicTask(name, interval, callback))

    def call_later(self, name: str, delay: float, callback: TimerCallback) -> PeriodicTask:
        """Run callback once after delay."""
        return self._start(PeriodicTask(name, delay, callback, repeat=False))

    def _start(self, timer: PeriodicTask) -> PeriodicTask:
        self.cancel(timer.name)
        self._timers[timer.name] = timer
        timer.start()
        logger.debug(f"Timer started: {timer.name} ({timer.interval}s)")
        return timer

    def cancel(self, name: str):
        timer = self._timers.pop(name, None)
        if timer:
            timer.stop()
            logger.debug(f"Timer cancelled: {name}")

    def cancel_all(self):
        for name in list(self._timers):
            self.cancel(name)

    def is_running(self, name: str) -> bool:
        timer = self._timers.get(name)
        return timer is not None and timer.running

    def __contains__(self, name: str) -> bool:
        return self.is_running(name)

    def __len__(self) -> int:
        return sum(1 for timer in self._timers.values() if timer.running)
