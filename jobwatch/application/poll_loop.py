"""
Poll Loop

Timer-driven repeated invocation of an async fetch function.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickFunction = Callable[[], Awaitable[None]]


class PollLoop:
    """
    Invokes a coroutine function on a fixed interval until stopped.

    The first invocation happens one interval after start. A tick whose
    predecessor is still in flight is skipped rather than stacked.
    Stopping never cancels an in-flight invocation; callers discard its
    outcome themselves.
    """

    def __init__(self, interval: float, fn: TickFunction, name: str = "poll"):
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        self._interval = interval
        self._fn = fn
        self._name = name
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._stopped = False
        self.tick_count = 0
        self.skipped_ticks = 0

    @classmethod
    def start(cls, interval: float, fn: TickFunction, name: str = "poll") -> "PollLoop":
        """
        Create and start a poll loop.

        Args:
            interval: Seconds between invocations
            fn: Coroutine function invoked on every tick
            name: Label used in log messages

        Returns:
            Running PollLoop acting as its own handle
        """
        loop = cls(interval, fn, name)
        loop._timer = asyncio.get_running_loop().create_task(loop._run())
        return loop

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stopped

    def set_interval(self, interval: float) -> None:
        """Change the cadence; takes effect from the next tick."""
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        if interval != self._interval:
            logger.debug(f"{self._name} interval changed {self._interval}s -> {interval}s")
        self._interval = interval

    def stop(self) -> None:
        """Cancel future invocations. Stopping twice is a no-op."""
        if self._stopped:
            return
        self._stopped = True
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        logger.debug(f"{self._name} stopped after {self.tick_count} tick(s)")

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                return
            if self._in_flight is not None and not self._in_flight.done():
                self.skipped_ticks += 1
                logger.debug(f"{self._name} tick skipped, previous invocation still in flight")
                continue
            self.tick_count += 1
            self._in_flight = asyncio.get_running_loop().create_task(self._invoke())

    async def _invoke(self) -> None:
        try:
            await self._fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Unhandled error in {self._name} tick: {e}", exc_info=True)
