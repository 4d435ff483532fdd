"""Process-wide serializing queue for the GDELT news archive.

GDELT answers bursts with 429s and temporary bans, so every request in the
process, regardless of which finding or caller triggered it, goes through
one governor that:
- runs at most one request at a time (FIFO via asyncio.Lock)
- waits until min_interval seconds have passed since the previous dispatch

The governor holds no state other than the lock and the last dispatch time.
The lock is recreated lazily per event loop so the module-level instance
survives test runners and applications that start several loops.

Usage:
    from evidence_engine.verification.rate_governor import gdelt_governor

    payload = await gdelt_governor.run(lambda: fetch(url))
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from evidence_engine.config.logging import get_logger
from evidence_engine.config.settings import settings

T = TypeVar("T")


class RateGovernor:
    """
    Serialize calls and enforce a minimum spacing between dispatches.

    Attributes:
        name: Label used in log lines
        min_interval: Minimum seconds between consecutive dispatches
        last_dispatch: Monotonic timestamp of the last dispatch (None before first)
        in_flight: Number of calls currently executing (0 or 1)
    """

    def __init__(
        self,
        min_interval: float,
        name: str = "governor",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize governor.

        Args:
            min_interval: Minimum seconds between dispatches
            name: Label for logs
            clock: Monotonic clock (injectable for tests)
            sleep: Async sleep (injectable for tests)
        """
        self.name = name
        self.min_interval = min_interval
        self.last_dispatch: Optional[float] = None
        self.in_flight = 0
        self._clock = clock
        self._sleep = sleep
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = get_logger(f"RateGovernor.{name}")

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def wait_time(self) -> float:
        """Seconds the next dispatch would have to wait right now."""
        if self.last_dispatch is None:
            return 0.0
        elapsed = self._clock() - self.last_dispatch
        return max(0.0, self.min_interval - elapsed)

    async def run(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Queue work behind earlier calls, wait out the spacing, then run it.

        Exceptions raised by work propagate to the caller; the queue keeps
        moving for everyone else.

        Args:
            work: Zero-argument coroutine factory performing one request

        Returns:
            Whatever work returns
        """
        async with self._get_lock():
            delay = self.wait_time()
            if delay > 0:
                self._logger.debug(f"Spacing requests: waiting {delay:.2f}s")
                await self._sleep(delay)
            self.last_dispatch = self._clock()
            self.in_flight += 1
            try:
                return await work()
            finally:
                self.in_flight -= 1


# Shared by every GDELT adapter in the process
gdelt_governor = RateGovernor(min_interval=settings.news_min_interval, name="gdelt")
