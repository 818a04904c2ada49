"""Minimum-spacing rate limiter for outbound LLM calls.

One limiter is owned by each GenerationClient and every provider call awaits
it first, so calls made through that client are spaced by at least
``min_interval`` seconds.  The clock and sleep functions are injectable for
tests.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from insightsync.config import LLM_MIN_INTERVAL_SECONDS
from insightsync.observability.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Serializes calls so consecutive acquisitions are ``min_interval`` apart."""

    def __init__(
        self,
        min_interval: float = LLM_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_call(self) -> float | None:
        return self._last_call

    def wait_time(self) -> float:
        """Seconds the next caller must wait (0 when the interval has elapsed)."""
        if self._last_call is None:
            return 0.0
        elapsed = self._clock() - self._last_call
        return max(0.0, self.min_interval - elapsed)

    async def acquire(self) -> float:
        """
        Wait until the minimum interval has elapsed, then stamp the call time.

        Returns:
            Seconds spent waiting
        """
        async with self._lock:
            waited = self.wait_time()
            if waited > 0:
                logger.debug("Rate limiting - waiting %.3fs", waited)
                await self._sleep(waited)
            self._last_call = self._clock()
            return waited
