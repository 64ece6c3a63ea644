"""
Rate-limited request queue.

The World Bank API starts throttling when several indicator pages are
requested at once, so indicator calls go through a queue that allows a fixed
number of requests in flight and a minimum gap before each new request.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimitedQueue:
    """
    Runs submitted coroutine factories under a concurrency cap and a fixed
    inter-request delay.

    Usage:
        queue = RateLimitedQueue(concurrency=1, delay=1.0)
        result = await queue.submit(lambda: fetcher.fetch_latest("SP.POP.TOTL"))

    With ``concurrency=1`` requests run strictly in submission order and each
    one starts at least ``delay`` seconds after the previous one finished.
    """

    def __init__(
        self,
        concurrency: int = 1,
        delay: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.concurrency = concurrency
        self.delay = delay
        self._clock = clock
        self._sleep = sleep

        # Created lazily to bind to the running event loop
        self._sem: Optional[asyncio.Semaphore] = None
        self._start_lock: Optional[asyncio.Lock] = None
        self._last_mark: Optional[float] = None
        self.submitted = 0

    async def submit(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Wait for a slot and the inter-request gap, then await ``factory()``."""
        if self._sem is None:
            self._sem = asyncio.Semaphore(self.concurrency)
            self._start_lock = asyncio.Lock()
        assert self._start_lock is not None

        async with self._sem:
            async with self._start_lock:
                await self._wait_for_gap()
                self._last_mark = self._clock()
                self.submitted += 1
            try:
                return await factory()
            finally:
                self._last_mark = max(self._last_mark or 0.0, self._clock())

    async def _wait_for_gap(self) -> None:
        if self._last_mark is None or self.delay <= 0:
            return
        wait = self._last_mark + self.delay - self._clock()
        if wait > 0:
            logger.debug("Rate limit: sleeping %.2fs before next request", wait)
            await self._sleep(wait)
