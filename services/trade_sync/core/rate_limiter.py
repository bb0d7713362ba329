"""
Rate Limiter

Process-wide request quota shared by every fetch against the remote source.

Usage:
    limiter = RateLimiter(max_requests=10, period_seconds=60.0)
    trades = await limiter.run(source.fetch_trades, "tBTCUSD", 0, 1000, 5000)

Admission is a sliding window: at most `max_requests` admissions within any
`period_seconds`. Callers queue on an asyncio.Lock, which wakes waiters in
FIFO order, so concurrent syncs are admitted in submission order.

Construct one limiter per process and pass it to every fetcher. Tests inject
a fake clock/sleep pair or use ImmediateRateLimiter.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .constants import RATE_LIMIT_PERIOD_SECONDS, RATE_LIMIT_REQUESTS
from .metrics import observe_rate_limit_wait

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Sliding-window FIFO rate limiter."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_REQUESTS,
        period_seconds: float = RATE_LIMIT_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if period_seconds <= 0:
            raise ValueError(f"period_seconds must be positive, got {period_seconds}")

        self.max_requests = max_requests
        self.period_seconds = period_seconds
        self._clock = clock
        self._sleep = sleep
        self._admissions: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._total_admitted = 0

        logger.info(
            f"RateLimiter initialized: {max_requests} requests per {period_seconds}s"
        )

    async def acquire(self) -> float:
        """
        Wait for a free slot in the window and take it.

        Returns:
            Seconds from the call until admission, including time queued
            behind earlier callers
        """
        started = self._clock()
        async with self._lock:
            while True:
                now = self._clock()
                self._expire(now)

                if len(self._admissions) < self.max_requests:
                    self._admissions.append(now)
                    self._total_admitted += 1
                    waited = now - started
                    observe_rate_limit_wait(waited)
                    return waited

                delay = self._admissions[0] + self.period_seconds - now
                logger.debug(f"Rate limit reached, waiting {delay:.2f}s for next slot")
                await self._sleep(delay)

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Acquire a slot, then await `fn(*args, **kwargs)`."""
        await self.acquire()
        return await fn(*args, **kwargs)

    def _expire(self, now: float) -> None:
        while self._admissions and now - self._admissions[0] >= self.period_seconds:
            self._admissions.popleft()

    @property
    def total_admitted(self) -> int:
        """Admissions granted since construction."""
        return self._total_admitted

    @property
    def in_window(self) -> int:
        """Admissions counted against the current window."""
        self._expire(self._clock())
        return len(self._admissions)


class ImmediateRateLimiter(RateLimiter):
    """Admits every request immediately. For tests and offline tooling."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.max_requests = 0
        self.period_seconds = 0.0
        self._clock = clock or time.monotonic
        self._sleep = asyncio.sleep
        self._admissions: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._total_admitted = 0

    async def acquire(self) -> float:
        self._total_admitted += 1
        return 0.0
