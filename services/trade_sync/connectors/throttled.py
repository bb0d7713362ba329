"""
Throttled Fetcher

Puts a TradeSource behind the shared RateLimiter. Every attempt, including
retries, waits for its own admission.

Failure handling:
- max_retries=0 (default): any source error propagates unchanged
- max_retries>0: transport errors and HTTP 429/5xx are retried with
  exponential backoff; the last error is re-raised unchanged
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from ..core.constants import (
    FETCH_LIMIT,
    FETCH_MAX_RETRIES,
    FETCH_RETRY_BACKOFF_MULTIPLIER,
    FETCH_RETRY_INITIAL_DELAY_MS,
    FETCH_RETRY_MAX_DELAY_MS,
    RETRYABLE_STATUS_CODES,
)
from ..core.metrics import record_fetch
from ..core.rate_limiter import RateLimiter
from ..core.types import SortDirection, Trade
from .base import TradeSource

logger = logging.getLogger(__name__)


def is_retryable(error: BaseException) -> bool:
    """True for errors worth another attempt (network, 429, 5xx)."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, httpx.TransportError)


class ThrottledFetcher:
    """
    Rate-limited access to a trade source.

    Usage:
        limiter = RateLimiter()
        fetcher = ThrottledFetcher(BitfinexTradeSource(), limiter)
        trades = await fetcher.fetch("tBTCUSD", cursor, end)
    """

    def __init__(
        self,
        source: TradeSource,
        limiter: RateLimiter,
        max_retries: int = FETCH_MAX_RETRIES,
        retry_initial_delay_ms: int = FETCH_RETRY_INITIAL_DELAY_MS,
        retry_max_delay_ms: int = FETCH_RETRY_MAX_DELAY_MS,
        retry_backoff_multiplier: float = FETCH_RETRY_BACKOFF_MULTIPLIER,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.source = source
        self.limiter = limiter
        self.max_retries = max_retries
        self.retry_initial_delay_ms = retry_initial_delay_ms
        self.retry_max_delay_ms = retry_max_delay_ms
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self._sleep = sleep

    async def fetch(
        self,
        symbol: str,
        from_exclusive: int,
        to_inclusive: int,
        limit: int = FETCH_LIMIT,
        sort: SortDirection = SortDirection.ASC,
    ) -> list[Trade]:
        """
        Fetch one page of trades once the limiter admits the request.

        Args:
            symbol: Exchange symbol
            from_exclusive: Lower bound (ms, exclusive)
            to_inclusive: Upper bound (ms, inclusive)
            limit: Maximum trades to return
            sort: Page ordering

        Returns:
            Trades from the source
        """
        delay_ms = self.retry_initial_delay_ms
        attempt = 0

        while True:
            await self.limiter.acquire()
            try:
                trades = await self.source.fetch_trades(
                    symbol, from_exclusive, to_inclusive, limit, sort
                )
            except Exception as e:
                if attempt >= self.max_retries or not is_retryable(e):
                    record_fetch(symbol, "error")
                    raise

                attempt += 1
                record_fetch(symbol, "retry")
                logger.warning(
                    f"Fetch {symbol} ({from_exclusive}, {to_inclusive}] failed "
                    f"({type(e).__name__}: {e}), retry {attempt}/{self.max_retries} "
                    f"in {delay_ms}ms"
                )
                await self._sleep(delay_ms / 1000)
                delay_ms = min(
                    int(delay_ms * self.retry_backoff_multiplier),
                    self.retry_max_delay_ms,
                )
                continue

            record_fetch(symbol, "success")
            return trades
