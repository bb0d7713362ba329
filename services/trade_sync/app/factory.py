"""
Component wiring shared by the API service and the command-line script.
"""

from ..backfill import TradeSyncService
from ..connectors import BitfinexTradeSource, ThrottledFetcher
from ..core.rate_limiter import RateLimiter
from .config import Settings


def create_rate_limiter(settings: Settings) -> RateLimiter:
    """The process-wide limiter. Build once and share."""
    return RateLimiter(
        max_requests=settings.rate_limit_requests,
        period_seconds=settings.rate_limit_period_seconds,
    )


def create_sync_service(
    settings: Settings,
    limiter: RateLimiter,
) -> tuple[TradeSyncService, BitfinexTradeSource]:
    """
    Build the sync service over the Bitfinex source.

    Returns the source too so the caller can close it on shutdown.
    """
    source = BitfinexTradeSource(
        base_url=settings.bitfinex_rest_url,
        timeout=settings.http_timeout_seconds,
    )
    fetcher = ThrottledFetcher(
        source,
        limiter,
        max_retries=settings.fetch_max_retries,
        retry_initial_delay_ms=settings.fetch_retry_initial_delay_ms,
        retry_max_delay_ms=settings.fetch_retry_max_delay_ms,
    )
    service = TradeSyncService(
        fetcher,
        gap_tolerance_ms=settings.gap_tolerance_ms,
        fetch_limit=settings.fetch_limit,
        symmetric_single_record_gaps=settings.symmetric_single_record_gaps,
    )
    return service, source
