# Trade Sync Core Modules
"""
Core logic for trade gap detection and rate limiting.

Modules:
- types: Trade, TimeRange and TradeSelector models
- constants: Default thresholds, limits and endpoints
- gaps: Gap detection over stored trades
- rate_limiter: Process-wide request quota
- metrics: Prometheus metrics
"""

from .types import (
    SortDirection,
    TimeRange,
    Trade,
    TradeSelector,
)

from .constants import (
    BITFINEX_REST_URL,
    DEFAULT_EXCHANGE,
    FETCH_LIMIT,
    RATE_LIMIT_PERIOD_SECONDS,
    RATE_LIMIT_REQUESTS,
    TRADE_GAP_LIMIT_MS,
)

from .gaps import (
    detect_gaps,
    total_gap_width,
)

from .rate_limiter import (
    ImmediateRateLimiter,
    RateLimiter,
)

__all__ = [
    # Types
    "SortDirection",
    "TimeRange",
    "Trade",
    "TradeSelector",
    # Constants
    "BITFINEX_REST_URL",
    "DEFAULT_EXCHANGE",
    "FETCH_LIMIT",
    "RATE_LIMIT_PERIOD_SECONDS",
    "RATE_LIMIT_REQUESTS",
    "TRADE_GAP_LIMIT_MS",
    # Gaps
    "detect_gaps",
    "total_gap_width",
    # Rate limiting
    "ImmediateRateLimiter",
    "RateLimiter",
]
