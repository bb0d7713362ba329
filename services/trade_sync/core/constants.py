"""
Trade Sync Constants

Default thresholds, limits and endpoints. Runtime overrides come from
app.config.Settings; these values are what the library uses when nothing
is configured.
"""


# =============================================================================
# Gap Detection
# =============================================================================

# Maximum spacing between two stored trades before the interval between them
# is treated as missing data (1 hour)
TRADE_GAP_LIMIT_MS: int = 60 * 60 * 1000


# =============================================================================
# Remote Source (Bitfinex public REST v2)
# =============================================================================

BITFINEX_REST_URL = "https://api-pub.bitfinex.com/v2"

# GET /trades/{symbol}/hist?start=&end=&limit=&sort=
# Rows: [ID, MTS, AMOUNT, PRICE]
BITFINEX_TRADES_PATH = "/trades/{symbol}/hist"

# Maximum trades returned per request
FETCH_LIMIT: int = 5000

HTTP_TIMEOUT_SECONDS: float = 30.0

DEFAULT_EXCHANGE = "bitfinex"


# =============================================================================
# Rate Limiting
# =============================================================================

# Public trades endpoint quota: 10 requests per minute, shared process-wide
RATE_LIMIT_REQUESTS: int = 10
RATE_LIMIT_PERIOD_SECONDS: float = 60.0


# =============================================================================
# Fetch Retry (disabled by default: failures propagate unchanged)
# =============================================================================

FETCH_MAX_RETRIES: int = 0
FETCH_RETRY_INITIAL_DELAY_MS: int = 1_000
FETCH_RETRY_MAX_DELAY_MS: int = 30_000
FETCH_RETRY_BACKOFF_MULTIPLIER: float = 2.0

# HTTP statuses worth retrying (rate limited or server side)
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
