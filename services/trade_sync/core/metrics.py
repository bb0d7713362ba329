"""
Prometheus Metrics for Trade Sync

Exposes operational metrics for monitoring and alerting.

Metrics:
- Remote fetch counters (by status) and limiter wait histogram
- Pages fetched / trades inserted counters
- Gap and range outcome counters
- Sync run counters
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()


# =============================================================================
# Fetch Metrics
# =============================================================================

# Remote fetch attempts
FETCH_REQUESTS_TOTAL = Counter(
    "trade_sync_fetch_requests_total",
    "Total remote trade fetch attempts",
    ["symbol", "status"],  # status: success, error, retry
    registry=REGISTRY,
)

# Time spent waiting for a rate limiter slot
RATE_LIMIT_WAIT = Histogram(
    "trade_sync_rate_limit_wait_seconds",
    "Seconds spent waiting for rate limiter admission",
    buckets=[0, 0.5, 1, 2.5, 5, 10, 30, 60, 120],
    registry=REGISTRY,
)


# =============================================================================
# Backfill Metrics
# =============================================================================

PAGES_FETCHED_TOTAL = Counter(
    "trade_sync_pages_fetched_total",
    "Total non-empty trade pages fetched during backfill",
    ["exchange", "symbol"],
    registry=REGISTRY,
)

TRADES_INSERTED_TOTAL = Counter(
    "trade_sync_trades_inserted_total",
    "Total trades newly stored during backfill",
    ["exchange", "symbol"],
    registry=REGISTRY,
)

GAPS_DETECTED_TOTAL = Counter(
    "trade_sync_gaps_detected_total",
    "Total gaps detected in sync windows",
    ["exchange", "symbol"],
    registry=REGISTRY,
)

# Ranges by terminal outcome
RANGES_TOTAL = Counter(
    "trade_sync_ranges_total",
    "Total gap ranges processed by outcome",
    ["exchange", "symbol", "outcome"],  # outcome: done, exhausted
    registry=REGISTRY,
)

SYNC_RUNS_TOTAL = Counter(
    "trade_sync_runs_total",
    "Total sync runs",
    ["exchange", "symbol", "status"],  # status: success, noop, error
    registry=REGISTRY,
)


# =============================================================================
# Service Info Metrics
# =============================================================================

SERVICE_INFO = Gauge(
    "trade_sync_service_info",
    "Service information",
    ["version", "environment"],
    registry=REGISTRY,
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_fetch(symbol: str, status: str) -> None:
    """Record a remote fetch attempt."""
    FETCH_REQUESTS_TOTAL.labels(symbol=symbol, status=status).inc()


def observe_rate_limit_wait(seconds: float) -> None:
    """Record time spent waiting for limiter admission."""
    RATE_LIMIT_WAIT.observe(seconds)


def record_page(exchange: str, symbol: str, trade_count: int) -> None:
    """Record a persisted backfill page."""
    PAGES_FETCHED_TOTAL.labels(exchange=exchange, symbol=symbol).inc()
    TRADES_INSERTED_TOTAL.labels(exchange=exchange, symbol=symbol).inc(trade_count)


def record_gaps(exchange: str, symbol: str, count: int) -> None:
    """Add to detected gap counter."""
    GAPS_DETECTED_TOTAL.labels(exchange=exchange, symbol=symbol).inc(count)


def record_range_outcome(exchange: str, symbol: str, outcome: str) -> None:
    """Record the terminal outcome of a gap range."""
    RANGES_TOTAL.labels(exchange=exchange, symbol=symbol, outcome=outcome).inc()


def record_sync_run(exchange: str, symbol: str, status: str) -> None:
    """Record a completed (or failed) sync run."""
    SYNC_RUNS_TOTAL.labels(exchange=exchange, symbol=symbol, status=status).inc()


def set_service_info(version: str, environment: str) -> None:
    """Set service info gauge."""
    SERVICE_INFO.labels(version=version, environment=environment).set(1)
