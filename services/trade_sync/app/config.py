"""
Trade Sync Configuration

Pydantic Settings for the Trade Sync service.
Loads from environment variables with sensible defaults.
"""

from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import Field

from ..core.constants import (
    BITFINEX_REST_URL,
    FETCH_LIMIT,
    FETCH_MAX_RETRIES,
    FETCH_RETRY_INITIAL_DELAY_MS,
    FETCH_RETRY_MAX_DELAY_MS,
    HTTP_TIMEOUT_SECONDS,
    RATE_LIMIT_PERIOD_SECONDS,
    RATE_LIMIT_REQUESTS,
    TRADE_GAP_LIMIT_MS,
)


class Settings(BaseSettings):
    """Trade Sync service configuration."""

    # Service identity
    service_name: str = Field(default="trade-sync", description="Service name for logging/metrics")
    environment: Literal["local", "staging", "production"] = Field(default="local")
    service_version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")

    # Database
    database_url: str = Field(default="", description="PostgreSQL connection string")

    # Remote source
    bitfinex_rest_url: str = Field(default=BITFINEX_REST_URL)
    http_timeout_seconds: float = Field(default=HTTP_TIMEOUT_SECONDS)

    # Gap detection
    gap_tolerance_ms: int = Field(default=TRADE_GAP_LIMIT_MS, gt=0, description="Max spacing between stored trades")
    symmetric_single_record_gaps: bool = Field(
        default=False,
        description="Check both caps independently when a window holds exactly one trade",
    )

    # Backfill
    fetch_limit: int = Field(default=FETCH_LIMIT, gt=0, description="Trades per remote request")
    rate_limit_requests: int = Field(default=RATE_LIMIT_REQUESTS, gt=0)
    rate_limit_period_seconds: float = Field(default=RATE_LIMIT_PERIOD_SECONDS, gt=0)
    fetch_max_retries: int = Field(default=FETCH_MAX_RETRIES, ge=0, description="0 = propagate failures")
    fetch_retry_initial_delay_ms: int = Field(default=FETCH_RETRY_INITIAL_DELAY_MS)
    fetch_retry_max_delay_ms: int = Field(default=FETCH_RETRY_MAX_DELAY_MS)

    # Largest window accepted by POST /v0/sync (7 days)
    max_sync_window_ms: int = Field(
        default=7 * 24 * 60 * 60 * 1000,
        description="Largest span (end - start, ms) accepted by POST /v0/sync",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Admin authentication (required for mutation endpoints)
    admin_api_key: str = Field(
        default="",
        description="API key for admin/mutation endpoints (e.g., sync). Required in production."
    )

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
