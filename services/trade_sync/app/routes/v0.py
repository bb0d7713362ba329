"""
Trade Sync V0 API Endpoints

Endpoints:
- GET /v0/gaps - Gaps a sync of the window would fill (no fetching)
- POST /v0/sync - Detect and backfill gaps for a window
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field, ValidationError

from ...core.constants import DEFAULT_EXCHANGE
from ...core.types import TimeRange, TradeSelector
from ..config import settings


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v0", tags=["v0"])


# =============================================================================
# Request / Response Models
# =============================================================================

class RangeResponse(BaseModel):
    """Inclusive millisecond range."""

    start: int
    end: int


class GapsResponse(BaseModel):
    """Response for /v0/gaps endpoint."""

    exchange: str
    symbol: str
    start: int
    end: int
    gaps: list[RangeResponse] = Field(default_factory=list)
    missing_ms: int = Field(default=0, description="Total milliseconds covered by gaps")


class SyncRequest(BaseModel):
    """Request body for /v0/sync endpoint."""

    exchange: str = Field(default=DEFAULT_EXCHANGE, description="Exchange ID")
    symbol: str = Field(..., description="Exchange symbol (e.g. tBTCUSD)")
    start: int = Field(..., description="Window start (ms, inclusive)")
    end: int = Field(..., description="Window end (ms, inclusive)")


class RangeResultResponse(BaseModel):
    """Outcome of one backfilled gap."""

    start: int
    end: int
    outcome: str = Field(description="done or exhausted")
    pages: int
    trades_inserted: int


class SyncResponse(BaseModel):
    """Response for /v0/sync endpoint."""

    exchange: str
    symbol: str
    start: int
    end: int
    gaps_found: int
    trades_inserted: int
    pages_fetched: int
    exhausted_ranges: int
    duration_seconds: float
    ranges: list[RangeResultResponse] = Field(default_factory=list)


# =============================================================================
# Dependencies
# =============================================================================

def get_repository(request: Request):
    """Get repository from app state."""
    return getattr(request.app.state, "repository", None)  # None if no database configured


def get_sync_service(request: Request):
    """Get sync service from app state."""
    return getattr(request.app.state, "sync_service", None)


def verify_admin_key(
    x_admin_key: Annotated[Optional[str], Header(alias="X-Admin-Key")] = None,
) -> bool:
    """
    Verify admin API key for mutation endpoints.

    In production the key must be configured and match. Elsewhere a
    configured key must match; with no key configured access is allowed.

    Raises:
        HTTPException 401 if key is required but missing
        HTTPException 403 if key is invalid
        HTTPException 503 if production has no key configured
    """
    configured_key = settings.admin_api_key

    if settings.environment == "production" and not configured_key:
        logger.error("ADMIN_API_KEY not configured in production - rejecting request")
        raise HTTPException(
            status_code=503,
            detail="Admin API key not configured. Contact administrator."
        )

    if not configured_key:
        return True

    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header required")
    if x_admin_key != configured_key:
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return True


def _parse_request(exchange: str, symbol: str, start: int, end: int) -> tuple[TradeSelector, TimeRange]:
    try:
        selector = TradeSelector(exchange=exchange, symbol=symbol)
        window = TimeRange(start=start, end=end)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))
    return selector, window


def _require_components(request: Request):
    repository = get_repository(request)
    service = get_sync_service(request)
    if not repository or not service:
        raise HTTPException(
            status_code=503,
            detail="Sync requires database persistence (not configured)"
        )
    return repository, service


# =============================================================================
# GET /v0/gaps
# =============================================================================

@router.get("/gaps", response_model=GapsResponse)
async def get_gaps(
    request: Request,
    symbol: Annotated[str, Query(description="Exchange symbol (e.g. tBTCUSD)")],
    start: Annotated[int, Query(description="Window start (ms, inclusive)")],
    end: Annotated[int, Query(description="Window end (ms, inclusive)")],
    exchange: Annotated[str, Query(description="Exchange ID")] = DEFAULT_EXCHANGE,
):
    """
    Gaps in the stored trades of a window.

    Uses the same detection as POST /v0/sync but fetches nothing.
    """
    repository, service = _require_components(request)
    selector, window = _parse_request(exchange, symbol, start, end)

    try:
        gaps = await service.detect(repository, selector, window)
    except Exception as e:
        logger.error(f"Gap detection failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return GapsResponse(
        exchange=selector.exchange,
        symbol=selector.symbol,
        start=window.start,
        end=window.end,
        gaps=[RangeResponse(start=g.start, end=g.end) for g in gaps],
        missing_ms=sum(g.width for g in gaps),
    )


# =============================================================================
# POST /v0/sync
# =============================================================================

@router.post("/sync", response_model=SyncResponse)
async def trigger_sync(
    request: Request,
    body: SyncRequest,
    _admin_verified: Annotated[bool, Depends(verify_admin_key)] = True,
):
    """
    Detect and backfill gaps for a window.

    Runs inline: a large window at 10 requests/minute can take a long time.
    Concurrent requests share one rate limiter.

    Authentication: Requires X-Admin-Key header when a key is configured.
    """
    repository, service = _require_components(request)
    selector, window = _parse_request(body.exchange, body.symbol, body.start, body.end)

    if window.end - window.start > settings.max_sync_window_ms:
        raise HTTPException(
            status_code=400,
            detail=f"Sync window span (end - start) cannot exceed {settings.max_sync_window_ms} ms"
        )

    try:
        result = await service.sync(repository, selector, window)
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return SyncResponse(
        exchange=result.exchange,
        symbol=result.symbol,
        start=window.start,
        end=window.end,
        gaps_found=result.gaps_found,
        trades_inserted=result.trades_inserted,
        pages_fetched=result.pages_fetched,
        exhausted_ranges=result.exhausted_ranges,
        duration_seconds=result.duration_seconds,
        ranges=[
            RangeResultResponse(
                start=r.range.start,
                end=r.range.end,
                outcome=r.outcome.value,
                pages=r.pages,
                trades_inserted=r.trades_inserted,
            )
            for r in result.ranges
        ],
    )
