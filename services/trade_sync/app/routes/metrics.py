"""
Prometheus Metrics Endpoint

Exposes /metrics endpoint in Prometheus text format.
"""

from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ...core.metrics import REGISTRY, set_service_info
from ..config import settings


router = APIRouter()


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Metrics exposed:
    - trade_sync_fetch_requests_total{symbol, status}
    - trade_sync_rate_limit_wait_seconds
    - trade_sync_pages_fetched_total{exchange, symbol}
    - trade_sync_trades_inserted_total{exchange, symbol}
    - trade_sync_gaps_detected_total{exchange, symbol}
    - trade_sync_ranges_total{exchange, symbol, outcome}
    - trade_sync_runs_total{exchange, symbol, status}
    - trade_sync_service_info{version, environment}
    """
    set_service_info(settings.service_version, settings.environment)

    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
