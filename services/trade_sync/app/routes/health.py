"""
Health Check Endpoint

Provides service health status for container health checks and monitoring.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from ..config import settings


router = APIRouter()


class ComponentHealth(BaseModel):
    """Health status of a component."""
    status: str  # "healthy", "degraded", "unhealthy"
    message: Optional[str] = None
    last_check: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str  # "healthy", "degraded", "unhealthy"
    service: str
    version: str
    environment: str
    timestamp: str
    components: dict[str, ComponentHealth]


_component_checks: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {}


def register_health_check(name: str, check_fn: Callable[[], Awaitable[dict[str, Any]]]) -> None:
    """Register a component health check function."""
    _component_checks[name] = check_fn


def clear_health_checks() -> None:
    """Remove all registered component checks."""
    _component_checks.clear()


_SEVERITY = ("healthy", "degraded", "unhealthy")


async def _run_check(check_fn: Callable[[], Awaitable[dict[str, Any]]], now: str) -> ComponentHealth:
    try:
        result = await check_fn()
    except Exception as e:
        return ComponentHealth(status="unhealthy", message=str(e), last_check=now)
    return ComponentHealth(
        status=result.get("status", "healthy"),
        message=result.get("message"),
        last_check=now,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Overall status is the worst status among registered component checks."""
    now = datetime.now(timezone.utc).isoformat()
    components = {
        name: await _run_check(check_fn, now)
        for name, check_fn in _component_checks.items()
    }
    worst = max(
        (_SEVERITY.index(c.status) for c in components.values() if c.status in _SEVERITY),
        default=0,
    )

    return HealthResponse(
        status=_SEVERITY[worst],
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        timestamp=now,
        components=components,
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness probe. The process is running."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> dict:
    """Readiness probe. Ready once the trade store is configured."""
    if getattr(request.app.state, "repository", None) is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "trade store not configured"}
    return {"status": "ready"}
