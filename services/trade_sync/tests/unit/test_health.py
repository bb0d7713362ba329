"""
Unit tests for health endpoints.
"""

from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from services.trade_sync.app.main import app
from services.trade_sync.app.routes import health


@pytest.fixture
def no_checks():
    health.clear_health_checks()
    yield
    health.clear_health_checks()


@pytest.mark.asyncio
async def test_health_endpoint(no_checks):
    """Test that health endpoint returns expected structure."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["service"] == "trade-sync"
    assert "version" in data
    assert "environment" in data
    assert "timestamp" in data
    assert data["components"] == {}


@pytest.mark.asyncio
async def test_health_reports_unhealthy_component(no_checks):
    """A failing component check makes the service unhealthy."""
    async def database_down():
        return {"status": "unhealthy", "message": "Database unreachable"}

    health.register_health_check("database", database_down)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["components"]["database"]["message"] == "Database unreachable"


@pytest.mark.asyncio
async def test_health_worst_component_wins(no_checks):
    """Degraded plus healthy is degraded; an unhealthy component overrides both."""
    async def ok():
        return {"status": "healthy"}

    async def slow():
        return {"status": "degraded", "message": "high latency"}

    health.register_health_check("cache", ok)
    health.register_health_check("source", slow)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        degraded = (await client.get("/health")).json()

        async def down():
            return {"status": "unhealthy"}

        health.register_health_check("database", down)
        unhealthy = (await client.get("/health")).json()

    assert degraded["status"] == "degraded"
    assert degraded["components"]["source"]["message"] == "high latency"
    assert unhealthy["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_health_check_exception_is_unhealthy(no_checks):
    async def broken():
        raise ConnectionError("pool closed")

    health.register_health_check("database", broken)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["components"]["database"]["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_liveness_endpoint():
    """Test that liveness probe returns ok."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_without_store():
    """Not ready until a trade store is configured."""
    app.state.repository = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


@pytest.mark.asyncio
async def test_readiness_with_store():
    app.state.repository = MagicMock()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health/ready")

    app.state.repository = None

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_root_endpoint():
    """Test that root endpoint returns service info."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "trade-sync"
    assert data["health"] == "/health"


@pytest.mark.asyncio
async def test_metrics_endpoint():
    """Metrics are exposed in Prometheus text format."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert "trade_sync_service_info" in response.text
