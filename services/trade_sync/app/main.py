"""
Trade Sync Service

Backfills gaps in stored exchange trades from the Bitfinex REST API under a
process-wide rate limit.

API Endpoints:
- GET /health - Service health check
- GET /v0/gaps - Gaps a sync would fill
- POST /v0/sync - Detect and backfill gaps for a window
- GET /metrics - Prometheus metrics endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from .config import settings
from .factory import create_rate_limiter, create_sync_service
from .routes import health, metrics, v0
from ..connectors import BitfinexTradeSource
from ..persistence import DatabasePool, TradeRepository

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instances for app state
_db_pool: Optional[DatabasePool] = None
_repository: Optional[TradeRepository] = None
_source: Optional[BitfinexTradeSource] = None


async def _database_health() -> dict:
    """Health check for the trade store."""
    if _db_pool and await _db_pool.check_health():
        return {"status": "healthy"}
    return {"status": "unhealthy", "message": "Database unreachable"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - Database connection pool
    - Shared rate limiter and Bitfinex source
    - Sync service
    """
    global _db_pool, _repository, _source

    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(
        f"Rate limit: {settings.rate_limit_requests} requests / "
        f"{settings.rate_limit_period_seconds}s, fetch limit {settings.fetch_limit}"
    )

    # Initialize database pool (if configured)
    if settings.database_url:
        try:
            _db_pool = DatabasePool()
            await _db_pool.connect(settings.database_url)
            logger.info("Database connection established")

            schema_ok = await _db_pool.initialize_schema()
            if schema_ok:
                logger.info("Database schema verified")
            else:
                logger.warning("Schema initialization returned False - trades table may not exist")

            _repository = TradeRepository(_db_pool)
            health.register_health_check("database", _database_health)
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            _db_pool = None
            _repository = None
    else:
        logger.warning("No DATABASE_URL configured - sync disabled")

    # One limiter for the whole process
    limiter = create_rate_limiter(settings)
    sync_service, _source = create_sync_service(settings, limiter)

    app.state.db_pool = _db_pool
    app.state.repository = _repository
    app.state.rate_limiter = limiter
    app.state.sync_service = sync_service

    logger.info("Service startup complete")

    yield

    # Shutdown
    logger.info("Shutting down service...")

    if _source:
        await _source.close()
        _source = None

    if _db_pool:
        await _db_pool.close()
        _db_pool = None

    _repository = None

    logger.info("Service shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Trade Sync",
    description="Gap detection and rate-limited trade backfill",
    version=settings.service_version,
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(v0.router, tags=["v0-api"])
app.include_router(metrics.router, tags=["metrics"])


@app.get("/")
async def root() -> dict:
    """Root endpoint - service info."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.trade_sync.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "local",
    )
