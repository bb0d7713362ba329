"""
Database Connection Pool

Manages async PostgreSQL connections using asyncpg.
Supports schema initialization on startup.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema_postgres.sql"


class DatabasePool:
    """
    Async database connection pool.

    Usage:
        pool = DatabasePool()
        await pool.connect(database_url)
        async with pool.acquire() as conn:
            await conn.fetch("SELECT * FROM trades LIMIT 1")
        await pool.close()
    """

    def __init__(self):
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(
        self,
        database_url: str,
        min_size: int = 1,
        max_size: int = 5,
    ) -> None:
        """
        Create connection pool.

        Args:
            database_url: PostgreSQL connection string
            min_size: Minimum pool connections
            max_size: Maximum pool connections
        """
        if self._pool is not None:
            logger.warning("Pool already connected")
            return

        self._pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
        )
        logger.info(f"Database pool created (min={min_size}, max={max_size})")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    def acquire(self):
        """Acquire a connection from the pool."""
        if not self._pool:
            raise RuntimeError("Database pool not connected")
        return self._pool.acquire()

    async def execute(self, query: str, *args) -> str:
        """Execute a query that doesn't return rows."""
        if not self._pool:
            raise RuntimeError("Database pool not connected")
        return await self._pool.execute(query, *args)

    async def fetch(self, query: str, *args) -> list:
        """Execute a query and fetch all rows."""
        if not self._pool:
            raise RuntimeError("Database pool not connected")
        return await self._pool.fetch(query, *args)

    async def fetchval(self, query: str, *args):
        """Execute a query and fetch a single value."""
        if not self._pool:
            raise RuntimeError("Database pool not connected")
        return await self._pool.fetchval(query, *args)

    @property
    def is_connected(self) -> bool:
        """Check if pool is connected."""
        return self._pool is not None

    async def check_health(self) -> bool:
        """Check database connectivity."""
        if not self._pool:
            return False
        try:
            await self.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def initialize_schema(self) -> bool:
        """
        Create the trades table and indexes if they don't exist.

        Safe to call multiple times (CREATE ... IF NOT EXISTS).

        Returns:
            True if the trades table exists afterwards
        """
        if not self._pool:
            raise RuntimeError("Database pool not connected")

        try:
            statements = load_schema_statements(SCHEMA_PATH)

            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    for statement in statements:
                        logger.debug(f"Executing: {statement[:80]}...")
                        await conn.execute(statement)

            table_exists = await self.fetchval(
                "SELECT EXISTS (SELECT 1 FROM information_schema.tables WHERE table_name = 'trades')"
            )
            if not table_exists:
                logger.error("Schema executed but trades table not found!")
                return False

            logger.info("Database schema initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize schema: {e}")
            return False


def load_schema_statements(path: Path) -> list[str]:
    """Read a SQL file and split it into statements with comments removed."""
    schema_sql = path.read_text()
    schema_sql = re.sub(r"--[^\n]*", "", schema_sql)
    schema_sql = re.sub(r"/\*.*?\*/", "", schema_sql, flags=re.DOTALL)
    return [s.strip() for s in schema_sql.split(";") if s.strip()]
