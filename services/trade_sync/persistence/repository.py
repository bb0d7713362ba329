"""
Trade Repository

Range queries and idempotent bulk inserts for trades in PostgreSQL.

Table schema: see schema_postgres.sql
    trades (exchange, symbol, id, mts, amount, price, created_at)
    PRIMARY KEY (exchange, symbol, id)
"""

import logging
from typing import Any, Sequence

from ..core.types import Trade
from .pool import DatabasePool


logger = logging.getLogger(__name__)


# Trade field -> column. "mts" is accepted as an alias for timestamp.
FIELD_COLUMNS = {
    "exchange": "exchange",
    "symbol": "symbol",
    "id": "id",
    "timestamp": "mts",
    "mts": "mts",
    "amount": "amount",
    "price": "price",
}

FILTER_OPERATORS = frozenset({"=", "!=", "<", "<=", ">", ">="})

Filter = tuple[str, str, Any]


def _column(field: str) -> str:
    try:
        return FIELD_COLUMNS[field]
    except KeyError:
        raise ValueError(f"Unknown trade field: {field}") from None


def build_range_query(
    filters: Sequence[Filter],
    key: str,
    start: int,
    end: int,
) -> tuple[str, list[Any]]:
    """
    Build a parameterized SELECT for trades matching `filters` with
    start <= key <= end, ascending by key.

    Raises:
        ValueError: On an unknown field or operator
    """
    conditions: list[str] = []
    args: list[Any] = []

    for field, operator, value in filters:
        column = _column(field)
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator}")
        args.append(value)
        conditions.append(f"{column} {operator} ${len(args)}")

    key_column = _column(key)
    args.extend([start, end])
    conditions.append(f"{key_column} >= ${len(args) - 1}")
    conditions.append(f"{key_column} <= ${len(args)}")

    query = f"""
        SELECT exchange, symbol, id, mts, amount, price
        FROM trades
        WHERE {" AND ".join(conditions)}
        ORDER BY {key_column} ASC, id ASC
    """
    return query, args


class TradeRepository:
    """
    Repository for trade persistence.

    Usage:
        repo = TradeRepository(pool)
        trades = await repo.get_in_range(
            [("exchange", "=", "bitfinex"), ("symbol", "=", "tBTCUSD")],
            key="timestamp", start=start_ms, end=end_ms,
        )
        await repo.bulk_insert(trades)
    """

    INSERT_QUERY = """
        INSERT INTO trades (exchange, symbol, id, mts, amount, price)
        SELECT * FROM unnest(
            $1::varchar[], $2::varchar[], $3::bigint[],
            $4::bigint[], $5::double precision[], $6::double precision[]
        )
        ON CONFLICT (exchange, symbol, id) DO NOTHING
    """

    def __init__(self, pool: DatabasePool):
        self.pool = pool

    async def get_in_range(
        self,
        filters: Sequence[Filter],
        key: str = "timestamp",
        start: int = 0,
        end: int = 0,
    ) -> list[Trade]:
        """
        Get trades matching all filters within [start, end] on `key`.

        Args:
            filters: (field, operator, value) conjunction
            key: Trade field used for the range bounds
            start: Lower bound (inclusive)
            end: Upper bound (inclusive)

        Returns:
            List of Trade objects, ascending by key
        """
        query, args = build_range_query(filters, key, start, end)

        try:
            rows = await self.pool.fetch(query, *args)
            return [self._row_to_trade(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to get trades in range {start}-{end}: {e}")
            raise

    async def bulk_insert(self, trades: Sequence[Trade]) -> int:
        """
        Insert trades in a single statement, skipping ones already stored.

        Args:
            trades: Trades tagged with exchange and symbol

        Returns:
            Number of trades actually stored (conflicts excluded)
        """
        if not trades:
            return 0

        for trade in trades:
            if not trade.exchange or not trade.symbol:
                raise ValueError(f"Trade {trade.id} is missing exchange/symbol")

        columns = (
            [t.exchange for t in trades],
            [t.symbol for t in trades],
            [t.id for t in trades],
            [t.timestamp for t in trades],
            [t.amount for t in trades],
            [t.price for t in trades],
        )

        try:
            result = await self.pool.execute(self.INSERT_QUERY, *columns)

            inserted = 0
            if result and result.startswith("INSERT"):
                try:
                    inserted = int(result.split()[-1])
                except (ValueError, IndexError):
                    pass

            logger.debug(f"Bulk inserted {inserted}/{len(trades)} trades")
            return inserted

        except Exception as e:
            logger.error(f"Failed to bulk insert trades: {e}")
            raise

    def _row_to_trade(self, row) -> Trade:
        """Convert database row to Trade."""
        return Trade(
            id=row["id"],
            timestamp=row["mts"],
            amount=row["amount"],
            price=row["price"],
            exchange=row["exchange"],
            symbol=row["symbol"],
        )
