"""
Base Trade Source

Abstract interface for paginated historical trade sources.

A source returns at most `limit` trades with timestamps in
(from_exclusive, to_inclusive], ordered per `sort`. An empty list means the
source has nothing more in that window; it is not an error.
"""

from abc import ABC, abstractmethod

from ..core.types import SortDirection, Trade


class TradeSource(ABC):
    """
    Abstract base class for remote trade sources.

    Subclasses must implement:
    - fetch_trades(): One page of trades in a half-open window
    - close(): Release network resources
    """

    name: str = "source"

    @abstractmethod
    async def fetch_trades(
        self,
        symbol: str,
        from_exclusive: int,
        to_inclusive: int,
        limit: int,
        sort: SortDirection = SortDirection.ASC,
    ) -> list[Trade]:
        """
        Fetch one page of trades.

        Args:
            symbol: Exchange symbol (e.g. tBTCUSD)
            from_exclusive: Lower bound (ms, exclusive)
            to_inclusive: Upper bound (ms, inclusive)
            limit: Maximum trades to return
            sort: Ordering of the returned page

        Returns:
            Up to `limit` trades, empty when the window holds no more data
        """

    async def close(self) -> None:
        """Release resources held by the source."""
