"""
Bitfinex Trade Source

Historical trades from the Bitfinex public REST API v2.

Endpoint:
    GET {base}/trades/{symbol}/hist?start=&end=&limit=&sort=

    start and end are both inclusive (ms). Trading pair rows are
    [ID, MTS, AMOUNT, PRICE]; a negative AMOUNT is a taker sell.

Errors come back as ["error", code, message] (usually with HTTP 500).
"""

import logging
from typing import Any, Optional

import httpx

from ..core.constants import (
    BITFINEX_REST_URL,
    BITFINEX_TRADES_PATH,
    HTTP_TIMEOUT_SECONDS,
)
from ..core.types import SortDirection, Trade
from .base import TradeSource

logger = logging.getLogger(__name__)


class BitfinexTradeSource(TradeSource):
    """
    Bitfinex public trades history.

    Usage:
        source = BitfinexTradeSource()
        trades = await source.fetch_trades("tBTCUSD", 1704067199999, 1704153599999, 5000)
        await source.close()
    """

    name = "bitfinex"

    def __init__(
        self,
        base_url: str = BITFINEX_REST_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch_trades(
        self,
        symbol: str,
        from_exclusive: int,
        to_inclusive: int,
        limit: int,
        sort: SortDirection = SortDirection.ASC,
    ) -> list[Trade]:
        """Fetch one page of trades in (from_exclusive, to_inclusive]."""
        if from_exclusive >= to_inclusive:
            return []

        client = await self._get_client()
        url = self.base_url + BITFINEX_TRADES_PATH.format(symbol=symbol)
        params = {
            "start": from_exclusive + 1,
            "end": to_inclusive,
            "limit": limit,
            "sort": sort.value,
        }

        try:
            response = await client.get(url, params=params)

            if response.is_error:
                # 429 stays an HTTP error so callers can retry it
                payload = _safe_json(response)
                if response.status_code != 429 and _is_error_payload(payload):
                    raise RuntimeError(f"Bitfinex API error {payload[1]}: {payload[2]}")
                response.raise_for_status()

            data = response.json() if response.content else []
            if _is_error_payload(data):
                raise RuntimeError(f"Bitfinex API error {data[1]}: {data[2]}")

            trades = []
            for row in data:
                try:
                    trades.append(parse_trade_row(row))
                except (IndexError, ValueError, TypeError) as e:
                    logger.warning(f"[bitfinex] Skipping malformed trade row {row!r}: {e}")

            logger.debug(
                f"[bitfinex] {symbol} ({from_exclusive}, {to_inclusive}] -> {len(trades)} trades"
            )
            return trades

        except httpx.HTTPStatusError as e:
            logger.error(
                f"[bitfinex] HTTP error {e.response.status_code} for {symbol}: "
                f"{e.response.text[:200] if e.response.text else 'no body'}"
            )
            raise
        except RuntimeError as e:
            logger.error(f"[bitfinex] {symbol}: {e}")
            raise
        except Exception as e:
            logger.error(
                f"[bitfinex] Unexpected error for {symbol}: {type(e).__name__}: {e}"
            )
            raise


def parse_trade_row(row: list[Any]) -> Trade:
    """Convert a Bitfinex [ID, MTS, AMOUNT, PRICE] row to a Trade."""
    if len(row) != 4:
        raise ValueError(f"expected 4 fields, got {len(row)}")
    return Trade(
        id=int(row[0]),
        timestamp=int(row[1]),
        amount=float(row[2]),
        price=float(row[3]),
    )


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _is_error_payload(data: Any) -> bool:
    return (
        isinstance(data, list)
        and len(data) >= 3
        and data[0] == "error"
    )
