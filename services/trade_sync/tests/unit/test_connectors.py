"""
Unit tests for the Bitfinex trade source and the throttled fetcher.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from services.trade_sync.connectors.base import TradeSource
from services.trade_sync.connectors.bitfinex import BitfinexTradeSource, parse_trade_row
from services.trade_sync.connectors.throttled import ThrottledFetcher, is_retryable
from services.trade_sync.core.rate_limiter import ImmediateRateLimiter, RateLimiter
from services.trade_sync.core.types import SortDirection
from services.trade_sync.tests.fakes import FakeClock, make_trades, max_in_any_window


URL = "https://api-pub.bitfinex.com/v2/trades/tBTCUSD/hist"


def response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("GET", URL), **kwargs)


def http_error(status_code: int) -> httpx.HTTPStatusError:
    resp = response(status_code, text="upstream")
    return httpx.HTTPStatusError(f"{status_code}", request=resp.request, response=resp)


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=httpx.AsyncClient)
    client.is_closed = False
    return client


@pytest.fixture
def bitfinex(mock_client):
    return BitfinexTradeSource(client=mock_client)


# =============================================================================
# Bitfinex
# =============================================================================

class TestParseTradeRow:
    """Tests for parse_trade_row."""

    def test_parses_row(self):
        trade = parse_trade_row([401597393, 1574694475039, -0.005, 7245.3])

        assert trade.id == 401597393
        assert trade.timestamp == 1574694475039
        assert trade.amount == -0.005
        assert trade.price == 7245.3
        assert trade.exchange == ""

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            parse_trade_row([1, 2, 3])


class TestBitfinexTradeSource:
    """Tests for BitfinexTradeSource.fetch_trades."""

    @pytest.mark.asyncio
    async def test_request_params(self, bitfinex, mock_client):
        mock_client.get.return_value = response(200, json=[])

        await bitfinex.fetch_trades("tBTCUSD", 999, 2000, 5000)

        args, kwargs = mock_client.get.call_args
        assert args[0] == URL
        assert kwargs["params"] == {"start": 1000, "end": 2000, "limit": 5000, "sort": 1}

    @pytest.mark.asyncio
    async def test_descending_sort_param(self, bitfinex, mock_client):
        mock_client.get.return_value = response(200, json=[])

        await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5, SortDirection.DESC)

        assert mock_client.get.call_args.kwargs["params"]["sort"] == -1

    @pytest.mark.asyncio
    async def test_parses_page(self, bitfinex, mock_client):
        mock_client.get.return_value = response(
            200,
            json=[[1, 1000, 0.5, 42000.0], [2, 1001, -0.25, 42001.5]],
        )

        trades = await bitfinex.fetch_trades("tBTCUSD", 999, 2000, 5000)

        assert [t.id for t in trades] == [1, 2]
        assert [t.timestamp for t in trades] == [1000, 1001]
        assert trades[1].amount == -0.25

    @pytest.mark.asyncio
    async def test_skips_malformed_rows(self, bitfinex, mock_client):
        mock_client.get.return_value = response(
            200,
            json=[[1, 1000, 0.5, 42000.0], ["x", 1001, 1, 2], [3, 1002, 0.1]],
        )

        trades = await bitfinex.fetch_trades("tBTCUSD", 999, 2000, 5000)

        assert [t.id for t in trades] == [1]

    @pytest.mark.asyncio
    async def test_empty_window_skips_request(self, bitfinex, mock_client):
        assert await bitfinex.fetch_trades("tBTCUSD", 100, 100, 10) == []
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_payload_raises(self, bitfinex, mock_client):
        mock_client.get.return_value = response(500, json=["error", 10020, "limit: invalid"])

        with pytest.raises(RuntimeError, match="10020"):
            await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5)

    @pytest.mark.asyncio
    async def test_error_payload_with_200_raises(self, bitfinex, mock_client):
        mock_client.get.return_value = response(200, json=["error", 10001, "symbol: invalid"])

        with pytest.raises(RuntimeError, match="symbol: invalid"):
            await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5)

    @pytest.mark.asyncio
    async def test_rate_limited_stays_http_error(self, bitfinex, mock_client):
        mock_client.get.return_value = response(429, json=["error", 11010, "ratelimit: error"])

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5)

        assert exc_info.value.response.status_code == 429

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, bitfinex, mock_client):
        mock_client.get.return_value = response(503, text="<html>maintenance</html>")

        with pytest.raises(httpx.HTTPStatusError):
            await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5)

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, bitfinex, mock_client):
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(httpx.ConnectError):
            await bitfinex.fetch_trades("tBTCUSD", 0, 10, 5)

    @pytest.mark.asyncio
    async def test_close(self, bitfinex, mock_client):
        await bitfinex.close()
        mock_client.aclose.assert_awaited_once()


# =============================================================================
# ThrottledFetcher
# =============================================================================

class TestIsRetryable:
    """Tests for is_retryable."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert is_retryable(http_error(status))

    @pytest.mark.parametrize("status", [400, 401, 404])
    def test_client_errors_not_retryable(self, status):
        assert not is_retryable(http_error(status))

    def test_transport_error_retryable(self):
        assert is_retryable(httpx.ReadTimeout("timed out"))

    def test_other_errors_not_retryable(self):
        assert not is_retryable(RuntimeError("Bitfinex API error 10020: limit: invalid"))


class TestThrottledFetcher:
    """Tests for ThrottledFetcher."""

    @pytest.fixture
    def mock_source(self):
        return AsyncMock(spec=TradeSource)

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self, mock_source):
        page = make_trades([5, 6])
        mock_source.fetch_trades.return_value = page
        limiter = ImmediateRateLimiter()
        fetcher = ThrottledFetcher(mock_source, limiter)

        result = await fetcher.fetch("tBTCUSD", 4, 10, 2)

        assert result == page
        mock_source.fetch_trades.assert_awaited_once_with("tBTCUSD", 4, 10, 2, SortDirection.ASC)
        assert limiter.total_admitted == 1

    @pytest.mark.asyncio
    async def test_failure_propagates_unchanged_by_default(self, mock_source):
        error = http_error(503)
        mock_source.fetch_trades.side_effect = error
        sleep = AsyncMock()
        fetcher = ThrottledFetcher(mock_source, ImmediateRateLimiter(), sleep=sleep)

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await fetcher.fetch("tBTCUSD", 0, 10)

        assert exc_info.value is error
        assert mock_source.fetch_trades.await_count == 1
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, mock_source):
        page = make_trades([1])
        mock_source.fetch_trades.side_effect = [
            http_error(503),
            httpx.ConnectError("reset"),
            page,
        ]
        limiter = ImmediateRateLimiter()
        sleep = AsyncMock()
        fetcher = ThrottledFetcher(
            mock_source,
            limiter,
            max_retries=3,
            retry_initial_delay_ms=100,
            retry_max_delay_ms=1000,
            sleep=sleep,
        )

        result = await fetcher.fetch("tBTCUSD", 0, 10)

        assert result == page
        assert mock_source.fetch_trades.await_count == 3
        assert limiter.total_admitted == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_backoff_capped(self, mock_source):
        mock_source.fetch_trades.side_effect = http_error(429)
        sleep = AsyncMock()
        fetcher = ThrottledFetcher(
            mock_source,
            ImmediateRateLimiter(),
            max_retries=3,
            retry_initial_delay_ms=100,
            retry_max_delay_ms=250,
            sleep=sleep,
        )

        with pytest.raises(httpx.HTTPStatusError):
            await fetcher.fetch("tBTCUSD", 0, 10)

        assert mock_source.fetch_trades.await_count == 4
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2, 0.25]

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self, mock_source):
        mock_source.fetch_trades.side_effect = http_error(400)
        sleep = AsyncMock()
        fetcher = ThrottledFetcher(mock_source, ImmediateRateLimiter(), max_retries=5, sleep=sleep)

        with pytest.raises(httpx.HTTPStatusError):
            await fetcher.fetch("tBTCUSD", 0, 10)

        assert mock_source.fetch_trades.await_count == 1
        sleep.assert_not_called()

    def test_rejects_negative_retries(self, mock_source):
        with pytest.raises(ValueError):
            ThrottledFetcher(mock_source, ImmediateRateLimiter(), max_retries=-1)

    @pytest.mark.asyncio
    async def test_concurrent_fetches_share_quota_in_order(self, mock_source):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=3, period_seconds=10.0, clock=clock, sleep=clock.sleep)
        fetcher = ThrottledFetcher(mock_source, limiter)
        calls: list[tuple[int, float]] = []

        async def fetch_trades(symbol, from_exclusive, to_inclusive, limit, sort):
            calls.append((from_exclusive, clock.now))
            return []

        mock_source.fetch_trades.side_effect = fetch_trades

        await asyncio.gather(*(fetcher.fetch("tBTCUSD", i, i + 100) for i in range(20)))

        assert [c[0] for c in calls] == list(range(20))
        times = [c[1] - 1000.0 for c in calls]
        assert times == [10.0 * (i // 3) for i in range(20)]
        assert max_in_any_window(times, 10.0) <= 3
