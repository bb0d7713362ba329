"""
Unit tests for Trade Sync core types, constants and script helpers.
"""

import argparse

import pytest
from pydantic import ValidationError

from services.trade_sync.core.constants import (
    FETCH_LIMIT,
    FETCH_MAX_RETRIES,
    RATE_LIMIT_PERIOD_SECONDS,
    RATE_LIMIT_REQUESTS,
    TRADE_GAP_LIMIT_MS,
)
from services.trade_sync.core.types import SortDirection, TimeRange, Trade, TradeSelector
from services.trade_sync.scripts.sync_trades import format_ms, parse_timestamp


class TestConstants:
    """Defaults for the Bitfinex trade history endpoint."""

    def test_defaults(self):
        assert TRADE_GAP_LIMIT_MS == 3_600_000
        assert FETCH_LIMIT == 5000
        assert RATE_LIMIT_REQUESTS == 10
        assert RATE_LIMIT_PERIOD_SECONDS == 60.0
        assert FETCH_MAX_RETRIES == 0

    def test_sort_values(self):
        assert SortDirection.ASC.value == 1
        assert SortDirection.DESC.value == -1


class TestTimeRange:
    """Tests for TimeRange."""

    def test_width_is_inclusive(self):
        assert TimeRange(start=10, end=19).width == 10

    def test_contains(self):
        r = TimeRange(start=10, end=19)
        assert r.contains(10)
        assert r.contains(19)
        assert not r.contains(20)

    def test_inverted_rejected(self):
        with pytest.raises(ValidationError):
            TimeRange(start=2, end=1)

    def test_str(self):
        assert str(TimeRange(start=1, end=2)) == "1-2"

    def test_frozen(self):
        r = TimeRange(start=1, end=2)
        with pytest.raises(ValidationError):
            r.start = 0


class TestTrade:
    """Tests for Trade."""

    def test_tagged_copies(self):
        trade = Trade(id=1, timestamp=1000, amount=-0.5, price=42000.0)

        tagged = trade.tagged("bitfinex", "tBTCUSD")

        assert (tagged.exchange, tagged.symbol) == ("bitfinex", "tBTCUSD")
        assert tagged.id == trade.id
        assert trade.exchange == ""


class TestTradeSelector:
    """Tests for TradeSelector."""

    def test_filters(self):
        selector = TradeSelector(exchange="bitfinex", symbol="tBTCUSD")

        assert selector.as_filters() == [
            ("exchange", "=", "bitfinex"),
            ("symbol", "=", "tBTCUSD"),
        ]
        assert str(selector) == "bitfinex:tBTCUSD"

    def test_empty_symbol_rejected(self):
        with pytest.raises(ValidationError):
            TradeSelector(exchange="bitfinex", symbol="")


class TestScriptHelpers:
    """Tests for sync_trades argument parsing."""

    def test_parse_milliseconds(self):
        assert parse_timestamp("1704067200000") == 1704067200000

    @pytest.mark.parametrize("value", ["2024-01-01T00:00:00Z", "2024-01-01T00:00:00", "2024-01-01"])
    def test_parse_iso(self, value):
        assert parse_timestamp(value) == 1704067200000

    def test_parse_offset(self):
        assert parse_timestamp("2024-01-01T01:00:00+01:00") == 1704067200000

    def test_parse_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_timestamp("yesterday")

    def test_format_ms(self):
        assert format_ms(1704067200123) == "2024-01-01 00:00:00.123"
