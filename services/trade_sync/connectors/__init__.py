# Trade Sync Connectors
# Paginated historical trade sources
"""
Remote trade sources and the rate-limited fetcher in front of them.

Each source:
- Returns one page of trades for a half-open (from, to] window
- Signals exhaustion with an empty page
- Propagates network/API failures to the caller
"""

from .base import TradeSource
from .bitfinex import BitfinexTradeSource, parse_trade_row
from .throttled import ThrottledFetcher, is_retryable

__all__ = [
    "TradeSource",
    "BitfinexTradeSource",
    "parse_trade_row",
    "ThrottledFetcher",
    "is_retryable",
]
