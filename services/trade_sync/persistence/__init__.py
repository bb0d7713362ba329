# Trade Sync Persistence
# PostgreSQL storage for trades

"""
Persistence module for storing trades.

Components:
- TradeRepository: Range queries and idempotent bulk inserts
- DatabasePool: Connection pool management
"""

from .repository import TradeRepository, build_range_query
from .pool import DatabasePool

__all__ = [
    "TradeRepository",
    "build_range_query",
    "DatabasePool",
]
