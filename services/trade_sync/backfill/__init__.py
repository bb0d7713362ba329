"""
Trade Sync Backfill Module

Provides gap backfill via the rate-limited remote trade source.
"""

from .range_backfiller import (
    BackfillCursor,
    BackfillStalledError,
    BackfillStep,
    RangeBackfiller,
    RangeBackfillResult,
    TradeStore,
)
from .service import SyncResult, TradeSyncService

__all__ = [
    "BackfillCursor",
    "BackfillStalledError",
    "BackfillStep",
    "RangeBackfiller",
    "RangeBackfillResult",
    "TradeStore",
    "SyncResult",
    "TradeSyncService",
]
