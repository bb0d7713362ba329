"""
Trade Sync Service

Detects gaps in the stored trades of a window and backfills them from the
remote source.

Usage:
    service = TradeSyncService(fetcher)
    result = await service.sync(
        repository,
        TradeSelector(exchange="bitfinex", symbol="tBTCUSD"),
        TimeRange(start=start_ms, end=end_ms),
    )

Gaps are processed in series, in detection order. A failure in any
collaborator propagates to the caller; pages stored before the failure stay
stored, and re-running the sync re-detects whatever is still missing.
"""

import logging
import time
from dataclasses import dataclass, field

from ..connectors.throttled import ThrottledFetcher
from ..core.constants import FETCH_LIMIT, TRADE_GAP_LIMIT_MS
from ..core.gaps import detect_gaps, total_gap_width
from ..core.metrics import record_gaps, record_sync_run
from ..core.types import TimeRange, TradeSelector
from .range_backfiller import RangeBackfiller, RangeBackfillResult, TradeStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of a sync operation."""

    exchange: str
    symbol: str
    window: TimeRange
    gaps: list[TimeRange] = field(default_factory=list)
    ranges: list[RangeBackfillResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def gaps_found(self) -> int:
        return len(self.gaps)

    @property
    def trades_inserted(self) -> int:
        return sum(r.trades_inserted for r in self.ranges)

    @property
    def pages_fetched(self) -> int:
        return sum(r.pages for r in self.ranges)

    @property
    def exhausted_ranges(self) -> int:
        return sum(1 for r in self.ranges if r.exhausted)


class TradeSyncService:
    """
    Orchestrates gap detection and backfill for one partition at a time.

    The fetcher (and the rate limiter behind it) is shared by every sync the
    service runs, so concurrent syncs of different symbols respect one quota.
    """

    def __init__(
        self,
        fetcher: ThrottledFetcher,
        gap_tolerance_ms: int = TRADE_GAP_LIMIT_MS,
        fetch_limit: int = FETCH_LIMIT,
        symmetric_single_record_gaps: bool = False,
    ):
        self.fetcher = fetcher
        self.gap_tolerance_ms = gap_tolerance_ms
        self.fetch_limit = fetch_limit
        self.symmetric_single_record_gaps = symmetric_single_record_gaps

    async def detect(
        self,
        store: TradeStore,
        selector: TradeSelector,
        window: TimeRange,
    ) -> list[TimeRange]:
        """
        Gaps a sync of `window` would fill, without fetching anything.

        Args:
            store: Trade store
            selector: Partition to inspect
            window: Sync window

        Returns:
            Gaps ordered by start
        """
        trades = await store.get_in_range(
            selector.as_filters(),
            key="timestamp",
            start=window.start,
            end=window.end,
        )
        return detect_gaps(
            trades,
            window,
            tolerance_ms=self.gap_tolerance_ms,
            symmetric_single_record=self.symmetric_single_record_gaps,
        )

    async def sync(
        self,
        store: TradeStore,
        selector: TradeSelector,
        window: TimeRange,
    ) -> SyncResult:
        """
        Backfill every gap in `window` for one partition.

        Args:
            store: Trade store
            selector: Partition to sync
            window: Sync window

        Returns:
            SyncResult with detected gaps and per-gap outcomes
        """
        started = time.monotonic()
        result = SyncResult(
            exchange=selector.exchange,
            symbol=selector.symbol,
            window=window,
        )

        try:
            result.gaps = await self.detect(store, selector, window)

            if not result.gaps:
                logger.info(f"No gaps found for {selector} in {window}")
                record_sync_run(selector.exchange, selector.symbol, "noop")
                return result

            record_gaps(selector.exchange, selector.symbol, len(result.gaps))
            logger.info(
                f"Syncing {len(result.gaps)} ranges for {selector} "
                f"({total_gap_width(result.gaps)}ms): "
                + ", ".join(str(g) for g in result.gaps)
            )

            backfiller = RangeBackfiller(self.fetcher, store, self.fetch_limit)
            for gap in result.gaps:
                result.ranges.append(await backfiller.backfill(gap, selector))

        except Exception as e:
            logger.error(
                f"Sync failed for {selector} in {window} after "
                f"{len(result.ranges)}/{len(result.gaps)} ranges: {type(e).__name__}: {e}"
            )
            record_sync_run(selector.exchange, selector.symbol, "error")
            raise

        finally:
            result.duration_seconds = time.monotonic() - started

        record_sync_run(selector.exchange, selector.symbol, "success")
        logger.info(
            f"Synced {selector} in {window}: {result.trades_inserted} trades, "
            f"{result.pages_fetched} pages, {result.exhausted_ranges} exhausted ranges "
            f"({result.duration_seconds:.1f}s)"
        )
        return result
