"""
Range Backfiller

Fills one gap by repeated fetch-and-store cycles, advancing a cursor.

Cursor state machine:
    cursor = gap.start - 1
    page empty                 -> EXHAUSTED (source has nothing more, not an error)
    page non-empty, cursor < end -> CONTINUE
    cursor >= gap.end          -> DONE

Each fetch requests (cursor, gap.end], so fetches within a gap are strictly
sequential and never leave the gap.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

from ..connectors.throttled import ThrottledFetcher
from ..core.constants import FETCH_LIMIT
from ..core.metrics import record_page, record_range_outcome
from ..core.types import SortDirection, TimeRange, Trade, TradeSelector

logger = logging.getLogger(__name__)


class TradeStore(Protocol):
    """Store operations used by sync and backfill."""

    async def get_in_range(self, filters, key: str, start: int, end: int) -> list[Trade]: ...

    async def bulk_insert(self, trades: Sequence[Trade]) -> int: ...


class BackfillStep(str, Enum):
    """Position of a gap backfill in its state machine."""
    CONTINUE = "continue"
    DONE = "done"
    EXHAUSTED = "exhausted"


class BackfillStalledError(RuntimeError):
    """The source returned a page that does not move the cursor forward."""


@dataclass
class BackfillCursor:
    """Last confirmed timestamp of a gap backfill and the gap's end."""

    cursor: int
    target: int

    @classmethod
    def for_range(cls, gap: TimeRange) -> "BackfillCursor":
        return cls(cursor=gap.start - 1, target=gap.end)

    @property
    def state(self) -> BackfillStep:
        return BackfillStep.DONE if self.cursor >= self.target else BackfillStep.CONTINUE

    def advance(self, page: Sequence[Trade]) -> BackfillStep:
        """
        Move past a fetched page.

        Returns:
            EXHAUSTED for an empty page, otherwise DONE or CONTINUE

        Raises:
            BackfillStalledError: If the page ends at or before the cursor
        """
        if not page:
            return BackfillStep.EXHAUSTED

        last = page[-1].timestamp
        if last <= self.cursor:
            raise BackfillStalledError(
                f"page ending at {last} does not advance cursor {self.cursor}"
            )

        self.cursor = last
        return self.state


@dataclass
class RangeBackfillResult:
    """Result of backfilling a single gap."""

    range: TimeRange
    outcome: BackfillStep
    cursor: int
    pages: int = 0
    trades_inserted: int = 0

    @property
    def exhausted(self) -> bool:
        return self.outcome == BackfillStep.EXHAUSTED


class RangeBackfiller:
    """
    Drives one gap to completion.

    Usage:
        backfiller = RangeBackfiller(fetcher, repository)
        result = await backfiller.backfill(gap, TradeSelector(exchange="bitfinex", symbol="tBTCUSD"))
    """

    def __init__(
        self,
        fetcher: ThrottledFetcher,
        store: TradeStore,
        fetch_limit: int = FETCH_LIMIT,
    ):
        if fetch_limit <= 0:
            raise ValueError(f"fetch_limit must be positive, got {fetch_limit}")
        self.fetcher = fetcher
        self.store = store
        self.fetch_limit = fetch_limit

    async def backfill(self, gap: TimeRange, selector: TradeSelector) -> RangeBackfillResult:
        """
        Fetch and store every trade the source has in `gap`.

        Args:
            gap: Range to fill
            selector: Partition the trades are stored under

        Returns:
            RangeBackfillResult with the terminal outcome
        """
        cursor = BackfillCursor.for_range(gap)
        step = cursor.state
        pages = 0
        inserted = 0

        while step == BackfillStep.CONTINUE:
            logger.debug(
                f"Fetching max {self.fetch_limit} trades for {selector} "
                f"({cursor.cursor}, {gap.end}]"
            )

            page = await self.fetcher.fetch(
                selector.symbol,
                cursor.cursor,
                gap.end,
                self.fetch_limit,
                SortDirection.ASC,
            )

            if page:
                tagged = [t.tagged(selector.exchange, selector.symbol) for t in page]
                count = await self.store.bulk_insert(tagged)
                pages += 1
                inserted += count
                record_page(selector.exchange, selector.symbol, count)
                logger.debug(
                    f"Stored {len(page)} trades for {selector} "
                    f"({page[0].timestamp} -> {page[-1].timestamp})"
                )

            step = cursor.advance(page)

        if step == BackfillStep.EXHAUSTED:
            logger.info(
                f"Fetched empty trade set for {selector} ({cursor.cursor}, {gap.end}], "
                f"considering range {gap} finished"
            )

        record_range_outcome(selector.exchange, selector.symbol, step.value)

        return RangeBackfillResult(
            range=gap,
            outcome=step,
            cursor=cursor.cursor,
            pages=pages,
            trades_inserted=inserted,
        )
