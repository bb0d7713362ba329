"""
Gap Detection

Turns the trades already stored for a window into the list of sub-ranges
that still need fetching.

A gap is any stretch longer than the tolerance without a stored trade:
    - before the first trade (left cap)
    - between two consecutive trades (interior)
    - after the last trade (right cap)

Gaps are emitted left cap, interior, right cap, so the result is ordered by
start, pairwise disjoint and clipped to the window.
"""

import logging
from typing import Sequence

from .constants import TRADE_GAP_LIMIT_MS
from .types import TimeRange, Trade

logger = logging.getLogger(__name__)


def detect_gaps(
    trades: Sequence[Trade],
    window: TimeRange,
    tolerance_ms: int = TRADE_GAP_LIMIT_MS,
    symmetric_single_record: bool = False,
) -> list[TimeRange]:
    """
    Compute the ranges of `window` not covered by `trades`.

    Args:
        trades: Stored trades for one partition, ascending by timestamp
        window: Sync window
        tolerance_ms: Largest spacing between trades that is not a gap
        symmetric_single_record: With exactly one stored trade, check the
            left and right caps independently. When False (default) a lone
            trade only produces gaps if it is far from `window.end`, and then
            produces both sides.

    Returns:
        Gaps ordered by start (may be empty)

    Raises:
        ValueError: If tolerance is not positive or trades are out of order
    """
    if tolerance_ms <= 0:
        raise ValueError(f"tolerance_ms must be positive, got {tolerance_ms}")

    timestamps = [t.timestamp for t in trades]
    for prev, nxt in zip(timestamps, timestamps[1:]):
        if nxt < prev:
            raise ValueError(
                f"trades must be sorted ascending by timestamp ({prev} before {nxt})"
            )

    if not timestamps:
        return [window]

    gaps: list[TimeRange] = []

    if len(timestamps) == 1 and not symmetric_single_record:
        mts = timestamps[0]
        if mts < window.end and window.end - mts > tolerance_ms:
            _append_clipped(gaps, window.start, mts - 1, window)
            _append_clipped(gaps, mts + 1, window.end, window)
        return gaps

    first, last = timestamps[0], timestamps[-1]

    if first - window.start > tolerance_ms:
        _append_clipped(gaps, window.start, first - 1, window)

    for prev, nxt in zip(timestamps, timestamps[1:]):
        if nxt - prev > tolerance_ms:
            _append_clipped(gaps, prev + 1, nxt - 1, window)

    if window.end - last > tolerance_ms:
        _append_clipped(gaps, last + 1, window.end, window)

    return gaps


def _append_clipped(gaps: list[TimeRange], start: int, end: int, window: TimeRange) -> None:
    """Clip [start, end] to the window and append it unless it is empty."""
    start = max(start, window.start)
    end = min(end, window.end)
    if start > end:
        logger.debug(f"Dropping empty gap {start}-{end} (window {window})")
        return
    gaps.append(TimeRange(start=start, end=end))


def total_gap_width(gaps: Sequence[TimeRange]) -> int:
    """Total milliseconds covered by a list of disjoint gaps."""
    return sum(g.width for g in gaps)
