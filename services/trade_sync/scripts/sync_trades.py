#!/usr/bin/env python3
"""
Trade Sync Script

Detects and backfills gaps in the stored trades of one symbol, using the
same settings (DATABASE_URL, rate limits, tolerance) as the service.

Usage:
    python -m services.trade_sync.scripts.sync_trades --symbol tBTCUSD \\
        --start 2024-01-01T00:00:00Z --end 2024-01-02T00:00:00Z
    python -m services.trade_sync.scripts.sync_trades --symbol tETHUSD \\
        --start 1704067200000 --end 1704153599999 --dry-run --json

Output:
    - Detected gaps (always)
    - Per-gap outcome, trades inserted (unless --dry-run)
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from ..app.config import settings
from ..app.factory import create_rate_limiter, create_sync_service
from ..core.constants import DEFAULT_EXCHANGE
from ..core.types import TimeRange, TradeSelector
from ..persistence import DatabasePool, TradeRepository

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> int:
    """Parse integer milliseconds or an ISO-8601 datetime (naive = UTC) to ms."""
    value = value.strip()
    if value.lstrip("-").isdigit():
        return int(value)
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {value!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def format_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


async def run(args: argparse.Namespace) -> dict:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")

    selector = TradeSelector(exchange=args.exchange, symbol=args.symbol)
    window = TimeRange(start=args.start, end=args.end)

    pool = DatabasePool()
    await pool.connect(settings.database_url)
    service, source = create_sync_service(settings, create_rate_limiter(settings))

    try:
        if not await pool.initialize_schema():
            raise RuntimeError("trades table is not available")
        repository = TradeRepository(pool)

        if args.dry_run:
            gaps = await service.detect(repository, selector, window)
            return {
                "exchange": selector.exchange,
                "symbol": selector.symbol,
                "window": [window.start, window.end],
                "gaps": [[g.start, g.end] for g in gaps],
            }

        result = await service.sync(repository, selector, window)
        return {
            "exchange": result.exchange,
            "symbol": result.symbol,
            "window": [window.start, window.end],
            "gaps": [[g.start, g.end] for g in result.gaps],
            "ranges": [
                {
                    "start": r.range.start,
                    "end": r.range.end,
                    "outcome": r.outcome.value,
                    "pages": r.pages,
                    "trades_inserted": r.trades_inserted,
                }
                for r in result.ranges
            ],
            "trades_inserted": result.trades_inserted,
            "duration_seconds": round(result.duration_seconds, 3),
        }
    finally:
        await source.close()
        await pool.close()


def print_report(report: dict) -> None:
    print(f"\n{report['exchange']}:{report['symbol']}  "
          f"{format_ms(report['window'][0])} -> {format_ms(report['window'][1])}")
    if not report["gaps"]:
        print("  No gaps")
        return

    print(f"  {len(report['gaps'])} gaps:")
    for start, end in report["gaps"]:
        print(f"    {format_ms(start)} -> {format_ms(end)}")

    if "ranges" in report:
        print("  Results:")
        for r in report["ranges"]:
            print(f"    {r['start']}-{r['end']}: {r['outcome']:<9} "
                  f"pages={r['pages']} trades={r['trades_inserted']}")
        print(f"  Inserted {report['trades_inserted']} trades in {report['duration_seconds']}s")


def main():
    parser = argparse.ArgumentParser(
        description="Detect and backfill gaps in stored trades",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --symbol tBTCUSD --start 2024-01-01T00:00:00Z --end 2024-01-02T00:00:00Z
  %(prog)s --symbol tETHUSD --start 1704067200000 --end 1704153599999 --dry-run
        """,
    )
    parser.add_argument(
        "--exchange",
        type=str,
        default=DEFAULT_EXCHANGE,
        help=f"Exchange ID (default: {DEFAULT_EXCHANGE})",
    )
    parser.add_argument(
        "--symbol",
        type=str,
        required=True,
        help="Exchange symbol, e.g. tBTCUSD",
    )
    parser.add_argument(
        "--start",
        type=parse_timestamp,
        required=True,
        help="Window start: ms since epoch or ISO-8601",
    )
    parser.add_argument(
        "--end",
        type=parse_timestamp,
        required=True,
        help="Window end (inclusive): ms since epoch or ISO-8601",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report gaps, fetch nothing",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON",
    )

    args = parser.parse_args()

    if args.start > args.end:
        parser.error("--start must not be after --end")

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        report = asyncio.run(run(args))
    except Exception as e:
        logger.error(f"Sync failed: {type(e).__name__}: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)


if __name__ == "__main__":
    main()
