"""
Trade Sync Core Types

Canonical type definitions shared by gap detection, fetching and persistence.

TIME CONTRACT:
    All timestamps are integer milliseconds since epoch (Bitfinex MTS).
    Ranges are inclusive on both ends.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================

class SortDirection(int, Enum):
    """Result ordering requested from the remote source (Bitfinex `sort`)."""
    ASC = 1
    DESC = -1


# =============================================================================
# Trade
# =============================================================================

class Trade(BaseModel):
    """A single executed trade.

    `exchange` and `symbol` identify the partition the trade belongs to. They
    are empty on trades fresh from a source and filled in before insert.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Exchange trade ID")
    timestamp: int = Field(..., description="Execution time (ms since epoch)")
    amount: float = Field(..., description="Signed amount (negative = sell)")
    price: float = Field(..., description="Execution price")
    exchange: str = Field(default="", description="Exchange ID")
    symbol: str = Field(default="", description="Exchange symbol")

    def tagged(self, exchange: str, symbol: str) -> "Trade":
        """Copy of this trade assigned to a partition."""
        return self.model_copy(update={"exchange": exchange, "symbol": symbol})


# =============================================================================
# Ranges & Selectors
# =============================================================================

class TimeRange(BaseModel):
    """Inclusive millisecond range. Used for sync windows and detected gaps."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., description="First timestamp (inclusive, ms)")
    end: int = Field(..., description="Last timestamp (inclusive, ms)")

    @model_validator(mode="after")
    def _check_bounds(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError(f"range start {self.start} is after end {self.end}")
        return self

    @property
    def width(self) -> int:
        """Number of milliseconds covered."""
        return self.end - self.start + 1

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class TradeSelector(BaseModel):
    """Identifies one (exchange, symbol) partition of the trade store."""

    model_config = ConfigDict(frozen=True)

    exchange: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)

    def as_filters(self) -> list[tuple[str, str, Any]]:
        """Store filter conjunction matching this partition."""
        return [
            ("exchange", "=", self.exchange),
            ("symbol", "=", self.symbol),
        ]

    def __str__(self) -> str:
        return f"{self.exchange}:{self.symbol}"
