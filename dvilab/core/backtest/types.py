"""Data structures for backtest results."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

ALIGNED_COLUMNS: tuple[str, str, str, str] = ("close", "daily_return", "indicator", "position")
LONG: int = 1
SHORT: int = -1


@dataclass(frozen=True)
class BacktestSummary:
    """Trade-count and return statistics for one aligned window."""

    start: str
    end: str
    threshold: float
    observations: int
    long_count: int
    short_count: int
    long_pct: float
    short_pct: float
    cumulative_return: float

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping."""
        return asdict(self)


@dataclass(frozen=True)
class BacktestDetail:
    """Summary plus the aligned frame and equity curve it was computed from."""

    ticker: str
    summary: BacktestSummary
    frame: pd.DataFrame
    equity_curve: pd.Series
