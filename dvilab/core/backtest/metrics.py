"""Summary statistics for an aligned backtest frame."""

from __future__ import annotations

import pandas as pd

from dvilab.core.backtest.types import LONG, SHORT, BacktestSummary
from dvilab.core.utils.errors import EmptyAlignmentError

PCT_DECIMALS = 2
RETURN_DECIMALS = 3


def strategy_returns(frame: pd.DataFrame) -> pd.Series:
    """Signed daily returns: a short position profits from a falling price."""
    return (frame["daily_return"].astype(float) * frame["position"].astype(float)).rename(
        "strategy_return"
    )


def equity_curve(frame: pd.DataFrame) -> pd.Series:
    """Compounded equity curve starting from 1.0."""
    return (1.0 + strategy_returns(frame)).cumprod().rename("equity")


def position_counts(positions: pd.Series) -> dict[int, int]:
    """
    Count long and short rows.

    Both sides are always present in the result; a side with no rows counts 0.
    """
    observed = positions.value_counts()
    return {side: int(observed.get(side, 0)) for side in (LONG, SHORT)}


def summarize(frame: pd.DataFrame, threshold: float) -> BacktestSummary:
    """
    Summarize an aligned frame into counts, percentages and cumulative return.

    Args:
        frame: Aligned frame with ``daily_return`` and ``position`` columns.
        threshold: Threshold the positions were generated with.

    Returns:
        Backtest summary.
    """
    observations = int(frame.shape[0])
    if observations == 0:
        raise EmptyAlignmentError("Cannot summarize an empty aligned frame.")

    counts = position_counts(frame["position"])
    long_count = counts[LONG]
    short_count = counts[SHORT]
    compounded = float((1.0 + strategy_returns(frame)).prod()) - 1.0

    return BacktestSummary(
        start=frame.index.min().date().isoformat(),
        end=frame.index.max().date().isoformat(),
        threshold=float(threshold),
        observations=observations,
        long_count=long_count,
        short_count=short_count,
        long_pct=round(100.0 * long_count / observations, PCT_DECIMALS),
        short_pct=round(100.0 * short_count / observations, PCT_DECIMALS),
        cumulative_return=round(compounded, RETURN_DECIMALS),
    )
