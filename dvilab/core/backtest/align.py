"""Alignment of price, return, indicator and position series."""

from __future__ import annotations

import pandas as pd

from dvilab.core.backtest.types import ALIGNED_COLUMNS
from dvilab.core.utils.errors import EmptyAlignmentError


def align(
    close: pd.Series,
    returns: pd.Series,
    indicator: pd.Series,
    positions: pd.Series,
) -> pd.DataFrame:
    """
    Inner-join the four series on timestamp and drop incomplete rows.

    Args:
        close: Close prices.
        returns: Day-over-day arithmetic returns.
        indicator: Oscillator values.
        positions: Lagged +1/-1 positions.

    Returns:
        Frame with ``close``, ``daily_return``, ``indicator`` and ``position``
        columns where every row has all four fields defined.

    Raises:
        EmptyAlignmentError: If no timestamp has all four fields.
    """
    frame = pd.concat(
        [close, returns, indicator, positions],
        axis=1,
        join="inner",
        keys=list(ALIGNED_COLUMNS),
    )
    frame = frame.dropna().sort_index()
    if frame.empty:
        raise EmptyAlignmentError(
            "No rows with price, return, indicator and position all defined; "
            "the window is likely shorter than the indicator warm-up."
        )

    frame["position"] = frame["position"].astype("int64")
    return frame
