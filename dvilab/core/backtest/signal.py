"""Threshold rule turning an oscillator into lagged long/short positions."""

from __future__ import annotations

import pandas as pd

from dvilab.core.backtest.types import LONG, SHORT
from dvilab.core.utils.errors import BacktestError


def compute_positions(indicator: pd.Series, threshold: float) -> pd.Series:
    """
    Convert an indicator series into a one-bar lagged position series.

    Position at ``t`` is long (+1) when the indicator at ``t - 1`` is strictly
    below ``threshold``, short (-1) otherwise, so a value equal to the
    threshold is short. Timestamps whose prior indicator value is undefined
    (the first bar and the indicator warm-up) are dropped, not imputed.

    Args:
        indicator: Oscillator values indexed by timestamp.
        threshold: Long/short boundary.

    Returns:
        Integer series of +1/-1 named ``position``.
    """
    if not isinstance(indicator, pd.Series):
        raise BacktestError("Indicator must be a pd.Series.")

    prior = pd.to_numeric(indicator, errors="coerce").astype(float).shift(1)
    defined = prior.notna()
    positions = pd.Series(SHORT, index=prior.index, dtype="int64")
    positions = positions.mask(prior < threshold, LONG)
    return positions.loc[defined].astype("int64").rename("position")
