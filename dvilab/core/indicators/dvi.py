"""DV Intermediate oscillator (DVI), bounded in [0, 1]."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pandas as pd

Oscillator = Callable[[pd.Series], pd.Series]


def _sma(series: pd.Series, window: int) -> pd.Series:
    """Simple moving average, undefined until the window is full."""
    return series.rolling(window=window, min_periods=window).mean()


def _run_sum(series: pd.Series, window: int) -> pd.Series:
    """Running sum, undefined until the window is full."""
    return series.rolling(window=window, min_periods=window).sum()


def running_percent_rank(
    series: pd.Series,
    window: int,
    exact_multiplier: float = 1.0,
) -> pd.Series:
    """
    Percent rank of each value within its trailing window.

    The rank counts window values strictly below the current one, plus
    ``exact_multiplier`` times the values equal to it (the current value
    included), divided by the window length.

    Args:
        series: Input series.
        window: Trailing window length.
        exact_multiplier: Weight given to ties, in [0, 1].

    Returns:
        Series in [0, 1], undefined until the window is full.
    """

    def _rank(values: Any) -> float:
        current = values[-1]
        below = (values < current).sum()
        equal = (values == current).sum()
        return float((below + exact_multiplier * equal) / len(values))

    return series.rolling(window=window, min_periods=window).apply(_rank, raw=True)


def compute_dvi(
    close: pd.Series,
    lookback: int = 252,
    smooth: int = 3,
    magnitude: tuple[int, int, int] = (5, 100, 5),
    stretch: tuple[int, int, int] = (10, 100, 2),
    weights: tuple[float, float] = (0.8, 0.2),
    exact_multiplier: float = 1.0,
) -> pd.Series:
    """
    Compute the DVI oscillator for a close-price series.

    The DVI blends two percent-ranked components:
    - magnitude: smoothed deviation of price from its short moving average,
    - stretch: smoothed balance of up-days versus down-days.

    Args:
        close: Daily close prices.
        lookback: Percent-rank window.
        smooth: Moving average length used for the price deviation.
        magnitude: Short, long and smoothing windows for the magnitude component.
        stretch: Short, long and smoothing windows for the stretch component.
        weights: Magnitude and stretch weights.
        exact_multiplier: Tie weight passed to the percent rank.

    Returns:
        DVI series named ``dvi``, aligned to ``close.index``, NaN during warm-up.
    """
    price = pd.to_numeric(close, errors="coerce").astype(float)

    deviation = price / _sma(price, smooth) - 1.0
    mag_short, mag_long, mag_smooth = magnitude
    dvi_magnitude = _sma(
        (_sma(deviation, mag_short) + _sma(deviation, mag_long) / 10.0) / 2.0,
        mag_smooth,
    )

    previous = price.shift(1)
    direction = pd.Series(-1.0, index=price.index).mask(price > previous, 1.0)
    direction = direction.where(previous.notna())
    str_short, str_long, str_smooth = stretch
    dvi_stretch = _sma(
        (_run_sum(direction, str_short) + _run_sum(direction, str_long) / 10.0) / 2.0,
        str_smooth,
    )

    magnitude_rank = running_percent_rank(dvi_magnitude, lookback, exact_multiplier)
    stretch_rank = running_percent_rank(dvi_stretch, lookback, exact_multiplier)
    return (weights[0] * magnitude_rank + weights[1] * stretch_rank).rename("dvi")
