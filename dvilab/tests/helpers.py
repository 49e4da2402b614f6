"""Test helpers for deterministic backtest cases."""

from __future__ import annotations

import math
import textwrap
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

import pandas as pd

from dvilab.core.data.base import DataProvider
from dvilab.core.utils.errors import DataUnavailableError

# Small DVI windows so a few months of data clear the warm-up.
SMALL_INDICATOR_YAML = """
    indicator:
      lookback: 5
      smooth: 2
      magnitude: [2, 4, 2]
      stretch: [2, 4, 2]
      weights: [0.8, 0.2]
      exact_multiplier: 1.0
"""


def make_close_series(
    close_values: Sequence[float],
    start: str = "2020-01-01",
    freq: str = "B",
) -> pd.Series:
    """Build a deterministic close series on a UTC business-day index."""
    index = pd.date_range(start, periods=len(close_values), freq=freq, tz="UTC", name="date")
    return pd.Series(list(close_values), index=index, dtype=float, name="close")


def make_wave_series(start: str, end: str, base: float = 100.0) -> pd.Series:
    """Build an oscillating, slowly rising close series between two dates."""
    index = pd.date_range(start, end, freq="B", tz="UTC", name="date")
    values = [
        base + 0.02 * step + 5.0 * math.sin(step / 3.0) + 2.0 * math.cos(step / 11.0)
        for step in range(len(index))
    ]
    return pd.Series(values, index=index, dtype=float, name="close")


def make_rising_series(start: str, end: str, daily_growth: float = 0.001) -> pd.Series:
    """Build a strictly rising close series compounding ``daily_growth`` per bar."""
    index = pd.date_range(start, end, freq="B", tz="UTC", name="date")
    values = [100.0 * (1.0 + daily_growth) ** step for step in range(len(index))]
    return pd.Series(values, index=index, dtype=float, name="close")


def constant_oscillator(value: float) -> Callable[[pd.Series], pd.Series]:
    """Oscillator stub returning ``value`` on every bar."""

    def _oscillator(close: pd.Series) -> pd.Series:
        return pd.Series(value, index=close.index, dtype=float)

    return _oscillator


def periodic_oscillator(
    high: float = 0.9,
    low: float = 0.1,
    every: int = 10,
) -> Callable[[pd.Series], pd.Series]:
    """Oscillator stub at ``high`` except every ``every``-th bar, which reads ``low``."""

    def _oscillator(close: pd.Series) -> pd.Series:
        values = [low if step % every == 0 else high for step in range(len(close.index))]
        return pd.Series(values, index=close.index, dtype=float)

    return _oscillator


class FakeProvider(DataProvider):
    """In-memory provider slicing fixed close series by inclusive date range."""

    def __init__(
        self,
        series_by_ticker: dict[str, pd.Series],
        on_fetch: Callable[[str, str, str], None] | None = None,
    ) -> None:
        self._series_by_ticker = series_by_ticker
        self._on_fetch = on_fetch
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str, str]] = []

    def fetch_daily_close(self, ticker: str, start: str, end: str) -> pd.Series:
        """Return the stored closes in ``[start, end]`` or raise when there are none."""
        with self._lock:
            self.calls.append((ticker, start, end))
        if self._on_fetch is not None:
            self._on_fetch(ticker, start, end)
        if ticker not in self._series_by_ticker:
            raise DataUnavailableError(f"Unknown ticker '{ticker}'.")

        series = self._series_by_ticker[ticker]
        window = series.loc[pd.Timestamp(start, tz="UTC") : pd.Timestamp(end, tz="UTC")]
        if window.empty:
            raise DataUnavailableError(f"No rows for '{ticker}' in [{start}, {end}].")
        return window.copy()


def write_config(root: Path, extra_yaml: str = "") -> Path:
    """Write a config file with small indicator windows and artifacts under ``root``."""
    config_path = root / "config.yaml"
    body = textwrap.dedent(SMALL_INDICATOR_YAML) + textwrap.dedent(f"""
        sweep:
          max_workers: 2
        output:
          artifacts_dir: {root / "artifacts"}
          save_plots: true
        logging:
          level: warning
        """) + textwrap.dedent(extra_yaml)
    config_path.write_text(body.strip() + "\n", encoding="utf-8")
    return config_path
