"""Single-window DVI threshold backtest."""

from __future__ import annotations

import pandas as pd

from dvilab.core.backtest.align import align
from dvilab.core.backtest.metrics import equity_curve, summarize
from dvilab.core.backtest.signal import compute_positions
from dvilab.core.backtest.types import BacktestDetail, BacktestSummary
from dvilab.core.data.base import DataProvider
from dvilab.core.dates import normalize_date_range
from dvilab.core.indicators.dvi import Oscillator, compute_dvi
from dvilab.core.utils.errors import BacktestError, DataUnavailableError, DataValidationError
from dvilab.core.utils.logging import get_logger

DEFAULT_THRESHOLD = 0.5

_LOGGER = get_logger(__name__)


def _validate_close(ticker: str, close: pd.Series) -> pd.Series:
    """Validate and normalize provider output before the backtest runs."""
    if not isinstance(close, pd.Series):
        raise DataValidationError(f"Provider must return pd.Series for ticker '{ticker}'.")
    if close.empty:
        raise DataUnavailableError(f"Provider returned no rows for ticker '{ticker}'.")
    if not isinstance(close.index, pd.DatetimeIndex):
        raise DataValidationError(f"Close prices for ticker '{ticker}' must use DatetimeIndex.")

    normalized = pd.to_numeric(close, errors="coerce").astype(float).sort_index()
    normalized = normalized.loc[~normalized.index.duplicated(keep="last")]

    # NaN fails both comparisons; zero or negative closes would make returns infinite.
    valid = normalized.gt(0.0) & normalized.lt(float("inf"))
    if not valid.all():
        _LOGGER.warning(
            "Dropping %d non-finite or non-positive closes for %s",
            int((~valid).sum()),
            ticker,
        )
        normalized = normalized.loc[valid]
    if normalized.empty:
        raise DataUnavailableError(f"No valid close prices for ticker '{ticker}'.")
    return normalized.rename("close")


class WindowBacktester:
    """Run the fetch, indicator, signal, align and summarize pipeline for one window."""

    def __init__(self, provider: DataProvider, oscillator: Oscillator = compute_dvi) -> None:
        """
        Initialize a backtester.

        Args:
            provider: Source of daily close prices.
            oscillator: Pure function mapping closes to indicator values in [0, 1].
        """
        self.provider = provider
        self.oscillator = oscillator

    def run_detailed(
        self,
        ticker: str,
        start: str | int,
        end: str | int,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> BacktestDetail:
        """
        Backtest one window and keep the aligned frame.

        Execution model:
        - The indicator is computed on the close of day ``t - 1``.
        - The position implied by it is held over day ``t``.
        - Day ``t`` PnL is the close-to-close return times that position.

        Args:
            ticker: Provider ticker identifier.
            start: ``YYYY`` or ``YYYYMMDD`` start bound.
            end: ``YYYY`` or ``YYYYMMDD`` end bound.
            threshold: Indicator value below which the rule goes long.

        Returns:
            Backtest detail with summary, aligned frame and equity curve.

        Raises:
            InvalidDateFormatError: For malformed date inputs.
            DataUnavailableError: If the provider has no data in range.
            EmptyAlignmentError: If no row survives alignment.
        """
        start_date, end_date = normalize_date_range(start, end)
        if start_date > end_date:
            raise BacktestError(f"Start date {start_date} is after end date {end_date}.")

        _LOGGER.debug(
            "Backtesting %s from %s to %s at threshold %s", ticker, start_date, end_date, threshold
        )
        raw_close = self.provider.fetch_daily_close(ticker, start_date, end_date)
        close = _validate_close(ticker, raw_close)
        returns = close.pct_change().iloc[1:].rename("daily_return")
        indicator = self.oscillator(close).rename("indicator")
        positions = compute_positions(indicator, threshold)

        frame = align(close, returns, indicator, positions)
        summary = summarize(frame, threshold)
        return BacktestDetail(
            ticker=ticker,
            summary=summary,
            frame=frame,
            equity_curve=equity_curve(frame),
        )

    def run(
        self,
        ticker: str,
        start: str | int,
        end: str | int,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> BacktestSummary:
        """Backtest one window and return only its summary."""
        return self.run_detailed(ticker, start, end, threshold).summary
