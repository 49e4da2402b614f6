"""Tests for the single-window backtest pipeline."""

from __future__ import annotations

import math
import unittest

import pandas as pd

from dvilab.core.backtest.engine import WindowBacktester
from dvilab.core.backtest.types import ALIGNED_COLUMNS
from dvilab.core.indicators.dvi import compute_dvi
from dvilab.core.utils.errors import (
    BacktestError,
    DataUnavailableError,
    EmptyAlignmentError,
    InvalidDateFormatError,
)
from dvilab.tests.helpers import (
    FakeProvider,
    constant_oscillator,
    make_close_series,
    make_rising_series,
    make_wave_series,
    periodic_oscillator,
)


class TestWindowBacktester(unittest.TestCase):
    """Validate fetch, signal and summary wiring plus error propagation."""

    def setUp(self) -> None:
        self.provider = FakeProvider(
            {
                "JNJ.US": make_rising_series("2009-01-01", "2013-12-31"),
                "WAVE.US": make_wave_series("2008-01-01", "2016-12-31"),
            }
        )

    def test_rising_prices_with_mostly_high_indicator_lose_money(self) -> None:
        backtester = WindowBacktester(self.provider, oscillator=periodic_oscillator())
        summary = backtester.run("JNJ.US", "2010", "2012", threshold=0.5)

        self.assertEqual(summary.start[:4], "2010")
        self.assertEqual(summary.end[:4], "2012")
        self.assertGreater(summary.short_count, summary.long_count)
        self.assertLess(summary.cumulative_return, 0.0)
        self.assertEqual(summary.long_count + summary.short_count, summary.observations)
        self.assertAlmostEqual(summary.long_pct + summary.short_pct, 100.0, delta=0.01)
        self.assertEqual(self.provider.calls[0], ("JNJ.US", "2010-01-01", "2012-12-31"))

    def test_constant_indicator_drops_only_first_bar(self) -> None:
        backtester = WindowBacktester(self.provider, oscillator=constant_oscillator(0.2))
        detail = backtester.run_detailed("WAVE.US", "20110103", "20110131", threshold=0.5)
        fetched = self.provider.fetch_daily_close("WAVE.US", "2011-01-03", "2011-01-31")

        self.assertEqual(detail.summary.observations, len(fetched) - 1)
        self.assertEqual(detail.summary.long_count, detail.summary.observations)
        self.assertEqual(tuple(detail.frame.columns), ALIGNED_COLUMNS)
        self.assertEqual(len(detail.equity_curve), detail.summary.observations)

    def test_real_dvi_over_three_years(self) -> None:
        backtester = WindowBacktester(self.provider)
        summary = backtester.run("WAVE.US", 2010, 2012)
        close = self.provider.fetch_daily_close("WAVE.US", "2010-01-01", "2012-12-31")

        # DVI defined from bar 356, positions one bar later
        self.assertEqual(summary.observations, len(close) - 357)
        self.assertEqual(summary.threshold, 0.5)

    def test_repeated_runs_are_identical(self) -> None:
        backtester = WindowBacktester(self.provider, oscillator=compute_dvi)
        first = backtester.run_detailed("WAVE.US", "2011", "2013", threshold=0.4)
        second = backtester.run_detailed("WAVE.US", "2011", "2013", threshold=0.4)

        self.assertEqual(first.summary, second.summary)
        pd.testing.assert_frame_equal(first.frame, second.frame)

    def test_short_window_raises_empty_alignment(self) -> None:
        backtester = WindowBacktester(self.provider)
        with self.assertRaises(EmptyAlignmentError):
            backtester.run("WAVE.US", "2012", "2012")

    def test_unknown_ticker_propagates_unavailable(self) -> None:
        backtester = WindowBacktester(self.provider, oscillator=constant_oscillator(0.2))
        with self.assertRaises(DataUnavailableError):
            backtester.run("MISSING.US", "2010", "2012")

    def test_invalid_dates_raise_before_fetch(self) -> None:
        backtester = WindowBacktester(self.provider)
        with self.assertRaises(InvalidDateFormatError):
            backtester.run("WAVE.US", "2010-01-01", "2012")
        self.assertEqual(self.provider.calls, [])

    def test_zero_and_non_finite_closes_are_dropped(self) -> None:
        provider = FakeProvider(
            {"X": make_close_series([10.0, 0.0, 11.0, math.inf, 12.0, math.nan, 13.0, 14.0])}
        )
        backtester = WindowBacktester(provider, oscillator=constant_oscillator(0.2))
        detail = backtester.run_detailed("X", "20200101", "20200131")

        self.assertEqual(detail.frame["close"].tolist(), [11.0, 12.0, 13.0, 14.0])
        self.assertEqual(detail.summary.observations, 4)
        self.assertEqual(detail.summary.long_count, 4)
        self.assertTrue(math.isfinite(detail.summary.cumulative_return))
        self.assertAlmostEqual(detail.summary.cumulative_return, 0.4)

    def test_only_non_positive_closes_raise_unavailable(self) -> None:
        provider = FakeProvider({"X": make_close_series([0.0, -1.0, 0.0])})
        backtester = WindowBacktester(provider, oscillator=constant_oscillator(0.2))
        with self.assertRaises(DataUnavailableError):
            backtester.run("X", "20200101", "20200131")

    def test_reversed_dates_raise(self) -> None:
        backtester = WindowBacktester(self.provider)
        with self.assertRaises(BacktestError):
            backtester.run("WAVE.US", "2013", "2012")


if __name__ == "__main__":
    unittest.main()
