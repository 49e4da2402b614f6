"""Unit tests for the lagged threshold rule."""

from __future__ import annotations

import math
import unittest

import pandas as pd

from dvilab.core.backtest.signal import compute_positions
from dvilab.core.utils.errors import BacktestError
from dvilab.tests.helpers import make_close_series


class TestComputePositions(unittest.TestCase):
    """Validate one-bar lag, tie handling and warm-up dropping."""

    def test_position_uses_previous_indicator_value(self) -> None:
        indicator = make_close_series([0.2, 0.8, 0.3, 0.9]).rename("indicator")
        positions = compute_positions(indicator, threshold=0.5)

        self.assertEqual(list(positions.index), list(indicator.index[1:]))
        self.assertEqual(positions.tolist(), [1, -1, 1])
        self.assertEqual(positions.name, "position")
        self.assertEqual(str(positions.dtype), "int64")

    def test_changing_todays_indicator_leaves_todays_position(self) -> None:
        values = [0.2, 0.8, 0.3, 0.9, 0.1, 0.6]
        baseline = compute_positions(make_close_series(values), threshold=0.5)

        for bar in range(1, len(values)):
            perturbed_values = list(values)
            perturbed_values[bar] = 1.0 - perturbed_values[bar]
            perturbed = compute_positions(make_close_series(perturbed_values), threshold=0.5)
            with self.subTest(bar=bar):
                pd.testing.assert_series_equal(perturbed.iloc[:bar], baseline.iloc[:bar])
                if bar < len(values) - 1:
                    self.assertNotEqual(perturbed.iloc[bar], baseline.iloc[bar])

    def test_value_equal_to_threshold_is_short(self) -> None:
        indicator = make_close_series([0.5, 0.5, 0.5])
        positions = compute_positions(indicator, threshold=0.5)
        self.assertEqual(positions.tolist(), [-1, -1])

    def test_undefined_prior_values_are_dropped(self) -> None:
        indicator = make_close_series([math.nan, math.nan, 0.1, 0.7, 0.2])
        positions = compute_positions(indicator, threshold=0.5)

        self.assertEqual(list(positions.index), list(indicator.index[3:]))
        self.assertEqual(positions.tolist(), [1, -1])

    def test_extreme_thresholds(self) -> None:
        indicator = make_close_series([0.0, 0.25, 1.0, 0.75])
        self.assertTrue((compute_positions(indicator, threshold=0.0) == -1).all())
        self.assertTrue((compute_positions(indicator, threshold=1.01) == 1).all())

    def test_non_series_input_raises(self) -> None:
        with self.assertRaises(BacktestError):
            compute_positions(pd.DataFrame({"dvi": [0.1, 0.2]}), 0.5)  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
