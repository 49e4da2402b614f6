"""Unit tests for date input normalization."""

from __future__ import annotations

import unittest

from dvilab.core.dates import normalize_date_input, normalize_date_range
from dvilab.core.utils.errors import InvalidDateFormatError


class TestNormalizeDateInput(unittest.TestCase):
    """Validate YYYY and YYYYMMDD handling."""

    def test_year_resolves_to_whole_year(self) -> None:
        self.assertEqual(normalize_date_input("2010", "start"), "2010-01-01")
        self.assertEqual(normalize_date_input("2010", "end"), "2010-12-31")
        self.assertEqual(normalize_date_input(2012, "end"), "2012-12-31")

    def test_full_date_is_parsed(self) -> None:
        self.assertEqual(normalize_date_input("20200131", "start"), "2020-01-31")
        self.assertEqual(normalize_date_input(20200229, "end"), "2020-02-29")

    def test_range_helper(self) -> None:
        self.assertEqual(normalize_date_range("2010", "2012"), ("2010-01-01", "2012-12-31"))

    def test_invalid_inputs_raise(self) -> None:
        for value in ("201", "201001", "2010-01-01", "abcd", "", "20210230", "20201301"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidDateFormatError):
                    normalize_date_input(value, "start")

    def test_error_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            normalize_date_input("1.5", "end")


if __name__ == "__main__":
    unittest.main()
