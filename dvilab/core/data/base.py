"""Abstract interfaces for market data providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

import pandas as pd


class DataProvider(ABC):
    """Abstract interface for daily close-price providers."""

    @abstractmethod
    def fetch_daily_close(self, ticker: str, start: str, end: str) -> pd.Series:
        """
        Fetch daily close prices for a ticker over an inclusive date range.

        Args:
            ticker: Provider ticker identifier.
            start: Inclusive start date in ``YYYY-MM-DD`` format.
            end: Inclusive end date in ``YYYY-MM-DD`` format.

        Returns:
            Float series of closes with a strictly increasing UTC datetime
            index named ``date``.

        Raises:
            DataUnavailableError: If the ticker is unknown or no rows fall in range.
        """
