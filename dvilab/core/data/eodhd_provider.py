"""EOD Historical Data provider implementation."""

from __future__ import annotations

import os
import time
from typing import Any

import pandas as pd
import requests

from dvilab.core.data.base import DataProvider
from dvilab.core.utils.errors import DataFetchError, DataUnavailableError, DataValidationError
from dvilab.core.utils.logging import get_logger

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
NOT_FOUND_STATUS_CODE = 404

_LOGGER = get_logger(__name__)


class EODHDProvider(DataProvider):
    """REST client for EOD Historical Data daily closes."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://eodhd.com/api",
        session: requests.Session | None = None,
        price_field: str = "close",
        timeout_seconds: float = 30.0,
        max_retries: int = 1,
        retry_backoff_seconds: float = 0.5,
        api_key_env: str = "EODHD_API_KEY",
    ) -> None:
        """
        Initialize an EODHD provider.

        Args:
            api_key: API token. If omitted, read from the ``api_key_env`` variable.
            base_url: Base URL for the EODHD REST API.
            session: Optional requests session for dependency injection.
            price_field: Payload column used as the close price.
            timeout_seconds: Per-request timeout in seconds.
            max_retries: Retry attempts for transient failures.
            retry_backoff_seconds: Base seconds for exponential retry backoff.
            api_key_env: Environment variable holding the API token.

        Raises:
            ValueError: If no API key is available or retry settings are negative.
        """
        resolved_api_key = api_key or os.getenv(api_key_env)
        if not resolved_api_key:
            raise ValueError(
                f"EODHD API key is required. Set {api_key_env} or pass api_key explicitly."
            )
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0.")
        if retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0.")

        self._api_key = resolved_api_key
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._price_field = price_field
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    def _sleep_before_retry(self, attempt: int) -> None:
        """Sleep deterministic exponential backoff before retry attempt."""
        if self._retry_backoff_seconds == 0:
            return
        time.sleep(self._retry_backoff_seconds * (2**attempt))

    def _request_payload(self, endpoint: str, params: dict[str, str], ticker: str) -> Any:
        """Request raw payload, retrying transient failures only."""
        last_exception: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.get(endpoint, params=params, timeout=self._timeout_seconds)
                if response.status_code == NOT_FOUND_STATUS_CODE:
                    raise DataUnavailableError(f"Ticker '{ticker}' was not found by EODHD.")
                if response.status_code in RETRYABLE_STATUS_CODES and attempt < self._max_retries:
                    _LOGGER.warning(
                        "EODHD returned HTTP %s for %s, retrying (attempt %d/%d)",
                        response.status_code,
                        ticker,
                        attempt + 1,
                        self._max_retries,
                    )
                    self._sleep_before_retry(attempt)
                    continue

                response.raise_for_status()
            except requests.exceptions.RequestException as exc:
                last_exception = exc
                if attempt >= self._max_retries:
                    break
                _LOGGER.warning("EODHD request for %s failed: %s, retrying", ticker, exc)
                self._sleep_before_retry(attempt)
                continue

            # A malformed body is not transient, so decoding stays outside the retry loop.
            try:
                return response.json()
            except ValueError as exc:
                raise DataValidationError(f"Invalid JSON response for ticker '{ticker}'.") from exc

        raise DataFetchError(f"Failed to fetch data for ticker '{ticker}': {last_exception}")

    def _normalize_payload(self, payload: Any, ticker: str, start: str, end: str) -> pd.Series:
        """Validate vendor payload schema and normalize to a close series."""
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error") or str(payload)
            raise DataValidationError(f"EODHD error for ticker '{ticker}': {message}")
        if not isinstance(payload, list):
            raise DataValidationError(f"Unexpected EODHD response type for ticker '{ticker}'.")
        if not payload:
            raise DataUnavailableError(f"No EODHD rows for ticker '{ticker}' in [{start}, {end}].")

        frame = pd.DataFrame(payload)
        missing = [column for column in ("date", self._price_field) if column not in frame.columns]
        if missing:
            raise DataValidationError(
                f"EODHD payload is missing required columns for ticker '{ticker}': {missing}"
            )

        dates = pd.to_datetime(frame["date"], utc=True, errors="coerce")
        prices = pd.to_numeric(frame[self._price_field], errors="coerce")
        close = pd.Series(prices.to_numpy(dtype=float), index=pd.DatetimeIndex(dates, name="date"))
        close = close.loc[close.index.notna() & close.notna() & (close > 0.0)]
        close = close.sort_index()
        close = close.loc[~close.index.duplicated(keep="last")]

        if close.empty:
            raise DataUnavailableError(
                f"No valid close prices for ticker '{ticker}' in [{start}, {end}]."
            )
        return close.rename("close")

    def fetch_daily_close(self, ticker: str, start: str, end: str) -> pd.Series:
        """
        Fetch daily close prices for a ticker from EODHD.

        Args:
            ticker: Provider ticker identifier, for example ``JNJ.US``.
            start: Inclusive start date in ``YYYY-MM-DD`` format.
            end: Inclusive end date in ``YYYY-MM-DD`` format.

        Returns:
            Close series with UTC datetime index named ``date``.
        """
        endpoint = f"{self._base_url}/eod/{ticker}"
        params = {
            "api_token": self._api_key,
            "from": start,
            "to": end,
            "period": "d",
            "order": "a",
            "fmt": "json",
        }
        payload = self._request_payload(endpoint=endpoint, params=params, ticker=ticker)
        return self._normalize_payload(payload, ticker=ticker, start=start, end=end)
