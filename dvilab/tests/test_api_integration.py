"""Integration tests for DVILab FastAPI endpoints."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import httpx

from dvilab.api.app import create_app
from dvilab.core.config import load_config
from dvilab.core.utils.errors import DataFetchError
from dvilab.tests.helpers import FakeProvider, make_wave_series, write_config


def _raise_fetch_error(ticker: str, start: str, end: str) -> None:
    raise DataFetchError(f"transport down for {ticker} [{start}, {end}]")


class TestApiIntegration(unittest.IsolatedAsyncioTestCase):
    """Validate API health, backtest and sweep workflows."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.app_config = load_config(write_config(Path(self.temp_dir.name)))
        self.provider = FakeProvider({"JNJ.US": make_wave_series("2009-01-01", "2016-12-31")})

    def _client(self, provider: FakeProvider | None = None) -> httpx.AsyncClient:
        app = create_app(app_config=self.app_config, provider=provider or self.provider)
        transport = httpx.ASGITransport(app=app)
        return httpx.AsyncClient(transport=transport, base_url="http://testserver")

    async def test_health(self) -> None:
        async with self._client() as client:
            response = await client.get("/health")
            self.assertEqual(response.status_code, 200)
            payload = response.json()
            self.assertEqual(payload["status"], "ok")
            self.assertEqual(payload["service"], "dvilab-api")

    async def test_backtest_returns_summary(self) -> None:
        async with self._client() as client:
            response = await client.post(
                "/backtests",
                json={"ticker": "JNJ.US", "start": "2010", "end": 2012, "threshold": 0.5},
            )
            self.assertEqual(response.status_code, 200, msg=response.text)
            payload = response.json()
            summary = payload["summary"]
            self.assertEqual(payload["ticker"], "JNJ.US")
            total = summary["long_count"] + summary["short_count"]
            self.assertEqual(total, summary["observations"])
            self.assertTrue(summary["start"].startswith("2010-"))
            self.assertTrue(summary["end"].startswith("2012-"))

    async def test_period_sweep_records_skipped_windows(self) -> None:
        async with self._client() as client:
            response = await client.post(
                "/sweeps/periods",
                json={
                    "ticker": "JNJ.US",
                    "period_years": 3,
                    "range_start": 2006,
                    "range_end": 2012,
                    "max_workers": 2,
                },
            )
            self.assertEqual(response.status_code, 200, msg=response.text)
            payload = response.json()
            self.assertEqual(payload["kind"], "period")
            self.assertEqual(payload["attempted"], 5)
            self.assertEqual(
                [entry["label"] for entry in payload["entries"]],
                ["2007-2009", "2008-2010", "2009-2011", "2010-2012"],
            )
            self.assertEqual(payload["skipped"][0]["label"], "2006-2008")
            self.assertEqual(payload["skipped"][0]["error_code"], "data_unavailable")

    async def test_threshold_sweep_is_ascending(self) -> None:
        async with self._client() as client:
            response = await client.post(
                "/sweeps/thresholds",
                json={
                    "ticker": "JNJ.US",
                    "start": "20110101",
                    "end": "20121231",
                    "low": 0.0,
                    "high": 1.0,
                    "increment": 0.25,
                },
            )
            self.assertEqual(response.status_code, 200, msg=response.text)
            thresholds = [entry["summary"]["threshold"] for entry in response.json()["entries"]]
            self.assertEqual(thresholds, [0.0, 0.25, 0.5, 0.75, 1.0])

    async def test_typed_errors_map_to_statuses(self) -> None:
        cases = [
            ("/backtests", {"ticker": "JNJ.US", "start": "2010-01", "end": "2012"}, 400),
            ("/backtests", {"ticker": "NOPE.US", "start": "2010", "end": "2012"}, 404),
            ("/backtests", {"ticker": "JNJ.US", "start": "20120101", "end": "20120110"}, 422),
            (
                "/sweeps/thresholds",
                {
                    "ticker": "JNJ.US",
                    "start": "2001",
                    "end": "2002",
                    "low": 0.4,
                    "high": 0.6,
                    "increment": 0.1,
                },
                422,
            ),
        ]
        expected_codes = [
            "invalid_date_format",
            "data_unavailable",
            "empty_alignment",
            "no_valid_thresholds",
        ]
        async with self._client() as client:
            for (path, body, status), error_code in zip(cases, expected_codes, strict=True):
                with self.subTest(path=path, body=body):
                    response = await client.post(path, json=body)
                    self.assertEqual(response.status_code, status, msg=response.text)
                    self.assertEqual(response.json()["error_code"], error_code)

    async def test_fetch_failure_maps_to_bad_gateway(self) -> None:
        provider = FakeProvider({}, on_fetch=_raise_fetch_error)
        async with self._client(provider) as client:
            response = await client.post(
                "/backtests",
                json={"ticker": "JNJ.US", "start": "2010", "end": "2012"},
            )
            self.assertEqual(response.status_code, 502, msg=response.text)
            self.assertEqual(response.json()["error_code"], "data_fetch_error")

    async def test_oversized_threshold_grid_is_rejected_before_fetch(self) -> None:
        async with self._client() as client:
            response = await client.post(
                "/sweeps/thresholds",
                json={
                    "ticker": "JNJ.US",
                    "start": "2011",
                    "end": "2012",
                    "low": 0.0,
                    "high": 1.0,
                    "increment": 1e-6,
                },
            )
            self.assertEqual(response.status_code, 400, msg=response.text)
            self.assertEqual(response.json()["error_code"], "backtest_error")
        self.assertEqual(self.provider.calls, [])

    async def test_invalid_payload_is_rejected(self) -> None:
        async with self._client() as client:
            response = await client.post(
                "/sweeps/thresholds",
                json={
                    "ticker": "JNJ.US",
                    "start": "2011",
                    "end": "2012",
                    "low": 0.8,
                    "high": 0.2,
                    "increment": 0.1,
                },
            )
            self.assertEqual(response.status_code, 422, msg=response.text)


if __name__ == "__main__":
    unittest.main()
