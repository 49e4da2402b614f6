"""Programmatic entry points for single runs and sweeps."""

from __future__ import annotations

import threading
from functools import partial

from dvilab.core.backtest.engine import DEFAULT_THRESHOLD, WindowBacktester
from dvilab.core.backtest.types import BacktestDetail, BacktestSummary
from dvilab.core.config import AppConfig
from dvilab.core.data.base import DataProvider
from dvilab.core.data.eodhd_provider import EODHDProvider
from dvilab.core.indicators.dvi import compute_dvi
from dvilab.core.research.sweeps import (
    ProgressCallback,
    SweepResult,
    sweep_periods,
    sweep_thresholds,
)
from dvilab.core.utils.errors import ConfigLoadError
from dvilab.core.utils.logging import get_logger

_LOGGER_NAME = "dvilab.core.services.research_service"


def build_provider(app_config: AppConfig) -> DataProvider:
    """Create the configured EODHD provider."""
    settings = app_config.provider
    try:
        return EODHDProvider(
            base_url=settings.base_url,
            price_field=settings.price_field,
            timeout_seconds=settings.timeout_seconds,
            max_retries=settings.max_retries,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            api_key_env=settings.api_key_env,
        )
    except ValueError as exc:
        raise ConfigLoadError(str(exc)) from exc


def build_backtester(
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
) -> WindowBacktester:
    """
    Bind a provider and the configured DVI oscillator into a backtester.

    Args:
        app_config: Application config, defaults to ``AppConfig()``.
        provider: Optional provider override, otherwise EODHD is used.

    Returns:
        Ready-to-run window backtester.
    """
    resolved_config = app_config or AppConfig()
    oscillator = partial(compute_dvi, **resolved_config.indicator.as_kwargs())
    return WindowBacktester(
        provider=provider or build_provider(resolved_config),
        oscillator=oscillator,
    )


def run_single_detailed(
    ticker: str,
    start: str | int,
    end: str | int,
    threshold: float = DEFAULT_THRESHOLD,
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
) -> BacktestDetail:
    """Backtest one window and return summary, aligned frame and equity curve."""
    backtester = build_backtester(app_config, provider)
    detail = backtester.run_detailed(ticker, start, end, threshold)
    get_logger(_LOGGER_NAME).info(
        "Backtest %s [%s, %s] threshold=%s: cumulative_return=%s",
        ticker,
        detail.summary.start,
        detail.summary.end,
        threshold,
        detail.summary.cumulative_return,
    )
    return detail


def run_single(
    ticker: str,
    start: str | int,
    end: str | int,
    threshold: float = DEFAULT_THRESHOLD,
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
) -> BacktestSummary:
    """
    Backtest one ``(ticker, start, end, threshold)`` window.

    Args:
        ticker: Provider ticker identifier.
        start: ``YYYY`` or ``YYYYMMDD`` start bound.
        end: ``YYYY`` or ``YYYYMMDD`` end bound.
        threshold: Signal threshold.
        app_config: Optional application config.
        provider: Optional data provider override.

    Returns:
        Backtest summary.
    """
    return run_single_detailed(ticker, start, end, threshold, app_config, provider).summary


def run_period_sweep(
    ticker: str,
    period_years: int,
    range_start: int | str,
    range_end: int | str,
    threshold: float = DEFAULT_THRESHOLD,
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SweepResult:
    """
    Backtest every ``period_years`` sliding window in ``[range_start, range_end]``.

    Args:
        ticker: Provider ticker identifier.
        period_years: Window length in years.
        range_start: First year of the range.
        range_end: Last year of the range, inclusive.
        threshold: Signal threshold.
        app_config: Optional application config.
        provider: Optional data provider override.
        max_workers: Worker pool size, defaults to ``sweep.max_workers``.
        cancel_event: Optional event that stops new windows from starting.
        progress_callback: Optional callback for status messages.

    Returns:
        Chronologically ordered sweep result.
    """
    resolved_config = app_config or AppConfig()
    return sweep_periods(
        backtester=build_backtester(resolved_config, provider),
        ticker=ticker,
        period_years=period_years,
        range_start_year=range_start,
        range_end_year=range_end,
        threshold=threshold,
        max_workers=max_workers or resolved_config.sweep.max_workers,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
    )


def run_threshold_sweep(
    ticker: str,
    start: str | int,
    end: str | int,
    low: float,
    high: float,
    increment: float,
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SweepResult:
    """
    Backtest one window at every threshold from ``low`` to ``high`` inclusive.

    Args:
        ticker: Provider ticker identifier.
        start: ``YYYY`` or ``YYYYMMDD`` start bound.
        end: ``YYYY`` or ``YYYYMMDD`` end bound.
        low: First threshold.
        high: Last threshold, inclusive.
        increment: Threshold step.
        app_config: Optional application config.
        provider: Optional data provider override.
        max_workers: Worker pool size, defaults to ``sweep.max_workers``.
        cancel_event: Optional event that stops new thresholds from starting.
        progress_callback: Optional callback for status messages.

    Returns:
        Sweep result ordered by ascending threshold.
    """
    resolved_config = app_config or AppConfig()
    return sweep_thresholds(
        backtester=build_backtester(resolved_config, provider),
        ticker=ticker,
        start=start,
        end=end,
        low=low,
        high=high,
        increment=increment,
        max_workers=max_workers or resolved_config.sweep.max_workers,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
    )
