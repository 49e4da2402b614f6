"""Period and threshold sweeps over the single-window backtest."""

from __future__ import annotations

import math
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd

from dvilab.core.backtest.engine import DEFAULT_THRESHOLD, WindowBacktester
from dvilab.core.backtest.types import BacktestSummary
from dvilab.core.utils.errors import (
    RECOVERABLE_ERRORS,
    BacktestError,
    NoValidThresholdsError,
    NoValidWindowsError,
    SweepError,
)
from dvilab.core.utils.logging import get_logger

SweepKind = Literal["period", "threshold"]
ProgressCallback = Callable[[str], None]

THRESHOLD_TOLERANCE_RATIO = 1e-6
THRESHOLD_DECIMALS = 10
MIN_THRESHOLD_INCREMENT = 10**-THRESHOLD_DECIMALS
MAX_THRESHOLD_STEPS = 100_000

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SweepEntry:
    """One successful sweep iteration."""

    key: float
    label: str
    start: str
    end: str
    threshold: float
    summary: BacktestSummary

    def to_row(self) -> dict[str, Any]:
        """Flatten into one table row."""
        return {
            "key": self.key,
            "label": self.label,
            "window_start": self.start,
            "window_end": self.end,
            **self.summary.to_dict(),
        }


@dataclass(frozen=True)
class SweepSkip:
    """One skipped sweep iteration and its cause."""

    key: float
    label: str
    error_code: str
    reason: str

    def to_row(self) -> dict[str, Any]:
        """Flatten into one table row."""
        return {
            "key": self.key,
            "label": self.label,
            "error_code": self.error_code,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class SweepResult:
    """Ordered sweep outcome: period keys chronological, threshold keys ascending."""

    kind: SweepKind
    ticker: str
    entries: list[SweepEntry]
    skipped: list[SweepSkip] = field(default_factory=list)
    attempted: int = 0
    cancelled: bool = False

    @property
    def succeeded(self) -> int:
        """Number of iterations with a summary."""
        return len(self.entries)

    def to_frame(self) -> pd.DataFrame:
        """Return entries as a dataframe in sweep order."""
        rows = [entry.to_row() for entry in self.entries]
        return pd.DataFrame(rows)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping."""
        return {
            "kind": self.kind,
            "ticker": self.ticker,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "cancelled": self.cancelled,
            "entries": [entry.to_row() for entry in self.entries],
            "skipped": [skip.to_row() for skip in self.skipped],
        }


@dataclass(frozen=True)
class _SweepTask:
    """Inputs of one sweep iteration."""

    key: float
    label: str
    start: str
    end: str
    threshold: float


class _SweepCollector:
    """Append-only, thread-safe accumulator of sweep outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[SweepEntry] = []
        self._skipped: list[SweepSkip] = []

    def add_entry(self, entry: SweepEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def add_skip(self, skip: SweepSkip) -> None:
        with self._lock:
            self._skipped.append(skip)

    def ordered(self) -> tuple[list[SweepEntry], list[SweepSkip]]:
        """Return snapshots sorted by sweep key, independent of completion order."""
        with self._lock:
            entries = sorted(self._entries, key=lambda entry: entry.key)
            skipped = sorted(self._skipped, key=lambda skip: skip.key)
        return entries, skipped


def enumerate_period_windows(
    period_years: int,
    range_start_year: int,
    range_end_year: int,
) -> list[tuple[int, int]]:
    """
    Enumerate unit-stride windows of ``period_years`` inside a year range.

    Args:
        period_years: Window length in calendar years.
        range_start_year: First year of the overall range.
        range_end_year: Last year of the overall range, inclusive.

    Returns:
        Inclusive ``(first_year, last_year)`` pairs in chronological order.
    """
    if period_years < 1:
        raise BacktestError("period_years must be >= 1.")
    if range_start_year > range_end_year:
        raise BacktestError("range_start_year must be before or equal to range_end_year.")

    last_window_start = range_end_year - period_years + 1
    return [
        (window_start, window_start + period_years - 1)
        for window_start in range(range_start_year, last_window_start + 1)
    ]


def enumerate_thresholds(low: float, high: float, increment: float) -> list[float]:
    """
    Enumerate ``low, low + increment, ...`` up to and including ``high``.

    Values are computed as ``low + i * increment`` rather than by repeated
    addition, and ``high`` is included when the last step lands within
    ``increment * 1e-6`` above it.

    Args:
        low: First threshold.
        high: Last threshold, inclusive.
        increment: Positive step.

    Returns:
        Ascending thresholds rounded to 10 decimal places.

    Raises:
        BacktestError: For non-finite or reversed bounds, an increment below
            ``1e-10`` or more than ``MAX_THRESHOLD_STEPS`` values.
    """
    if not all(math.isfinite(value) for value in (low, high, increment)):
        raise BacktestError("Threshold sweep bounds and increment must be finite.")
    if increment <= 0:
        raise BacktestError("increment must be greater than 0.")
    if increment < MIN_THRESHOLD_INCREMENT:
        raise BacktestError(f"increment must be at least {MIN_THRESHOLD_INCREMENT:g}.")
    if low > high:
        raise BacktestError("low must be less than or equal to high.")

    tolerance = increment * THRESHOLD_TOLERANCE_RATIO
    step_count = math.floor((high - low + tolerance) / increment) + 1
    if step_count > MAX_THRESHOLD_STEPS:
        raise BacktestError(
            f"Threshold sweep would run {step_count} iterations; "
            f"the limit is {MAX_THRESHOLD_STEPS}."
        )

    thresholds: list[float] = []
    step = 0
    while True:
        value = low + step * increment
        if value > high + tolerance:
            break
        thresholds.append(round(value, THRESHOLD_DECIMALS))
        step += 1
    return thresholds


def _parse_year(value: int | str, name: str) -> int:
    """Parse a year argument."""
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise BacktestError(f"{name} must be an integer year, got '{value}'.") from exc


def _execute_sweep(
    backtester: WindowBacktester,
    ticker: str,
    kind: SweepKind,
    tasks: list[_SweepTask],
    error_type: type[SweepError],
    max_workers: int,
    cancel_event: threading.Event | None,
    progress_callback: ProgressCallback | None,
) -> SweepResult:
    """Evaluate independent sweep tasks on a bounded pool and collect ordered results."""
    collector = _SweepCollector()
    stop = threading.Event()

    def _should_stop() -> bool:
        return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

    def _evaluate(task: _SweepTask) -> str | None:
        if _should_stop():
            return None
        try:
            summary = backtester.run(ticker, task.start, task.end, task.threshold)
        except RECOVERABLE_ERRORS as exc:
            _LOGGER.warning("Skipping %s %s for %s: %s", kind, task.label, ticker, exc)
            collector.add_skip(
                SweepSkip(
                    key=task.key,
                    label=task.label,
                    error_code=exc.error_code,
                    reason=str(exc),
                )
            )
            return "skipped"
        collector.add_entry(
            SweepEntry(
                key=task.key,
                label=task.label,
                start=task.start,
                end=task.end,
                threshold=task.threshold,
                summary=summary,
            )
        )
        return "ok"

    interrupted = False
    reported = 0
    worker_count = max(1, min(int(max_workers), len(tasks) or 1))
    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="dvilab-sweep") as pool:
        futures: dict[Future[str | None], _SweepTask] = {
            pool.submit(_evaluate, task): task for task in tasks
        }
        try:
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is None:
                    continue
                reported += 1
                if progress_callback is not None:
                    task = futures[future]
                    progress_callback(f"[{reported}/{len(tasks)}] {kind} {task.label}: {outcome}")
        except KeyboardInterrupt:
            # Pending tasks see the stop flag and return; running ones finish.
            _LOGGER.warning("%s sweep for %s interrupted", kind.capitalize(), ticker)
            interrupted = True
            stop.set()
        except BaseException:
            stop.set()
            raise

    entries, skipped = collector.ordered()
    attempted = len(entries) + len(skipped)
    cancel_requested = interrupted or (cancel_event is not None and cancel_event.is_set())
    cancelled = cancel_requested and attempted < len(tasks)
    _LOGGER.info(
        "%s sweep for %s finished: attempted=%d succeeded=%d skipped=%d cancelled=%s",
        kind.capitalize(),
        ticker,
        attempted,
        len(entries),
        len(skipped),
        cancelled,
    )

    if not entries and not cancelled:
        raise error_type(
            f"No valid {kind} iterations for '{ticker}': "
            f"attempted={attempted}, skipped={len(skipped)}.",
            attempted=attempted,
            skipped=len(skipped),
        )
    return SweepResult(
        kind=kind,
        ticker=ticker,
        entries=entries,
        skipped=skipped,
        attempted=attempted,
        cancelled=cancelled,
    )


def sweep_periods(
    backtester: WindowBacktester,
    ticker: str,
    period_years: int,
    range_start_year: int | str,
    range_end_year: int | str,
    threshold: float = DEFAULT_THRESHOLD,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SweepResult:
    """
    Backtest every sliding window of ``period_years`` inside a year range.

    Windows with no data or no aligned rows are recorded as skipped and the
    sweep continues; any other error aborts it.

    Args:
        backtester: Single-window backtester.
        ticker: Provider ticker identifier.
        period_years: Window length in years.
        range_start_year: First year of the range.
        range_end_year: Last year of the range, inclusive.
        threshold: Signal threshold held fixed across windows.
        max_workers: Upper bound on concurrent window evaluations.
        cancel_event: Optional event that stops new windows from starting.
        progress_callback: Optional callback for per-window status messages.

    Returns:
        Sweep result keyed and ordered by window start year.

    Raises:
        NoValidWindowsError: If no window produced a summary.
    """
    start_year = _parse_year(range_start_year, "range_start_year")
    end_year = _parse_year(range_end_year, "range_end_year")
    tasks = [
        _SweepTask(
            key=window_start,
            label=f"{window_start}-{window_end}",
            start=str(window_start),
            end=str(window_end),
            threshold=float(threshold),
        )
        for window_start, window_end in enumerate_period_windows(period_years, start_year, end_year)
    ]
    return _execute_sweep(
        backtester=backtester,
        ticker=ticker,
        kind="period",
        tasks=tasks,
        error_type=NoValidWindowsError,
        max_workers=max_workers,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
    )


def sweep_thresholds(
    backtester: WindowBacktester,
    ticker: str,
    start: str | int,
    end: str | int,
    low: float,
    high: float,
    increment: float,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SweepResult:
    """
    Backtest one fixed window at every threshold in ``[low, high]``.

    Args:
        backtester: Single-window backtester.
        ticker: Provider ticker identifier.
        start: ``YYYY`` or ``YYYYMMDD`` start bound.
        end: ``YYYY`` or ``YYYYMMDD`` end bound.
        low: First threshold.
        high: Last threshold, inclusive.
        increment: Threshold step.
        max_workers: Upper bound on concurrent evaluations.
        cancel_event: Optional event that stops new thresholds from starting.
        progress_callback: Optional callback for per-threshold status messages.

    Returns:
        Sweep result keyed and ordered by ascending threshold.

    Raises:
        NoValidThresholdsError: If no threshold produced a summary.
    """
    tasks = [
        _SweepTask(
            key=value,
            label=f"{value:g}",
            start=str(start),
            end=str(end),
            threshold=value,
        )
        for value in enumerate_thresholds(float(low), float(high), float(increment))
    ]
    return _execute_sweep(
        backtester=backtester,
        ticker=ticker,
        kind="threshold",
        tasks=tasks,
        error_type=NoValidThresholdsError,
        max_workers=max_workers,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
    )
