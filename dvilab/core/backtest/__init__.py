"""Backtest engine exports."""

from dvilab.core.backtest.align import align
from dvilab.core.backtest.engine import DEFAULT_THRESHOLD, WindowBacktester
from dvilab.core.backtest.metrics import equity_curve, position_counts, summarize
from dvilab.core.backtest.signal import compute_positions
from dvilab.core.backtest.types import BacktestDetail, BacktestSummary

__all__ = [
    "DEFAULT_THRESHOLD",
    "BacktestDetail",
    "BacktestSummary",
    "WindowBacktester",
    "align",
    "compute_positions",
    "equity_curve",
    "position_counts",
    "summarize",
]
