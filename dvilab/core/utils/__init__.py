"""Utility helpers."""

from dvilab.core.utils.errors import (
    RECOVERABLE_ERRORS,
    ArtifactError,
    BacktestError,
    ConfigLoadError,
    DataFetchError,
    DataUnavailableError,
    DataValidationError,
    DVILabError,
    EmptyAlignmentError,
    InvalidDateFormatError,
    NoValidThresholdsError,
    NoValidWindowsError,
    SweepError,
    exit_code_for_exception,
)
from dvilab.core.utils.logging import configure_logging, get_logger
from dvilab.core.utils.manifest import RunManifestWriter, make_run_id
from dvilab.core.utils.plotting import (
    get_matplotlib_pyplot,
    save_equity_curve_plot,
    save_returns_bar_chart,
)

__all__ = [
    "RECOVERABLE_ERRORS",
    "ArtifactError",
    "BacktestError",
    "ConfigLoadError",
    "DVILabError",
    "DataFetchError",
    "DataUnavailableError",
    "DataValidationError",
    "EmptyAlignmentError",
    "InvalidDateFormatError",
    "NoValidThresholdsError",
    "NoValidWindowsError",
    "RunManifestWriter",
    "SweepError",
    "configure_logging",
    "exit_code_for_exception",
    "get_logger",
    "get_matplotlib_pyplot",
    "make_run_id",
    "save_equity_curve_plot",
    "save_returns_bar_chart",
]
