"""Domain-specific error taxonomy for DVILab."""

from __future__ import annotations


class DVILabError(Exception):
    """Base DVILab error with CLI exit-code metadata."""

    exit_code: int = 1
    error_code: str = "dvilab_error"


class ConfigLoadError(DVILabError, ValueError):
    """Configuration loading/validation error."""

    exit_code = 2
    error_code = "config_error"


class DataFetchError(DVILabError, ConnectionError):
    """Data fetch transport/retry error."""

    exit_code = 3
    error_code = "data_fetch_error"


class DataValidationError(DVILabError, ValueError):
    """Data schema/integrity validation error."""

    exit_code = 4
    error_code = "data_validation_error"


class InvalidDateFormatError(DVILabError, ValueError):
    """Date input is neither ``YYYY`` nor ``YYYYMMDD``."""

    exit_code = 5
    error_code = "invalid_date_format"


class DataUnavailableError(DVILabError, LookupError):
    """Provider has no price data for the ticker or date range."""

    exit_code = 6
    error_code = "data_unavailable"


class EmptyAlignmentError(DVILabError, ValueError):
    """Aligned frame has no rows, usually a window shorter than indicator warm-up."""

    exit_code = 7
    error_code = "empty_alignment"


class BacktestError(DVILabError, ValueError):
    """Backtest or sweep parameter error."""

    exit_code = 8
    error_code = "backtest_error"


class SweepError(DVILabError, RuntimeError):
    """Sweep finished without a single successful iteration."""

    exit_code = 9
    error_code = "sweep_error"

    def __init__(self, message: str, attempted: int = 0, skipped: int = 0) -> None:
        super().__init__(message)
        self.attempted = attempted
        self.skipped = skipped


class NoValidWindowsError(SweepError):
    """Every window of a period sweep was skipped."""

    error_code = "no_valid_windows"


class NoValidThresholdsError(SweepError):
    """Every threshold of a threshold sweep was skipped."""

    error_code = "no_valid_thresholds"


class ArtifactError(DVILabError, RuntimeError):
    """Artifact write/read error."""

    exit_code = 10
    error_code = "artifact_error"


# Sweeps convert these into skipped entries; everything else aborts the sweep.
RECOVERABLE_ERRORS: tuple[type[DVILabError], ...] = (DataUnavailableError, EmptyAlignmentError)


def exit_code_for_exception(exc: BaseException) -> int:
    """
    Resolve process exit code for an exception.

    Args:
        exc: Raised exception.

    Returns:
        Integer process exit code.
    """
    return int(getattr(exc, "exit_code", 1))
