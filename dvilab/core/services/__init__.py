"""Service-layer workflows for CLI and API orchestration."""

from dvilab.core.services.research_service import (
    build_backtester,
    build_provider,
    run_period_sweep,
    run_single,
    run_single_detailed,
    run_threshold_sweep,
)

__all__ = [
    "build_backtester",
    "build_provider",
    "run_period_sweep",
    "run_single",
    "run_single_detailed",
    "run_threshold_sweep",
]
