"""FastAPI application for DVILab workflows."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from dvilab.api.schemas import (
    BacktestRequest,
    BacktestResponse,
    BacktestSummaryResponse,
    ErrorResponse,
    HealthResponse,
    PeriodSweepRequest,
    SweepResponse,
    ThresholdSweepRequest,
)
from dvilab.core.config import AppConfig, resolve_config
from dvilab.core.data.base import DataProvider
from dvilab.core.services import run_period_sweep, run_single, run_threshold_sweep
from dvilab.core.utils.errors import (
    ArtifactError,
    BacktestError,
    ConfigLoadError,
    DataFetchError,
    DataUnavailableError,
    DataValidationError,
    DVILabError,
    EmptyAlignmentError,
    InvalidDateFormatError,
    SweepError,
)
from dvilab.core.utils.logging import configure_logging, get_logger

CONFIG_ENV_VAR = "DVILAB_CONFIG"
_LOGGER_NAME = "dvilab.api.app"


def _http_status_for_dvilab_error(exc: DVILabError) -> int:
    """Map typed domain exceptions to HTTP status codes."""
    if isinstance(exc, (ConfigLoadError, InvalidDateFormatError, BacktestError)):
        return 400
    if isinstance(exc, DataUnavailableError):
        return 404
    if isinstance(exc, (EmptyAlignmentError, SweepError, DataValidationError)):
        return 422
    if isinstance(exc, DataFetchError):
        return 502
    if isinstance(exc, ArtifactError):
        return 500
    return 500


def create_app(
    app_config: AppConfig | None = None,
    provider: DataProvider | None = None,
) -> FastAPI:
    """
    Build and return the DVILab FastAPI app.

    Args:
        app_config: Application config. When omitted, the YAML file named by
            ``DVILAB_CONFIG`` is loaded, or defaults are used.
        provider: Optional data provider override, mainly for tests.

    Returns:
        Configured FastAPI instance.
    """
    if app_config is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)
        app_config = resolve_config(Path(config_path) if config_path else None)
    configure_logging(app_config.logging.level)
    resolved_config = app_config

    app = FastAPI(
        title="DVILab API",
        version="0.1.0",
        description="Programmatic API for DVI threshold backtests and sweeps.",
    )
    logger = get_logger(_LOGGER_NAME)
    logger.info("DVILab API startup complete.")

    @app.exception_handler(DVILabError)
    async def _handle_dvilab_error(_: Any, exc: DVILabError) -> JSONResponse:
        """Render typed domain errors as JSON responses."""
        logger = get_logger(_LOGGER_NAME)
        logger.error("DVILab API error: %s", exc)
        payload = ErrorResponse(error_code=exc.error_code, message=str(exc))
        return JSONResponse(
            status_code=_http_status_for_dvilab_error(exc),
            content=payload.model_dump(),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected_error(_: Any, exc: Exception) -> JSONResponse:
        """Render unknown errors as deterministic API payloads."""
        logger = get_logger(_LOGGER_NAME)
        logger.exception("Unhandled API error: %s", exc)
        payload = ErrorResponse(error_code="internal_error", message="Internal server error.")
        return JSONResponse(status_code=500, content=payload.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Return API health metadata."""
        return HealthResponse()

    @app.post("/backtests", response_model=BacktestResponse)
    def backtests(request: BacktestRequest) -> BacktestResponse:
        """Backtest one ticker over one date window."""
        summary = run_single(
            ticker=request.ticker,
            start=request.start,
            end=request.end,
            threshold=request.threshold,
            app_config=resolved_config,
            provider=provider,
        )
        return BacktestResponse(
            ticker=request.ticker,
            summary=BacktestSummaryResponse(**summary.to_dict()),
        )

    @app.post("/sweeps/periods", response_model=SweepResponse)
    def period_sweeps(request: PeriodSweepRequest) -> SweepResponse:
        """Backtest every sliding window of ``period_years`` inside a year range."""
        result = run_period_sweep(
            ticker=request.ticker,
            period_years=request.period_years,
            range_start=request.range_start,
            range_end=request.range_end,
            threshold=request.threshold,
            app_config=resolved_config,
            provider=provider,
            max_workers=request.max_workers,
        )
        return SweepResponse.from_result(result)

    @app.post("/sweeps/thresholds", response_model=SweepResponse)
    def threshold_sweeps(request: ThresholdSweepRequest) -> SweepResponse:
        """Backtest one window at every threshold from ``low`` to ``high``."""
        result = run_threshold_sweep(
            ticker=request.ticker,
            start=request.start,
            end=request.end,
            low=request.low,
            high=request.high,
            increment=request.increment,
            app_config=resolved_config,
            provider=provider,
            max_workers=request.max_workers,
        )
        return SweepResponse.from_result(result)

    return app
