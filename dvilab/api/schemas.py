"""Pydantic schemas for DVILab API endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from dvilab.core.research.sweeps import SweepResult


class HealthResponse(BaseModel):
    """Health endpoint response."""

    status: str = "ok"
    service: str = "dvilab-api"


class ErrorResponse(BaseModel):
    """Error payload for typed API failures."""

    error_code: str
    message: str


class BacktestRequest(BaseModel):
    """Single-window backtest request payload."""

    ticker: str = Field(min_length=1)
    start: str | int
    end: str | int
    threshold: float = 0.5


class BacktestSummaryResponse(BaseModel):
    """Aggregate outcome of one backtest window."""

    start: str
    end: str
    threshold: float
    observations: int
    long_count: int
    short_count: int
    long_pct: float
    short_pct: float
    cumulative_return: float


class BacktestResponse(BaseModel):
    """Single-window backtest response payload."""

    ticker: str
    summary: BacktestSummaryResponse


class PeriodSweepRequest(BaseModel):
    """Period sweep request payload."""

    ticker: str = Field(min_length=1)
    period_years: int = Field(ge=1)
    range_start: int
    range_end: int
    threshold: float = 0.5
    max_workers: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_range(self) -> PeriodSweepRequest:
        """Reject reversed year ranges before any fetch happens."""
        if self.range_start > self.range_end:
            raise ValueError("range_start must not be after range_end.")
        return self


class ThresholdSweepRequest(BaseModel):
    """Threshold sweep request payload."""

    ticker: str = Field(min_length=1)
    start: str | int
    end: str | int
    low: float
    high: float
    increment: float = Field(gt=0)
    max_workers: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_bounds(self) -> ThresholdSweepRequest:
        """Enforce ``low <= high``."""
        if self.low > self.high:
            raise ValueError("low must not be greater than high.")
        return self


class SweepEntryResponse(BaseModel):
    """One successful sweep iteration."""

    label: str
    summary: BacktestSummaryResponse


class SweepSkipResponse(BaseModel):
    """One skipped sweep iteration."""

    label: str
    error_code: str
    reason: str


class SweepResponse(BaseModel):
    """Sweep endpoint response payload."""

    kind: str
    ticker: str
    attempted: int
    succeeded: int
    cancelled: bool
    entries: list[SweepEntryResponse]
    skipped: list[SweepSkipResponse]

    @classmethod
    def from_result(cls, result: SweepResult) -> SweepResponse:
        """Build the response from a ``SweepResult``."""
        return cls(
            kind=result.kind,
            ticker=result.ticker,
            attempted=result.attempted,
            succeeded=result.succeeded,
            cancelled=result.cancelled,
            entries=[
                SweepEntryResponse(
                    label=entry.label,
                    summary=BacktestSummaryResponse(**entry.summary.to_dict()),
                )
                for entry in result.entries
            ],
            skipped=[
                SweepSkipResponse(label=skip.label, error_code=skip.error_code, reason=skip.reason)
                for skip in result.skipped
            ],
        )
