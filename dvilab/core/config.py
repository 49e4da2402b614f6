"""Configuration models and YAML loading."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from dvilab.core.utils.errors import ConfigLoadError


class ProviderConfig(BaseModel):
    """EODHD data provider settings."""

    base_url: str = "https://eodhd.com/api"
    api_key_env: str = "EODHD_API_KEY"
    price_field: str = "close"
    timeout_seconds: float = 30.0
    max_retries: int = 1
    retry_backoff_seconds: float = 0.5

    @model_validator(mode="after")
    def validate_provider(self) -> ProviderConfig:
        """Validate request and retry settings."""
        if not self.base_url.strip():
            raise ValueError("provider.base_url must be non-empty.")
        if not self.api_key_env.strip():
            raise ValueError("provider.api_key_env must be non-empty.")
        if self.timeout_seconds <= 0:
            raise ValueError("provider.timeout_seconds must be > 0.")
        if self.max_retries < 0:
            raise ValueError("provider.max_retries must be >= 0.")
        if self.retry_backoff_seconds < 0:
            raise ValueError("provider.retry_backoff_seconds must be >= 0.")
        return self


class IndicatorConfig(BaseModel):
    """DVI oscillator parameters."""

    lookback: int = 252
    smooth: int = 3
    magnitude: tuple[int, int, int] = (5, 100, 5)
    stretch: tuple[int, int, int] = (10, 100, 2)
    weights: tuple[float, float] = (0.8, 0.2)
    exact_multiplier: float = 1.0

    @model_validator(mode="after")
    def validate_indicator(self) -> IndicatorConfig:
        """Keep the oscillator bounded in [0, 1]."""
        windows = [self.lookback, self.smooth, *self.magnitude, *self.stretch]
        if any(window < 1 for window in windows):
            raise ValueError("indicator windows must all be >= 1.")
        if any(weight < 0 for weight in self.weights):
            raise ValueError("indicator.weights must be non-negative.")
        if not math.isclose(sum(self.weights), 1.0, abs_tol=1e-9):
            raise ValueError("indicator.weights must sum to 1.")
        if not 0.0 <= self.exact_multiplier <= 1.0:
            raise ValueError("indicator.exact_multiplier must be within [0, 1].")
        return self

    def as_kwargs(self) -> dict[str, Any]:
        """Return keyword arguments for ``compute_dvi``."""
        return self.model_dump()


class SweepConfig(BaseModel):
    """Sweep execution settings."""

    max_workers: int = 4

    @model_validator(mode="after")
    def validate_sweep(self) -> SweepConfig:
        """Ensure the worker pool is bounded and non-empty."""
        if self.max_workers < 1:
            raise ValueError("sweep.max_workers must be >= 1.")
        return self


class OutputConfig(BaseModel):
    """Output and artifact settings."""

    artifacts_dir: Path = Path("artifacts")
    save_plots: bool = True


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"

    @model_validator(mode="after")
    def validate_level(self) -> LoggingConfig:
        """Normalize the level name."""
        normalized = self.level.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"logging.level is not a valid level: {self.level}")
        self.level = normalized
        return self


class AppConfig(BaseModel):
    """Top-level application configuration."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    indicator: IndicatorConfig = Field(default_factory=IndicatorConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _resolve_config_path(path: Path) -> Path:
    """Resolve and validate a config file path."""
    resolved_path = path.expanduser().resolve()
    if not resolved_path.exists():
        raise ConfigLoadError(f"Config file not found: {resolved_path}")
    if not resolved_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {resolved_path}")
    return resolved_path


def _build_config(raw_config: dict[str, Any], base_dir: Path) -> AppConfig:
    """Build and path-resolve config from raw data."""
    try:
        config = AppConfig.model_validate(raw_config)
    except Exception as exc:
        raise ConfigLoadError(f"Config validation failed: {exc}") from exc

    artifacts_dir = config.output.artifacts_dir.expanduser()
    resolved_artifacts_dir = (
        artifacts_dir.resolve()
        if artifacts_dir.is_absolute()
        else (base_dir / artifacts_dir).resolve()
    )
    updated_output = config.output.model_copy(update={"artifacts_dir": resolved_artifacts_dir})
    return config.model_copy(update={"output": updated_output})


def load_config(path: Path) -> AppConfig:
    """
    Load and validate application config from YAML.

    Relative paths are resolved from the YAML file parent directory.

    Args:
        path: YAML config file path.

    Returns:
        Validated application config.
    """
    config_path = _resolve_config_path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw_config: Any = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigLoadError(f"Failed to read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in config file {config_path}: {exc}") from exc

    if not isinstance(raw_config, dict):
        raise ConfigLoadError("YAML root must be a mapping/object.")
    return _build_config(raw_config, config_path.parent)


def load_config_from_yaml_text(yaml_text: str, base_dir: Path | None = None) -> AppConfig:
    """
    Load and validate config from YAML text.

    Args:
        yaml_text: YAML string.
        base_dir: Base directory for relative paths, defaults to the working directory.

    Returns:
        Validated application config.
    """
    try:
        raw_config: Any = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML text: {exc}") from exc
    if not isinstance(raw_config, dict):
        raise ConfigLoadError("YAML root must be a mapping/object.")
    resolved_base_dir = (base_dir or Path.cwd()).expanduser().resolve()
    return _build_config(raw_config, resolved_base_dir)


def resolve_config(path: Path | None) -> AppConfig:
    """Load config from ``path`` or fall back to defaults relative to the working directory."""
    if path is None:
        return _build_config({}, Path.cwd().resolve())
    return load_config(path)


def dump_config_to_yaml(config: AppConfig) -> str:
    """Serialize config to canonical YAML for reproducibility."""
    payload = config.model_dump(mode="json")
    return yaml.safe_dump(payload, sort_keys=True, default_flow_style=False)
