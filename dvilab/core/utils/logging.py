"""Logging utilities for DVILab."""

from __future__ import annotations

import logging

# Sweep workers run on threads named ``dvilab-sweep_N``.
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_NOISY_LOGGERS: tuple[str, ...] = ("matplotlib", "httpx", "httpcore", "urllib3", "uvicorn.access")


def _parse_level(level: str | int) -> int:
    """Resolve a level name such as ``warning`` or a numeric level."""
    if isinstance(level, int):
        return level
    resolved_level = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"Invalid logging level: {level}")
    return resolved_level


def configure_logging(level: str | int = "INFO") -> None:
    """
    Configure process-wide logging for CLI and API runs.

    Calling it again replaces the previous handlers, so a command can start
    at ``INFO`` and switch to the configured level once its config is loaded.

    Args:
        level: Level name (case-insensitive) or numeric level.
    """
    logging.basicConfig(
        level=_parse_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)
