"""Normalization of ``YYYY`` / ``YYYYMMDD`` date inputs."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from dvilab.core.utils.errors import InvalidDateFormatError

DateBound = Literal["start", "end"]


def normalize_date_input(value: str | int, bound: DateBound) -> str:
    """
    Normalize a user date input into an inclusive ISO calendar date.

    Accepted forms:
    - ``YYYYMMDD``: parsed as a calendar date.
    - ``YYYY``: a year literal. As a ``start`` bound it resolves to January 1st,
      as an ``end`` bound to December 31st, so a year covers its whole range.

    Args:
        value: Raw date input. Integers are treated as their decimal string.
        bound: Whether the value opens or closes a date range.

    Returns:
        Date string in ``YYYY-MM-DD`` format.

    Raises:
        InvalidDateFormatError: For any other length or an invalid calendar date.
    """
    raw = str(value).strip()
    if not raw.isdigit() or len(raw) not in (4, 8):
        raise InvalidDateFormatError(
            f"Invalid date input '{value}'. Expected YYYY or YYYYMMDD."
        )

    if len(raw) == 4:
        year = int(raw)
        if year < 1:
            raise InvalidDateFormatError(f"Invalid year '{value}'.")
        resolved = date(year, 1, 1) if bound == "start" else date(year, 12, 31)
        return resolved.isoformat()

    try:
        parsed = datetime.strptime(raw, "%Y%m%d").date()
    except ValueError as exc:
        raise InvalidDateFormatError(f"Invalid calendar date '{value}'.") from exc
    return parsed.isoformat()


def normalize_date_range(start: str | int, end: str | int) -> tuple[str, str]:
    """Normalize a start/end pair into inclusive ISO dates."""
    return normalize_date_input(start, "start"), normalize_date_input(end, "end")
