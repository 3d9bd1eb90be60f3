from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid timestamp (ISO 8601): {value!r}")


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Current local time.

    Note: Injected everywhere instead of calling datetime.now() so tests stay deterministic.
    """

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **delta) -> datetime:
        self._instant += timedelta(**delta)
        return self._instant
