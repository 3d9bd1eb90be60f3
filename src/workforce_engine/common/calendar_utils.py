"""Pure date-range math shared by attendance, leave and payroll."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Iterator

from ..core.enums import WeekendPolicy
from ..core.exceptions import InvalidRangeError, ValidationError


def _require_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidRangeError(f"End date {end.isoformat()} is before start date {start.isoformat()}")


def iter_days(start: date, end: date) -> Iterator[date]:
    _require_range(start, end)
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def calendar_days_between(start: date, end: date) -> int:
    """Inclusive number of calendar days in [start, end]."""
    _require_range(start, end)
    return (end - start).days + 1


def business_days_between(
    start: date,
    end: date,
    weekend_policy: WeekendPolicy = WeekendPolicy.SAT_SUN,
    holidays: Iterable[date] = (),
) -> int:
    """Inclusive number of working days in [start, end].

    A day counts unless its weekday is a weekend day under ``weekend_policy``
    or it appears in ``holidays``.
    """
    weekend = weekend_policy.weekend_days
    off = set(holidays)
    return sum(1 for d in iter_days(start, end) if d.weekday() not in weekend and d not in off)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True when the closed intervals [a_start, a_end] and [b_start, b_end] intersect."""
    return a_start <= b_end and b_start <= a_end


def period_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if int(year) < 1:
        raise ValidationError(f"Invalid year: {year}")
    last = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last)


def year_bounds(year: int) -> tuple[date, date]:
    if int(year) < 1:
        raise ValidationError(f"Invalid year: {year}")
    return date(int(year), 1, 1), date(int(year), 12, 31)
