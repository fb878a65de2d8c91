from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_month(value: str) -> date:
    """Parse 'YYYY-MM' (or a full ISO date) into the first day of that month."""
    v = (value or "").strip()
    for fmt in ("%Y-%m", "%Y-%m-%d"):
        try:
            return datetime.strptime(v, fmt).date().replace(day=1)
        except ValueError:
            continue
    raise ValidationError(f"Invalid month (YYYY-MM): {value!r}")


def month_start(value: date) -> date:
    return value.replace(day=1)


def days_in_month(year: int, month: int) -> int:
    """True Gregorian day count of the month (leap-year aware)."""
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"Invalid month: {month}")
    return calendar.monthrange(int(year), int(month))[1]


def month_end(value: date) -> date:
    return value.replace(day=days_in_month(value.year, value.month))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, inclusive."""
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def today_local() -> date:
    """Current local date.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().date()