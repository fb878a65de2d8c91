from __future__ import annotations

from .base import ProrationCalculator
from ...common.datetime_utils import days_in_month


class CalendarProrationCalculator(ProrationCalculator):
    """Standard rule: divide by the real length of the month (28-31 days)."""

    def days_in_month(self, year: int, month: int) -> int:
        return days_in_month(year, month)
