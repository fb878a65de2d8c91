"""Probation window classification.

The window is ``joined_on + months * 30 days``. Flat 30-day months are what the
HR console has always used for allocation tiers, so the boundary can drift a
few days from true calendar-month arithmetic.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import today_local
from ..core.constants import DEFAULT_PROBATION_MONTHS, PROBATION_DAYS_PER_MONTH
from ..employees.model import Employee, EmployeeCategory


def effective_probation_months(
    employee: Employee,
    category: Optional[EmployeeCategory] = None,
    *,
    default: int = DEFAULT_PROBATION_MONTHS,
) -> int:
    """Employee override, then category default, then the global default."""
    if employee.probation_period_months is not None:
        return max(int(employee.probation_period_months), 0)
    if category is not None and category.default_probation_months is not None:
        return max(int(category.default_probation_months), 0)
    return int(default)


def probation_end(joined_on: date, probation_period_months: int) -> date:
    """First day after the probation window (exclusive bound)."""
    return joined_on + timedelta(days=int(probation_period_months) * PROBATION_DAYS_PER_MONTH)


def is_on_probation(
    joined_on: Optional[date],
    probation_period_months: int,
    reference_date: Optional[date] = None,
) -> bool:
    # No join date on file: nothing to measure against, treat as confirmed.
    if joined_on is None:
        return False
    reference_date = reference_date or today_local()
    return reference_date < probation_end(joined_on, probation_period_months)


def overlaps_probation(
    start_date: date,
    end_date: date,
    joined_on: Optional[date],
    probation_period_months: int,
) -> bool:
    """True when [start_date, end_date] touches [joined_on, probation_end)."""
    if joined_on is None or probation_period_months <= 0:
        return False
    return start_date < probation_end(joined_on, probation_period_months) and end_date >= joined_on
