from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class EmployeeCategory:
    """Reference data: drives which leave policies apply."""

    category_id: int
    name: str
    is_paid_leave_eligible: bool = True
    default_probation_months: Optional[int] = None


@dataclass(frozen=True)
class Employee:
    """Directory row as seen by the engine (read-only)."""

    employee_id: int
    full_name: str
    category_id: Optional[int]
    joined_on: Optional[date]
    probation_period_months: Optional[int]
    base_salary: float = 0.0
    is_active: bool = True
    email: Optional[str] = None
