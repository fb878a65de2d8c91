from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveType:
    leave_type_id: int
    name: str
    is_paid: bool = True
    requires_approval: bool = True


@dataclass(frozen=True)
class LeavePolicy:
    """Annual and probation caps for one (category, leave type) pair."""

    policy_id: int
    category_id: int
    leave_type_id: int
    max_days_per_year: float
    probation_max_days: float
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    days_requested: float
    reason: str
    status: LeaveStatus
    created_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_approved(self) -> bool:
        return self.status == LeaveStatus.APPROVED


@dataclass(frozen=True)
class LeaveDay:
    """One calendar day of an approved request, as written to the leave ledger."""

    request_id: int
    employee_id: int
    leave_date: date
    leave_type_id: int
    is_paid: bool
    day_value: float = 1.0
    record_id: Optional[int] = None


@dataclass(frozen=True)
class LeaveBalance:
    """Derived balance row: one per employee, leave type and year.

    ``remaining`` is never clamped; a negative figure means the employee used
    more than the policy allows.
    """

    employee_id: int
    leave_type_id: Optional[int]
    leave_type_name: str
    year: int
    allocated_days: float
    used_days: float
    remaining_days: float
    probation_allocated_days: float
    probation_used_days: float
    probation_remaining_days: float
    is_on_probation: bool
    month: Optional[int] = None
    carried_forward_days: float = 0.0

    @property
    def usage_percentage(self) -> float:
        if self.allocated_days <= 0:
            return 0.0
        return self.used_days / self.allocated_days * 100

    @property
    def probation_usage_percentage(self) -> float:
        if self.probation_allocated_days <= 0:
            return 0.0
        return self.probation_used_days / self.probation_allocated_days * 100

    @property
    def is_overdrawn(self) -> bool:
        return self.remaining_days < 0 or self.probation_remaining_days < 0

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "leave_type_id": self.leave_type_id,
            "leave_type_name": self.leave_type_name,
            "year": self.year,
            "month": self.month,
            "allocated_days": self.allocated_days,
            "used_days": self.used_days,
            "remaining_days": self.remaining_days,
            "probation_allocated_days": self.probation_allocated_days,
            "probation_used_days": self.probation_used_days,
            "probation_remaining_days": self.probation_remaining_days,
            "carried_forward_days": self.carried_forward_days,
            "is_on_probation": self.is_on_probation,
            "usage_percentage": round(self.usage_percentage, 2),
            "probation_usage_percentage": round(self.probation_usage_percentage, 2),
            "is_overdrawn": self.is_overdrawn,
        }


@dataclass(frozen=True)
class BalanceSummary:
    """Per-employee roll-up across leave types."""

    employee_id: int
    employee_name: str
    year: int
    month: Optional[int]
    is_on_probation: bool
    total_allocated: float
    total_used: float
    total_remaining: float
    probation_allocated: float
    probation_used: float
    probation_remaining: float
    balances: tuple[LeaveBalance, ...] = field(default_factory=tuple)

    @property
    def usage_percentage(self) -> float:
        if self.is_on_probation:
            allocated, used = self.probation_allocated, self.probation_used
        else:
            allocated, used = self.total_allocated, self.total_used
        return used / allocated * 100 if allocated > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "year": self.year,
            "month": self.month,
            "is_on_probation": self.is_on_probation,
            "total_allocated": self.total_allocated,
            "total_used": self.total_used,
            "total_remaining": self.total_remaining,
            "probation_allocated": self.probation_allocated,
            "probation_used": self.probation_used,
            "probation_remaining": self.probation_remaining,
            "usage_percentage": round(self.usage_percentage, 2),
            "balances": [b.to_dict() for b in self.balances],
        }


@dataclass(frozen=True)
class CarryForward:
    employee_id: int
    leave_type_id: int
    year: int
    days: float


@dataclass(frozen=True)
class RolloverSummary:
    from_year: int
    to_year: int
    employees_with_balances: int
    total_remaining_days: float
    eligible_for_rollover: int
    balances_in_target_year: int


@dataclass(frozen=True)
class RolloverResult:
    from_year: int
    to_year: int
    max_rollover_days: float
    employees_processed: int
    balances_created: int
