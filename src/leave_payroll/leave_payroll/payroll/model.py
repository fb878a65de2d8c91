from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from ..core.constants import DEFAULT_CURRENCY, DEFAULT_DEDUCTION_PERCENTAGE
from ..core.exceptions import PartialBatchFailure


@dataclass(frozen=True)
class SalaryRecord:
    salary_id: int
    employee_id: int
    base_salary: float
    currency: str = DEFAULT_CURRENCY
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    is_active: bool = True
    notes: Optional[str] = None


@dataclass(frozen=True)
class PaymentFigures:
    """Computed amounts for one (employee, month), before persistence."""

    employee_id: int
    payment_month: date
    base_salary: float
    daily_rate: float
    days_in_month: int
    unpaid_leave_days: float
    deduction_percentage: float
    leave_deductions: float
    advance_deductions: float
    total_deductions: float
    net_salary: float
    notes: Optional[str] = None
    processed_by: Optional[int] = None


@dataclass(frozen=True)
class SalaryPayment:
    payment_id: int
    employee_id: int
    payment_month: date
    base_salary: float
    leave_deductions: float
    unpaid_leave_days: float
    deduction_percentage: float
    advance_deductions: float
    total_deductions: float
    net_salary: float
    is_paid: bool = False
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    processed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "employee_id": self.employee_id,
            "payment_month": self.payment_month.strftime("%Y-%m-%d"),
            "base_salary": self.base_salary,
            "leave_deductions": self.leave_deductions,
            "unpaid_leave_days": self.unpaid_leave_days,
            "deduction_percentage": self.deduction_percentage,
            "advance_deductions": self.advance_deductions,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
            "is_paid": self.is_paid,
            "payment_date": self.payment_date.strftime("%Y-%m-%d") if self.payment_date else None,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class EmployeeAdjustment:
    """Per-employee manual inputs for one payroll run."""

    advance_amount: float = 0.0
    advance_reason: str = ""
    unpaid_days_override: Optional[float] = None


@dataclass(frozen=True)
class PayrollRunConfig:
    payment_month: date
    employee_ids: tuple[int, ...] = ()
    deduction_percentage: float = DEFAULT_DEDUCTION_PERCENTAGE
    adjustments: Mapping[int, EmployeeAdjustment] = field(default_factory=dict)
    processed_by: Optional[int] = None

    def adjustment_for(self, employee_id: int) -> EmployeeAdjustment:
        return self.adjustments.get(int(employee_id)) or EmployeeAdjustment()


@dataclass(frozen=True)
class EmployeeOutcome:
    employee_id: int
    ok: bool
    payment: Optional[SalaryPayment] = None
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()
    created: bool = False

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "ok": self.ok,
            "created": self.created,
            "error": self.error,
            "warnings": list(self.warnings),
            "payment": self.payment.to_dict() if self.payment else None,
        }


@dataclass(frozen=True)
class PayrollRunReport:
    payment_month: date
    outcomes: tuple[EmployeeOutcome, ...] = ()

    @property
    def successes(self) -> list[EmployeeOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failures(self) -> list[EmployeeOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialBatchFailure(self)

    def to_dict(self) -> dict:
        return {
            "payment_month": self.payment_month.strftime("%Y-%m-%d"),
            "ok": self.ok,
            "processed": len(self.outcomes),
            "succeeded": len(self.successes),
            "failed": len(self.failures),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class PayrollAnalytics:
    total_employees: int
    total_payroll_outflow: float
    average_salary: float
    highest_paid_employee: str
    highest_salary: float
    total_leave_deductions: float
    average_deduction_percentage: float
