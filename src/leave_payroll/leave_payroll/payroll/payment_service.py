from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import today_local
from ..common.validators import optional_text, require_non_empty, require_non_negative, require_percentage, require_positive
from ..core.constants import DEFAULT_CURRENCY
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .calculator.base import ProrationCalculator
from .calculator.standard_calculator import CalendarProrationCalculator
from .model import PayrollAnalytics, SalaryPayment, SalaryRecord
from .repository import PayrollRepository
from .service import compute_figures

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "employee_name",
    "base_salary",
    "leave_deductions",
    "unpaid_leave_days",
    "advance_deductions",
    "net_salary",
    "status",
    "payment_date",
]


class PaymentService:
    """Admin operations on salary records and generated payments."""

    def __init__(
        self,
        payroll: PayrollRepository,
        employees: EmployeeRepository,
        *,
        calculator: Optional[ProrationCalculator] = None,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self._payroll = payroll
        self._employees = employees
        self._calculator = calculator or CalendarProrationCalculator()
        self._default_currency = default_currency

    # -------- Salary records --------
    def set_salary(
        self,
        *,
        employee_id: int,
        base_salary: float,
        effective_from: date,
        currency: Optional[str] = None,
        notes: str = "",
    ) -> int:
        """Start a new active salary; the previous one ends the day before."""
        if not self._employees.get_by_id(int(employee_id)):
            raise NotFoundError("Employee does not exist")
        base = require_positive(base_salary, "Base salary")
        if effective_from is None:
            raise ValidationError("Effective from date is required")
        currency = require_non_empty(currency or self._default_currency, "Currency").upper()

        current = self._payroll.get_active_salary(int(employee_id))
        if current and current.effective_from and current.effective_from >= effective_from:
            raise ConflictError(
                f"Active salary already starts on {current.effective_from:%Y-%m-%d}; "
                "a new record must start after it"
            )

        salary_id = self._payroll.replace_active_salary(
            employee_id=int(employee_id),
            base_salary=base,
            currency=currency,
            effective_from=effective_from,
            notes=optional_text(notes),
        )
        logger.info("Salary %s set for employee=%s from %s", salary_id, employee_id, effective_from)
        return salary_id

    def deactivate_salary(self, *, salary_id: int, on: Optional[date] = None) -> None:
        ok = self._payroll.deactivate_salary(salary_id=int(salary_id), effective_to=on or today_local())
        if not ok:
            raise NotFoundError("Active salary record does not exist")

    def current_salary(self, employee_id: int) -> Optional[SalaryRecord]:
        return self._payroll.get_active_salary(int(employee_id))

    # -------- Payments --------
    def _get_payment(self, payment_id: int) -> SalaryPayment:
        payment = self._payroll.get_payment(payment_id=int(payment_id))
        if not payment:
            raise NotFoundError("Salary payment does not exist")
        return payment

    def list_payments(self, *, payment_month: Optional[date] = None, employee_id: Optional[int] = None) -> list[SalaryPayment]:
        month = payment_month.replace(day=1) if payment_month else None
        return list(self._payroll.list_payments(payment_month=month, employee_id=employee_id))

    def mark_payment(
        self,
        *,
        payment_id: int,
        is_paid: bool,
        payment_method: str = "",
        payment_reference: str = "",
        notes: str = "",
        on: Optional[date] = None,
    ) -> SalaryPayment:
        self._get_payment(payment_id)
        ok = self._payroll.update_status(
            payment_id=int(payment_id),
            is_paid=bool(is_paid),
            payment_date=(on or today_local()) if is_paid else None,
            payment_method=optional_text(payment_method) if is_paid else None,
            payment_reference=optional_text(payment_reference) if is_paid else None,
            notes=optional_text(notes),
        )
        if not ok:
            raise NotFoundError("Salary payment does not exist")
        return self._get_payment(payment_id)

    def edit_payment(
        self,
        *,
        payment_id: int,
        unpaid_leave_days: Optional[float] = None,
        deduction_percentage: Optional[float] = None,
        advance_deductions: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> SalaryPayment:
        """Manual correction; every amount is recomputed from the base salary snapshot."""
        payment = self._get_payment(payment_id)
        if payment.is_paid:
            raise ValidationError("Payment is already marked paid")

        unpaid = payment.unpaid_leave_days if unpaid_leave_days is None else require_non_negative(unpaid_leave_days, "Unpaid days")
        pct = payment.deduction_percentage if deduction_percentage is None else require_percentage(deduction_percentage)
        advance = (
            payment.advance_deductions if advance_deductions is None else require_non_negative(advance_deductions, "Advance")
        )

        figures = compute_figures(
            self._calculator,
            employee_id=payment.employee_id,
            payment_month=payment.payment_month,
            base_salary=payment.base_salary,
            unpaid_days=unpaid,
            deduction_percentage=pct,
            advance_amount=advance,
            notes=payment.notes if notes is None else optional_text(notes),
        )
        if figures.net_salary < 0:
            logger.warning("Edited payment %s has negative net salary %.2f", payment_id, figures.net_salary)

        if not self._payroll.update_amounts(payment_id=int(payment_id), figures=figures):
            raise NotFoundError("Salary payment does not exist")
        return self._get_payment(payment_id)

    def delete_payment(self, *, payment_id: int) -> None:
        if not self._payroll.delete_payment(payment_id=int(payment_id)):
            raise NotFoundError("Salary payment does not exist")

    # -------- Reporting --------
    def analytics(self, *, start_month: Optional[date] = None, end_month: Optional[date] = None) -> PayrollAnalytics:
        end = (end_month or today_local()).replace(day=1)
        start = (start_month or (end - timedelta(days=365))).replace(day=1)
        if start > end:
            raise ValidationError("Start month must not be after end month")

        payments = list(self._payroll.list_payments(start_month=start, end_month=end))
        if not payments:
            return PayrollAnalytics(
                total_employees=0,
                total_payroll_outflow=0.0,
                average_salary=0.0,
                highest_paid_employee="N/A",
                highest_salary=0.0,
                total_leave_deductions=0.0,
                average_deduction_percentage=0.0,
            )

        top = max(payments, key=lambda p: p.net_salary)
        top_employee = self._employees.get_by_id(top.employee_id)
        return PayrollAnalytics(
            total_employees=len({p.employee_id for p in payments}),
            total_payroll_outflow=round(sum(p.net_salary for p in payments), 2),
            average_salary=round(sum(p.base_salary for p in payments) / len(payments), 2),
            highest_paid_employee=top_employee.full_name if top_employee else str(top.employee_id),
            highest_salary=top.net_salary,
            total_leave_deductions=round(sum(p.leave_deductions for p in payments), 2),
            average_deduction_percentage=round(sum(p.deduction_percentage for p in payments) / len(payments), 2),
        )

    def export_rows(self, *, payment_month: date) -> list[dict]:
        payments = self.list_payments(payment_month=payment_month)
        names = {e.employee_id: e.full_name for e in self._employees.list_by_ids(p.employee_id for p in payments)}
        return [
            {
                "employee_name": names.get(p.employee_id, "N/A"),
                "base_salary": f"{p.base_salary:.2f}",
                "leave_deductions": f"{p.leave_deductions:.2f}",
                "unpaid_leave_days": f"{p.unpaid_leave_days:g}",
                "advance_deductions": f"{p.advance_deductions:.2f}",
                "net_salary": f"{p.net_salary:.2f}",
                "status": "Paid" if p.is_paid else "Pending",
                "payment_date": p.payment_date.strftime("%Y-%m-%d") if p.payment_date else "N/A",
            }
            for p in payments
        ]
