from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from ..common.validators import require_non_negative, require_percentage
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..leave.service import LeaveService
from .calculator.base import ProrationCalculator
from .calculator.standard_calculator import CalendarProrationCalculator
from .model import (
    EmployeeAdjustment,
    EmployeeOutcome,
    PaymentFigures,
    PayrollRunConfig,
    PayrollRunReport,
)
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

_PAID_UNCHANGED = "Payment already marked paid; left unchanged"


def money(value: float) -> float:
    return round(float(value), 2)


def adjustment_note(
    adjustment: EmployeeAdjustment,
    *,
    system_unpaid_days: float,
    unpaid_days: float,
) -> Optional[str]:
    if adjustment.advance_amount > 0:
        note = f"Manual advance: {adjustment.advance_amount:g}"
        reason = (adjustment.advance_reason or "").strip()
        return f"{note} - {reason}" if reason else note
    if adjustment.unpaid_days_override is not None and unpaid_days != system_unpaid_days:
        return f"Manual unpaid days adjustment: {system_unpaid_days:g} -> {unpaid_days:g} days"
    return None


def compute_figures(
    calculator: ProrationCalculator,
    *,
    employee_id: int,
    payment_month: date,
    base_salary: float,
    unpaid_days: float,
    deduction_percentage: float,
    advance_amount: float = 0.0,
    notes: Optional[str] = None,
    processed_by: Optional[int] = None,
) -> PaymentFigures:
    """Daily rate, leave deduction, advance and net pay for one employee-month.

    Net pay is not floored: a negative figure is returned as-is.
    """
    p = calculator.prorate(base_salary, payment_month, unpaid_days, deduction_percentage)
    leave_deductions = money(p.leave_deduction)
    advance = money(advance_amount)
    total = money(leave_deductions + advance)
    return PaymentFigures(
        employee_id=int(employee_id),
        payment_month=payment_month,
        base_salary=money(base_salary),
        daily_rate=p.daily_rate,
        days_in_month=p.days_in_month,
        unpaid_leave_days=float(unpaid_days),
        deduction_percentage=float(deduction_percentage),
        leave_deductions=leave_deductions,
        advance_deductions=advance,
        total_deductions=total,
        net_salary=money(float(base_salary) - total),
        notes=notes,
        processed_by=processed_by,
    )


class PayrollGenerator:
    """Creates or refreshes one SalaryPayment per employee for a month.

    Stateless between runs: re-running a month upserts the same rows.
    """

    def __init__(
        self,
        payroll: PayrollRepository,
        employees: EmployeeRepository,
        leave: LeaveService,
        *,
        calculator: Optional[ProrationCalculator] = None,
    ):
        self._payroll = payroll
        self._employees = employees
        self._leave = leave
        self._calculator = calculator or CalendarProrationCalculator()

    @staticmethod
    def validate(config: PayrollRunConfig) -> PayrollRunConfig:
        """Reject malformed run input before anything is written.

        Returns the config with every amount converted to a number.
        """
        if config.payment_month is None:
            raise ValidationError("Payment month is required")
        pct = require_percentage(config.deduction_percentage)
        adjustments = {}
        for employee_id, adj in config.adjustments.items():
            override = adj.unpaid_days_override
            adjustments[int(employee_id)] = EmployeeAdjustment(
                advance_amount=require_non_negative(adj.advance_amount, f"Advance for employee {employee_id}"),
                advance_reason=str(adj.advance_reason or ""),
                unpaid_days_override=(
                    require_non_negative(override, f"Unpaid days for employee {employee_id}")
                    if override is not None
                    else None
                ),
            )
        return replace(config, deduction_percentage=pct, adjustments=adjustments)

    def _target_ids(self, config: PayrollRunConfig) -> list[int]:
        if config.employee_ids:
            return list(dict.fromkeys(int(i) for i in config.employee_ids))
        return [e.employee_id for e in self._employees.list_active()]

    def preview(self, config: PayrollRunConfig, employee_id: int) -> PaymentFigures:
        """Figures for one employee without persisting anything."""
        config = self.validate(config)
        return self._figures_for(config, int(employee_id), config.payment_month.replace(day=1))

    def generate(self, config: PayrollRunConfig) -> PayrollRunReport:
        config = self.validate(config)
        month = config.payment_month.replace(day=1)

        outcomes = [self._process_one(config, employee_id, month) for employee_id in self._target_ids(config)]
        report = PayrollRunReport(payment_month=month, outcomes=tuple(outcomes))
        logger.info(
            "Payroll %s: %d processed, %d failed",
            month.strftime("%Y-%m"),
            len(report.outcomes),
            len(report.failures),
        )
        return report

    def _figures_for(self, config: PayrollRunConfig, employee_id: int, month: date) -> PaymentFigures:
        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise NotFoundError("Employee does not exist")

        salary = self._payroll.get_active_salary(employee_id)
        if not salary:
            raise NotFoundError("No active salary record")

        adj = config.adjustment_for(employee_id)
        system_days = self._leave.unpaid_days(employee_id=employee_id, month=month)
        unpaid_days = float(adj.unpaid_days_override) if adj.unpaid_days_override is not None else system_days

        return compute_figures(
            self._calculator,
            employee_id=employee_id,
            payment_month=month,
            base_salary=salary.base_salary,
            unpaid_days=unpaid_days,
            deduction_percentage=config.deduction_percentage,
            advance_amount=adj.advance_amount,
            notes=adjustment_note(adj, system_unpaid_days=system_days, unpaid_days=unpaid_days),
            processed_by=config.processed_by,
        )

    def _process_one(self, config: PayrollRunConfig, employee_id: int, month: date) -> EmployeeOutcome:
        try:
            existing = self._payroll.find_payment(employee_id=employee_id, payment_month=month)
            if existing and existing.is_paid:
                return EmployeeOutcome(
                    employee_id=employee_id,
                    ok=True,
                    payment=existing,
                    warnings=(_PAID_UNCHANGED,),
                )

            figures = self._figures_for(config, employee_id, month)
            warnings: list[str] = []
            if figures.net_salary < 0:
                warnings.append(f"Net salary is negative ({figures.net_salary:.2f})")
                logger.warning(
                    "Negative net salary for employee=%s month=%s: %.2f",
                    employee_id,
                    month.strftime("%Y-%m"),
                    figures.net_salary,
                )

            payment, created = self._payroll.upsert_payment(figures)
            if payment.is_paid:
                # Marked paid by another session after the check above; the write kept its amounts.
                logger.warning("Payment %s was marked paid during generation; left unchanged", payment.payment_id)
                return EmployeeOutcome(employee_id=employee_id, ok=True, payment=payment, warnings=(_PAID_UNCHANGED,))
            return EmployeeOutcome(
                employee_id=employee_id,
                ok=True,
                payment=payment,
                warnings=tuple(warnings),
                created=created,
            )
        except DomainError as e:
            logger.error("Payroll failed for employee=%s month=%s: %s", employee_id, month.strftime("%Y-%m"), e)
            return EmployeeOutcome(employee_id=employee_id, ok=False, error=str(e))
        except Exception as e:
            logger.exception("Payroll crashed for employee=%s month=%s", employee_id, month.strftime("%Y-%m"))
            return EmployeeOutcome(employee_id=employee_id, ok=False, error=f"Unexpected error: {e}")
