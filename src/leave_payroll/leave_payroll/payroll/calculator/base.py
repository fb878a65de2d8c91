from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

from ...common.validators import require_non_negative, require_percentage, require_positive
from ...core.constants import DEFAULT_DEDUCTION_PERCENTAGE


@dataclass(frozen=True)
class Proration:
    base_salary: float
    days_in_month: int
    daily_rate: float
    unpaid_days: float
    deduction_percentage: float
    leave_deduction: float


class ProrationCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll proration)."""

    @abstractmethod
    def days_in_month(self, year: int, month: int) -> int:
        raise NotImplementedError

    def daily_rate(self, base_salary: float, year: int, month: int) -> float:
        base = require_positive(base_salary, "Base salary")
        return base / self.days_in_month(year, month)

    def leave_deduction(
        self,
        daily_rate: float,
        unpaid_days: float,
        deduction_percentage: float = DEFAULT_DEDUCTION_PERCENTAGE,
    ) -> float:
        days = require_non_negative(unpaid_days, "Unpaid days")
        pct = require_percentage(deduction_percentage)
        return float(daily_rate) * days * (pct / 100)

    def prorate(
        self,
        base_salary: float,
        month: date,
        unpaid_days: float,
        deduction_percentage: float = DEFAULT_DEDUCTION_PERCENTAGE,
    ) -> Proration:
        rate = self.daily_rate(base_salary, month.year, month.month)
        return Proration(
            base_salary=float(base_salary),
            days_in_month=self.days_in_month(month.year, month.month),
            daily_rate=rate,
            unpaid_days=float(unpaid_days),
            deduction_percentage=float(deduction_percentage),
            leave_deduction=self.leave_deduction(rate, unpaid_days, deduction_percentage),
        )
