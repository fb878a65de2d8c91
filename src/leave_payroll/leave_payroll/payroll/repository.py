from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import PaymentFigures, SalaryPayment, SalaryRecord


class PayrollRepository(Protocol):
    # Salary records
    def get_active_salary(self, employee_id: int) -> Optional[SalaryRecord]:
        raise NotImplementedError

    def replace_active_salary(
        self,
        *,
        employee_id: int,
        base_salary: float,
        currency: str,
        effective_from: date,
        notes: Optional[str] = None,
    ) -> int:
        """Close the active record the day before ``effective_from`` and insert the new one."""

        raise NotImplementedError

    def deactivate_salary(self, *, salary_id: int, effective_to: date) -> bool:
        raise NotImplementedError

    # Payments
    def get_payment(self, *, payment_id: int) -> Optional[SalaryPayment]:
        raise NotImplementedError

    def find_payment(self, *, employee_id: int, payment_month: date) -> Optional[SalaryPayment]:
        raise NotImplementedError

    def upsert_payment(self, figures: PaymentFigures) -> tuple[SalaryPayment, bool]:
        """Create or update the single row for (employee, payment_month).

        Returns the stored row and whether it was newly created. An existing
        row that is already paid is returned unchanged.
        """

        raise NotImplementedError

    def update_amounts(self, *, payment_id: int, figures: PaymentFigures) -> bool:
        raise NotImplementedError

    def update_status(
        self,
        *,
        payment_id: int,
        is_paid: bool,
        payment_date: Optional[date],
        payment_method: Optional[str],
        payment_reference: Optional[str],
        notes: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def list_payments(
        self,
        *,
        payment_month: Optional[date] = None,
        start_month: Optional[date] = None,
        end_month: Optional[date] = None,
        employee_id: Optional[int] = None,
    ) -> Sequence[SalaryPayment]:
        raise NotImplementedError

    def delete_payment(self, *, payment_id: int) -> bool:
        raise NotImplementedError
