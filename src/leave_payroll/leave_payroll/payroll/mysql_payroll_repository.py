from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, fetchall, fetchone
from .model import PaymentFigures, SalaryPayment, SalaryRecord
from .repository import PayrollRepository

_SALARY_COLUMNS = """
    salary_id, employee_id, base_salary, currency, effective_from, effective_to, is_active, notes
"""

_PAYMENT_COLUMNS = """
    payment_id, employee_id, payment_month, base_salary, leave_deductions, unpaid_leave_days,
    deduction_percentage, advance_deductions, total_deductions, net_salary, is_paid,
    payment_date, payment_method, payment_reference, notes, processed_by, created_at, updated_at
"""


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_salary(r: dict) -> SalaryRecord:
        return SalaryRecord(
            salary_id=int(r["salary_id"]),
            employee_id=int(r["employee_id"]),
            base_salary=as_float(r["base_salary"]),
            currency=r.get("currency") or "INR",
            effective_from=r.get("effective_from"),
            effective_to=r.get("effective_to"),
            is_active=as_bool(r.get("is_active")),
            notes=r.get("notes"),
        )

    @staticmethod
    def _to_payment(r: dict) -> SalaryPayment:
        return SalaryPayment(
            payment_id=int(r["payment_id"]),
            employee_id=int(r["employee_id"]),
            payment_month=r["payment_month"],
            base_salary=as_float(r["base_salary"]),
            leave_deductions=as_float(r["leave_deductions"]),
            unpaid_leave_days=as_float(r["unpaid_leave_days"]),
            deduction_percentage=as_float(r["deduction_percentage"]),
            advance_deductions=as_float(r["advance_deductions"]),
            total_deductions=as_float(r["total_deductions"]),
            net_salary=as_float(r["net_salary"]),
            is_paid=as_bool(r.get("is_paid")),
            payment_date=r.get("payment_date"),
            payment_method=r.get("payment_method"),
            payment_reference=r.get("payment_reference"),
            notes=r.get("notes"),
            processed_by=r.get("processed_by"),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    # -------- Salary records --------
    def get_active_salary(self, employee_id: int) -> Optional[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SALARY_COLUMNS}
                FROM employee_salaries
                WHERE employee_id=%s AND is_active=1
                ORDER BY effective_from DESC
                LIMIT 1
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            return self._to_salary(r) if r else None

    def replace_active_salary(
        self,
        *,
        employee_id: int,
        base_salary: float,
        currency: str,
        effective_from: date,
        notes: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_salaries
                SET is_active=0, effective_to=%s
                WHERE employee_id=%s AND is_active=1
                """,
                (effective_from - timedelta(days=1), int(employee_id)),
            )
            cur.execute(
                """
                INSERT INTO employee_salaries(employee_id, base_salary, currency, effective_from, is_active, notes)
                VALUES(%s,%s,%s,%s,1,%s)
                """,
                (int(employee_id), float(base_salary), currency, effective_from, notes),
            )
            return int(cur.lastrowid)

    def deactivate_salary(self, *, salary_id: int, effective_to: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employee_salaries SET is_active=0, effective_to=%s WHERE salary_id=%s AND is_active=1",
                (effective_to, int(salary_id)),
            )
            return cur.rowcount > 0

    # -------- Payments --------
    @staticmethod
    def _lock_payment(cur, payment_id: int) -> bool:
        cur.execute("SELECT payment_id FROM salary_payments WHERE payment_id=%s FOR UPDATE", (int(payment_id),))
        return fetchone(cur) is not None

    def get_payment(self, *, payment_id: int) -> Optional[SalaryPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PAYMENT_COLUMNS} FROM salary_payments WHERE payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            return self._to_payment(r) if r else None

    def find_payment(self, *, employee_id: int, payment_month: date) -> Optional[SalaryPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_PAYMENT_COLUMNS} FROM salary_payments WHERE employee_id=%s AND payment_month=%s",
                (int(employee_id), payment_month),
            )
            r = fetchone(cur)
            return self._to_payment(r) if r else None

    def upsert_payment(self, figures: PaymentFigures) -> tuple[SalaryPayment, bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Paid rows keep their amounts, even when marked paid after the caller checked.
            cur.execute(
                """
                INSERT INTO salary_payments(
                    employee_id, payment_month, base_salary, leave_deductions, unpaid_leave_days,
                    deduction_percentage, advance_deductions, total_deductions, net_salary,
                    notes, processed_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    base_salary=IF(is_paid=1, base_salary, VALUES(base_salary)),
                    leave_deductions=IF(is_paid=1, leave_deductions, VALUES(leave_deductions)),
                    unpaid_leave_days=IF(is_paid=1, unpaid_leave_days, VALUES(unpaid_leave_days)),
                    deduction_percentage=IF(is_paid=1, deduction_percentage, VALUES(deduction_percentage)),
                    advance_deductions=IF(is_paid=1, advance_deductions, VALUES(advance_deductions)),
                    total_deductions=IF(is_paid=1, total_deductions, VALUES(total_deductions)),
                    net_salary=IF(is_paid=1, net_salary, VALUES(net_salary)),
                    notes=IF(is_paid=1, notes, VALUES(notes)),
                    processed_by=IF(is_paid=1, processed_by, VALUES(processed_by))
                """,
                (
                    int(figures.employee_id),
                    figures.payment_month,
                    figures.base_salary,
                    figures.leave_deductions,
                    figures.unpaid_leave_days,
                    figures.deduction_percentage,
                    figures.advance_deductions,
                    figures.total_deductions,
                    figures.net_salary,
                    figures.notes,
                    figures.processed_by,
                ),
            )
            # MySQL reports 1 for an insert, 2 for an update, 0 when nothing changed.
            created = cur.rowcount == 1
            cur.execute(
                f"SELECT {_PAYMENT_COLUMNS} FROM salary_payments WHERE employee_id=%s AND payment_month=%s",
                (int(figures.employee_id), figures.payment_month),
            )
            return self._to_payment(fetchone(cur)), created

    def update_amounts(self, *, payment_id: int, figures: PaymentFigures) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._lock_payment(cur, payment_id):
                return False
            cur.execute(
                """
                UPDATE salary_payments
                SET leave_deductions=%s, unpaid_leave_days=%s, deduction_percentage=%s,
                    advance_deductions=%s, total_deductions=%s, net_salary=%s, notes=%s
                WHERE payment_id=%s
                """,
                (
                    figures.leave_deductions,
                    figures.unpaid_leave_days,
                    figures.deduction_percentage,
                    figures.advance_deductions,
                    figures.total_deductions,
                    figures.net_salary,
                    figures.notes,
                    int(payment_id),
                ),
            )
            return True

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
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._lock_payment(cur, payment_id):
                return False
            cur.execute(
                """
                UPDATE salary_payments
                SET is_paid=%s, payment_date=%s, payment_method=%s, payment_reference=%s,
                    notes=COALESCE(%s, notes)
                WHERE payment_id=%s
                """,
                (1 if is_paid else 0, payment_date, payment_method, payment_reference, notes, int(payment_id)),
            )
            return True

    def list_payments(
        self,
        *,
        payment_month: Optional[date] = None,
        start_month: Optional[date] = None,
        end_month: Optional[date] = None,
        employee_id: Optional[int] = None,
    ) -> Sequence[SalaryPayment]:
        clauses = ["1=1"]
        params: list[object] = []

        if payment_month is not None:
            clauses.append("payment_month=%s")
            params.append(payment_month)
        if start_month is not None:
            clauses.append("payment_month>=%s")
            params.append(start_month)
        if end_month is not None:
            clauses.append("payment_month<=%s")
            params.append(end_month)
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_PAYMENT_COLUMNS}
                FROM salary_payments
                WHERE {" AND ".join(clauses)}
                ORDER BY payment_month DESC, employee_id
                """,
                tuple(params),
            )
            return [self._to_payment(r) for r in fetchall(cur)]

    def delete_payment(self, *, payment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM salary_payments WHERE payment_id=%s", (int(payment_id),))
            return cur.rowcount > 0
