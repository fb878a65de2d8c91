from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, fetchall, fetchone
from .model import Employee, EmployeeCategory
from .repository import EmployeeRepository

_EMPLOYEE_COLUMNS = """
    employee_id, full_name, email, category_id, joined_on,
    probation_period_months, base_salary, is_active
"""


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_employee(r: dict) -> Employee:
        return Employee(
            employee_id=int(r["employee_id"]),
            full_name=r["full_name"],
            email=r.get("email"),
            category_id=int(r["category_id"]) if r.get("category_id") is not None else None,
            joined_on=r.get("joined_on"),
            probation_period_months=(
                int(r["probation_period_months"]) if r.get("probation_period_months") is not None else None
            ),
            base_salary=as_float(r.get("base_salary")),
            is_active=as_bool(r.get("is_active")),
        )

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return self._to_employee(r) if r else None

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE is_active=1 ORDER BY full_name")
            return [self._to_employee(r) for r in fetchall(cur)]

    def list_by_ids(self, employee_ids: Iterable[int]) -> Sequence[Employee]:
        ids = [int(i) for i in employee_ids]
        if not ids:
            return []
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE employee_id IN ({placeholders}) ORDER BY full_name",
                tuple(ids),
            )
            return [self._to_employee(r) for r in fetchall(cur)]

    def get_category(self, category_id: int) -> Optional[EmployeeCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT category_id, name, is_paid_leave_eligible, default_probation_months
                FROM employee_categories
                WHERE category_id=%s
                """,
                (int(category_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return EmployeeCategory(
                category_id=int(r["category_id"]),
                name=r["name"],
                is_paid_leave_eligible=as_bool(r.get("is_paid_leave_eligible")),
                default_probation_months=(
                    int(r["default_probation_months"]) if r.get("default_probation_months") is not None else None
                ),
            )
