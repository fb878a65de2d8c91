from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, fetchall, fetchone
from .model import LeavePolicy, LeaveType
from .repository import PolicyRepository


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_leave_type(r: dict) -> LeaveType:
        return LeaveType(
            leave_type_id=int(r["leave_type_id"]),
            name=r["name"],
            is_paid=as_bool(r.get("is_paid")),
            requires_approval=as_bool(r.get("requires_approval")),
        )

    def list_leave_types(self) -> Sequence[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT leave_type_id, name, is_paid, requires_approval FROM leave_types ORDER BY name")
            return [self._to_leave_type(r) for r in fetchall(cur)]

    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT leave_type_id, name, is_paid, requires_approval FROM leave_types WHERE leave_type_id=%s",
                (int(leave_type_id),),
            )
            r = fetchone(cur)
            return self._to_leave_type(r) if r else None

    def list_active_policies(
        self,
        *,
        category_id: int,
        leave_type_id: Optional[int] = None,
    ) -> Sequence[LeavePolicy]:
        clauses = ["category_id=%s", "is_active=1"]
        params: list[object] = [int(category_id)]
        if leave_type_id is not None:
            clauses.append("leave_type_id=%s")
            params.append(int(leave_type_id))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT policy_id, category_id, leave_type_id,
                       max_days_per_year, probation_max_days, is_active, created_at
                FROM leave_policies
                WHERE {where}
                ORDER BY created_at DESC, policy_id DESC
                """,
                tuple(params),
            )
            return [
                LeavePolicy(
                    policy_id=int(r["policy_id"]),
                    category_id=int(r["category_id"]),
                    leave_type_id=int(r["leave_type_id"]),
                    max_days_per_year=as_float(r["max_days_per_year"]),
                    probation_max_days=as_float(r["probation_max_days"]),
                    is_active=as_bool(r.get("is_active")),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
