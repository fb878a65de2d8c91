from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import CarryForward, LeaveDay, LeaveRequest
from .repository import LeaveRepository

_REQUEST_COLUMNS = """
    request_id, employee_id, leave_type_id, start_date, end_date, days_requested,
    reason, status, created_at, approved_by, approved_at, rejection_reason, updated_at
"""

_INSERT_DAY = """
    INSERT IGNORE INTO leave_day_records(
        request_id, employee_id, leave_date, leave_type_id, is_paid, day_value
    )
    VALUES(%s,%s,%s,%s,%s,%s)
"""


def _day_params(d: LeaveDay, request_id: Optional[int] = None) -> tuple:
    return (
        int(request_id if request_id is not None else d.request_id),
        int(d.employee_id),
        d.leave_date,
        int(d.leave_type_id),
        1 if d.is_paid else 0,
        float(d.day_value),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_request(r: dict) -> LeaveRequest:
        return LeaveRequest(
            request_id=int(r["request_id"]),
            employee_id=int(r["employee_id"]),
            leave_type_id=int(r["leave_type_id"]),
            start_date=r["start_date"],
            end_date=r["end_date"],
            days_requested=as_float(r["days_requested"]),
            reason=r.get("reason") or "",
            status=LeaveStatus(r["status"]),
            created_at=r.get("created_at"),
            approved_by=r.get("approved_by"),
            approved_at=r.get("approved_at"),
            rejection_reason=r.get("rejection_reason"),
            updated_at=r.get("updated_at"),
        )

    # -------- Requests --------
    def create_request(
        self,
        *,
        employee_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        days_requested: float,
        reason: str,
        status: LeaveStatus = LeaveStatus.PENDING,
        approved_by: Optional[int] = None,
        days: Sequence[LeaveDay] = (),
    ) -> int:
        approved = status == LeaveStatus.APPROVED
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO leave_requests(
                    employee_id, leave_type_id, start_date, end_date, days_requested,
                    reason, status, approved_by, approved_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,{"NOW()" if approved else "NULL"})
                """,
                (
                    int(employee_id),
                    int(leave_type_id),
                    start_date,
                    end_date,
                    float(days_requested),
                    reason,
                    status.value,
                    approved_by,
                ),
            )
            request_id = int(cur.lastrowid)
            if days:
                cur.executemany(_INSERT_DAY, [_day_params(d, request_id) for d in days])
            return request_id

    def get_request(self, *, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return self._to_request(r) if r else None

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        start_from: Optional[date] = None,
        start_to: Optional[date] = None,
        limit: Optional[int] = 500,
    ) -> Sequence[LeaveRequest]:
        clauses = ["1=1"]
        params: list[object] = []

        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if start_from is not None:
            clauses.append("start_date>=%s")
            params.append(start_from)
        if start_to is not None:
            clauses.append("start_date<=%s")
            params.append(start_to)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM leave_requests
                WHERE {where}
                ORDER BY start_date DESC, request_id DESC
                {"LIMIT %s" if limit is not None else ""}
                """,
                tuple(params + ([int(limit)] if limit is not None else [])),
            )
            return [self._to_request(r) for r in fetchall(cur)]

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        from_status: LeaveStatus,
        decided_by: Optional[int],
        rejection_reason: Optional[str] = None,
        days: Sequence[LeaveDay] = (),
        clear_days: bool = False,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, approved_by=%s, approved_at=NOW(), rejection_reason=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, decided_by, rejection_reason, int(request_id), from_status.value),
            )
            if cur.rowcount <= 0:
                return False
            if clear_days:
                cur.execute("DELETE FROM leave_day_records WHERE request_id=%s", (int(request_id),))
            if days:
                cur.executemany(_INSERT_DAY, [_day_params(d) for d in days])
            return True

    # -------- Per-day ledger --------
    def add_days(self, *, days: Sequence[LeaveDay]) -> int:
        if not days:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(_INSERT_DAY, [_day_params(d) for d in days])
            return max(int(cur.rowcount), 0)

    def count_days(self, *, request_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM leave_day_records WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def sum_unpaid_days(self, *, employee_id: int, start: date, end: date) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(day_value), 0) AS total
                FROM leave_day_records
                WHERE employee_id=%s AND is_paid=0 AND leave_date BETWEEN %s AND %s
                """,
                (int(employee_id), start, end),
            )
            r = fetchone(cur)
            return as_float(r["total"]) if r else 0.0

    # -------- Carry-forward --------
    def list_carry_forwards(self, *, year: int, employee_id: Optional[int] = None) -> Sequence[CarryForward]:
        clauses = ["year=%s"]
        params: list[object] = [int(year)]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, leave_type_id, year, days
                FROM leave_carry_forwards
                WHERE {" AND ".join(clauses)}
                """,
                tuple(params),
            )
            return [
                CarryForward(
                    employee_id=int(r["employee_id"]),
                    leave_type_id=int(r["leave_type_id"]),
                    year=int(r["year"]),
                    days=as_float(r["days"]),
                )
                for r in fetchall(cur)
            ]

    def replace_carry_forwards(self, *, year: int, rows: Sequence[CarryForward]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM leave_carry_forwards WHERE year=%s", (int(year),))
            if rows:
                cur.executemany(
                    """
                    INSERT INTO leave_carry_forwards(employee_id, leave_type_id, year, days)
                    VALUES(%s,%s,%s,%s)
                    """,
                    [(int(r.employee_id), int(r.leave_type_id), int(r.year), float(r.days)) for r in rows],
                )
            return len(rows)
