from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import CarryForward, LeaveDay, LeavePolicy, LeaveRequest, LeaveType


class PolicyRepository(Protocol):
    def list_leave_types(self) -> Sequence[LeaveType]:
        raise NotImplementedError

    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        raise NotImplementedError

    def list_active_policies(
        self,
        *,
        category_id: int,
        leave_type_id: Optional[int] = None,
    ) -> Sequence[LeavePolicy]:
        """All active policies for the category (duplicates included)."""

        raise NotImplementedError


class LeaveRepository(Protocol):
    # Requests
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
        """Insert a request; ``days`` are written in the same transaction.

        Day rows carry ``request_id=0``; the repository binds them to the new id.
        """

        raise NotImplementedError

    def get_request(self, *, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        start_from: Optional[date] = None,
        start_to: Optional[date] = None,
        limit: Optional[int] = 500,
    ) -> Sequence[LeaveRequest]:
        """Filter on start_date within [start_from, start_to]; ``limit=None`` returns every row."""

        raise NotImplementedError

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
        """Status change plus ledger update, atomically.

        Only applies while the row is still in ``from_status``; returns False otherwise.

        ``days`` are inserted ignoring ones already present for the same
        (request_id, leave_date); ``clear_days`` removes the request's rows.
        """

        raise NotImplementedError

    # Per-day leave ledger
    def add_days(self, *, days: Sequence[LeaveDay]) -> int:
        """Insert missing day rows; return how many were new."""

        raise NotImplementedError

    def count_days(self, *, request_id: int) -> int:
        raise NotImplementedError

    def sum_unpaid_days(self, *, employee_id: int, start: date, end: date) -> float:
        raise NotImplementedError

    # Carry-forward
    def list_carry_forwards(self, *, year: int, employee_id: Optional[int] = None) -> Sequence[CarryForward]:
        raise NotImplementedError

    def replace_carry_forwards(self, *, year: int, rows: Sequence[CarryForward]) -> int:
        """Make ``rows`` the full carry-forward set for ``year``, in one transaction."""

        raise NotImplementedError
