from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from ..common.datetime_utils import days_in_month, inclusive_days, iter_days, month_end, month_start
from ..common.validators import optional_text, require_date, require_non_empty, require_non_negative, require_positive
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_MAX_ROLLOVER_DAYS, DEFAULT_PROBATION_MONTHS
from ..core.enums import LeaveStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .balance import BalanceAggregator
from .model import (
    BalanceSummary,
    CarryForward,
    LeaveBalance,
    LeaveDay,
    LeaveRequest,
    LeaveType,
    RolloverResult,
    RolloverSummary,
)
from .policy_resolver import PolicyResolver
from .probation import effective_probation_months
from .repository import LeaveRepository, PolicyRepository

logger = logging.getLogger(__name__)

# Same-status re-application is handled separately as a no-op.
_ALLOWED_TRANSITIONS = {
    LeaveStatus.PENDING: {LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED},
    LeaveStatus.APPROVED: {LeaveStatus.CANCELLED},
    LeaveStatus.REJECTED: set(),
    LeaveStatus.CANCELLED: set(),
}

# Matches leave_day_records.day_value DECIMAL(5, 4).
_DAY_VALUE_PLACES = Decimal("0.0001")


def split_day_values(days_requested: float, span: int) -> list[float]:
    """Share ``days_requested`` over ``span`` days at the ledger's 4-place precision.

    Every day but the last is truncated; the last takes the remainder so the
    stored values add back to ``days_requested`` exactly.
    """
    total = Decimal(str(days_requested))
    each = (total / span).quantize(_DAY_VALUE_PLACES, rounding=ROUND_DOWN)
    last = total - each * (span - 1)
    return [float(each)] * (span - 1) + [float(last)]


def expand_leave_days(req: LeaveRequest, leave_type: LeaveType) -> list[LeaveDay]:
    """One ledger row per calendar day of the request, sharing its day count."""
    values = split_day_values(req.days_requested, inclusive_days(req.start_date, req.end_date))
    return [
        LeaveDay(
            request_id=req.request_id,
            employee_id=req.employee_id,
            leave_date=d,
            leave_type_id=req.leave_type_id,
            is_paid=leave_type.is_paid,
            day_value=value,
        )
        for d, value in zip(iter_days(req.start_date, req.end_date), values)
    ]


class LeaveService:
    def __init__(
        self,
        requests: LeaveRepository,
        policies: PolicyRepository,
        employees: EmployeeRepository,
        *,
        resolver: Optional[PolicyResolver] = None,
        aggregator: Optional[BalanceAggregator] = None,
        default_probation_months: int = DEFAULT_PROBATION_MONTHS,
    ):
        self._requests = requests
        self._policies = policies
        self._employees = employees
        self._resolver = resolver or PolicyResolver(policies)
        self._aggregator = aggregator or BalanceAggregator()
        self._default_probation_months = int(default_probation_months)

    # -------- Request lifecycle --------
    def _validate_new_request(
        self,
        *,
        employee_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: str,
        days_requested: Optional[float],
    ) -> tuple[Employee, LeaveType, float, str]:
        require_date(start_date, "Start date")
        require_date(end_date, "End date")
        if end_date < start_date:
            raise ValidationError("End date must be on or after start date")

        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee does not exist")
        if not employee.is_active:
            raise ValidationError("Employee is not active")

        leave_type = self._policies.get_leave_type(int(leave_type_id))
        if not leave_type:
            raise NotFoundError("Leave type does not exist")

        span = inclusive_days(start_date, end_date)
        if days_requested is None:
            days = float(span)
        else:
            days = require_positive(days_requested, "Days requested")
            if days > span:
                raise ValidationError(f"Days requested ({days:g}) exceeds the date range ({span} days)")

        return employee, leave_type, days, require_non_empty(reason, "Reason")

    def create_request(
        self,
        *,
        employee_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: str,
        days_requested: Optional[float] = None,
    ) -> int:
        """Employee-submitted leave. Types that skip approval are approved at once."""
        _, leave_type, days, reason = self._validate_new_request(
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            days_requested=days_requested,
        )
        if not leave_type.requires_approval:
            return self._create_approved(
                employee_id=int(employee_id),
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                days=days,
                reason=reason,
                approved_by=None,
            )

        return self._requests.create_request(
            employee_id=int(employee_id),
            leave_type_id=int(leave_type_id),
            start_date=start_date,
            end_date=end_date,
            days_requested=days,
            reason=reason,
        )

    def admin_add_leave(
        self,
        *,
        admin_id: int,
        employee_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: str,
        days_requested: Optional[float] = None,
    ) -> int:
        """Admin-entered leave, created directly in the approved state."""
        _, leave_type, days, reason = self._validate_new_request(
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            days_requested=days_requested,
        )
        return self._create_approved(
            employee_id=int(employee_id),
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=days,
            reason=reason,
            approved_by=int(admin_id),
        )

    def _create_approved(
        self,
        *,
        employee_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days: float,
        reason: str,
        approved_by: Optional[int],
    ) -> int:
        draft = LeaveRequest(
            request_id=0,
            employee_id=employee_id,
            leave_type_id=leave_type.leave_type_id,
            start_date=start_date,
            end_date=end_date,
            days_requested=days,
            reason=reason,
            status=LeaveStatus.APPROVED,
        )
        request_id = self._requests.create_request(
            employee_id=employee_id,
            leave_type_id=leave_type.leave_type_id,
            start_date=start_date,
            end_date=end_date,
            days_requested=days,
            reason=reason,
            status=LeaveStatus.APPROVED,
            approved_by=approved_by,
            days=expand_leave_days(draft, leave_type),
        )
        logger.info("Leave request %s created approved for employee=%s (%g days)", request_id, employee_id, days)
        return request_id

    def _get_request(self, request_id: int) -> LeaveRequest:
        req = self._requests.get_request(request_id=int(request_id))
        if not req:
            raise NotFoundError("Leave request does not exist")
        return req

    def _current_status(self, request_id: int) -> Optional[LeaveStatus]:
        req = self._requests.get_request(request_id=int(request_id))
        return req.status if req else None

    def _check_transition(self, req: LeaveRequest, target: LeaveStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[req.status]:
            raise ValidationError(f"Cannot move a {req.status.value} request to {target.value}")

    def approve(self, *, request_id: int, admin_id: int) -> int:
        """Approve and write the per-day ledger; return the number of new day rows.

        Re-approving an approved request only fills in missing day rows, so a
        retry after a failure never duplicates the ledger.
        """
        req = self._get_request(request_id)
        leave_type = self._policies.get_leave_type(req.leave_type_id)
        if not leave_type:
            raise NotFoundError("Leave type does not exist")
        days = expand_leave_days(req, leave_type)

        if req.status == LeaveStatus.APPROVED:
            if self._requests.count_days(request_id=req.request_id) >= len(days):
                return 0
            added = self._requests.add_days(days=days)
            logger.warning("Leave request %s was approved without a full ledger; restored %d day(s)", req.request_id, added)
            return added

        self._check_transition(req, LeaveStatus.APPROVED)
        ok = self._requests.decide(
            request_id=req.request_id,
            status=LeaveStatus.APPROVED,
            from_status=req.status,
            decided_by=int(admin_id),
            days=days,
        )
        if not ok:
            if self._current_status(req.request_id) == LeaveStatus.APPROVED:
                # Another session approved it first and wrote the ledger.
                return 0
            raise ValidationError("Approving the leave request failed")
        logger.info("Leave request %s approved by %s (%d day rows)", req.request_id, admin_id, len(days))
        return len(days)

    def reject(self, *, request_id: int, admin_id: int, reason: str = "") -> None:
        self._close(request_id=request_id, actor_id=admin_id, target=LeaveStatus.REJECTED, reason=reason)

    def cancel(self, *, request_id: int, actor_id: int, reason: str = "") -> None:
        self._close(request_id=request_id, actor_id=actor_id, target=LeaveStatus.CANCELLED, reason=reason)

    def _close(self, *, request_id: int, actor_id: int, target: LeaveStatus, reason: str) -> None:
        req = self._get_request(request_id)
        if req.status == target:
            return
        self._check_transition(req, target)

        ok = self._requests.decide(
            request_id=req.request_id,
            status=target,
            from_status=req.status,
            decided_by=int(actor_id),
            rejection_reason=optional_text(reason),
            clear_days=req.status == LeaveStatus.APPROVED,
        )
        if not ok:
            if self._current_status(req.request_id) == target:
                return
            raise ValidationError(f"Marking the leave request {target.value} failed")
        logger.info("Leave request %s %s by %s", req.request_id, target.value, actor_id)

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[LeaveRequest]:
        return list(self._requests.list_requests(employee_id=employee_id, status=status, limit=limit))

    # -------- Balances --------
    def compute_balances(
        self,
        employee: Employee,
        *,
        year: int,
        month: Optional[int] = None,
        reference_date: Optional[date] = None,
    ) -> list[LeaveBalance]:
        if month is not None and not 1 <= int(month) <= 12:
            raise ValidationError(f"Invalid month: {month}")

        category = self._employees.get_category(employee.category_id) if employee.category_id is not None else None
        leave_types = {lt.leave_type_id: lt for lt in self._policies.list_leave_types()}
        resolutions = self._resolver.resolve_all(employee.category_id, category=category, leave_types=leave_types)

        if month is None:
            start_from, start_to = date(year, 1, 1), date(year, 12, 31)
        else:
            start_from = date(year, int(month), 1)
            start_to = date(year, int(month), days_in_month(year, int(month)))
        requests = self._requests.list_requests(
            employee_id=employee.employee_id,
            status=LeaveStatus.APPROVED,
            start_from=start_from,
            start_to=start_to,
            limit=None,
        )
        carry = {
            cf.leave_type_id: cf.days
            for cf in self._requests.list_carry_forwards(year=year, employee_id=employee.employee_id)
        }

        return self._aggregator.compute(
            employee,
            year=int(year),
            month=int(month) if month is not None else None,
            resolutions=resolutions,
            requests=requests,
            probation_months=effective_probation_months(employee, category, default=self._default_probation_months),
            leave_type_names={k: v.name for k, v in leave_types.items()},
            carry_forward=carry,
            reference_date=reference_date,
        )

    def get_balances(
        self,
        *,
        employee_id: int,
        year: int,
        month: Optional[int] = None,
        reference_date: Optional[date] = None,
    ) -> list[LeaveBalance]:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee does not exist")
        return self.compute_balances(employee, year=int(year), month=month, reference_date=reference_date)

    def balance_overview(
        self,
        *,
        year: int,
        month: Optional[int] = None,
        reference_date: Optional[date] = None,
    ) -> list[BalanceSummary]:
        """Roll-up for every active employee; none are left out."""
        out = []
        for emp in self._employees.list_active():
            balances = self.compute_balances(emp, year=int(year), month=month, reference_date=reference_date)
            out.append(self._aggregator.summarize(emp, balances, year=int(year), month=month))
        return out

    def unpaid_days(self, *, employee_id: int, month: date) -> float:
        """Unpaid leave days recorded in the ledger for the month of ``month``."""
        return float(
            self._requests.sum_unpaid_days(employee_id=int(employee_id), start=month_start(month), end=month_end(month))
        )

    # -------- Year-end rollover --------
    @staticmethod
    def _check_rollover_years(from_year: int, to_year: int) -> None:
        if int(to_year) != int(from_year) + 1:
            raise ValidationError("Rollover target year must follow the source year")

    def _year_end_balances(self, from_year: int) -> list[tuple[Employee, list[LeaveBalance]]]:
        year_end = date(int(from_year), 12, 31)
        return [
            (emp, [b for b in self.compute_balances(emp, year=int(from_year), reference_date=year_end) if b.leave_type_id is not None])
            for emp in self._employees.list_active()
        ]

    def rollover_summary(self, *, from_year: int, to_year: int) -> RolloverSummary:
        self._check_rollover_years(from_year, to_year)
        rows = self._year_end_balances(from_year)
        balances = [b for _, bs in rows for b in bs]
        return RolloverSummary(
            from_year=int(from_year),
            to_year=int(to_year),
            employees_with_balances=sum(1 for _, bs in rows if bs),
            total_remaining_days=sum(max(b.remaining_days, 0.0) for b in balances),
            eligible_for_rollover=sum(1 for b in balances if b.remaining_days > 0),
            balances_in_target_year=len(self._requests.list_carry_forwards(year=int(to_year))),
        )

    def rollover(
        self,
        *,
        from_year: int,
        to_year: int,
        max_rollover_days: float = DEFAULT_MAX_ROLLOVER_DAYS,
    ) -> RolloverResult:
        """Carry unused confirmed-tier days into the next year, capped per leave type.

        Re-running for the same target year replaces the earlier figures, including
        rows whose balance has since dropped to zero.
        """
        self._check_rollover_years(from_year, to_year)
        cap = require_non_negative(max_rollover_days, "Max rollover days")

        rows = self._year_end_balances(from_year)
        carry: list[CarryForward] = []
        for emp, balances in rows:
            for b in balances:
                days = min(max(b.remaining_days, 0.0), cap)
                if days > 0:
                    carry.append(CarryForward(employee_id=emp.employee_id, leave_type_id=int(b.leave_type_id), year=int(to_year), days=days))

        created = self._requests.replace_carry_forwards(year=int(to_year), rows=carry)
        logger.info("Rolled over %d balance(s) from %s to %s (cap=%g)", created, from_year, to_year, cap)
        return RolloverResult(
            from_year=int(from_year),
            to_year=int(to_year),
            max_rollover_days=cap,
            employees_processed=len(rows),
            balances_created=created,
        )
