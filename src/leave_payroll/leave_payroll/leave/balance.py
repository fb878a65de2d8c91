"""Leave balance aggregation.

Balances are a pure function of approved requests and resolved policy caps;
they are recomputed on every read and never edited by hand.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ..core.constants import NO_LEAVE_TYPE_NAME
from ..core.enums import LeaveStatus
from ..employees.model import Employee
from .model import BalanceSummary, LeaveBalance, LeaveRequest
from .policy_resolver import PolicyResolution
from .probation import is_on_probation, overlaps_probation

logger = logging.getLogger(__name__)


class BalanceAggregator:
    def compute(
        self,
        employee: Employee,
        *,
        year: int,
        resolutions: Sequence[PolicyResolution],
        requests: Iterable[LeaveRequest],
        probation_months: int,
        leave_type_names: Optional[Mapping[int, str]] = None,
        carry_forward: Optional[Mapping[int, float]] = None,
        month: Optional[int] = None,
        reference_date: Optional[date] = None,
    ) -> list[LeaveBalance]:
        """Balances for one employee and year, optionally narrowed to a month.

        In month view only ``used`` changes: it counts approved requests that
        start in that month, while ``allocated`` stays the full-year cap.
        """
        leave_type_names = leave_type_names or {}
        carry_forward = carry_forward or {}
        on_probation = is_on_probation(employee.joined_on, probation_months, reference_date)

        used: dict[int, float] = {}
        probation_used: dict[int, float] = {}
        for req in self._in_period(requests, employee_id=employee.employee_id, year=year, month=month):
            bucket = (
                probation_used
                if overlaps_probation(req.start_date, req.end_date, employee.joined_on, probation_months)
                else used
            )
            bucket[req.leave_type_id] = bucket.get(req.leave_type_id, 0.0) + float(req.days_requested)

        by_type = {r.leave_type_id: r for r in resolutions}
        # Leave taken under a type with no policy still shows up, against a zero cap.
        type_ids = sorted(set(by_type) | set(used) | set(probation_used))

        if not type_ids:
            return [
                LeaveBalance(
                    employee_id=employee.employee_id,
                    leave_type_id=None,
                    leave_type_name=NO_LEAVE_TYPE_NAME,
                    year=year,
                    month=month,
                    allocated_days=0.0,
                    used_days=0.0,
                    remaining_days=0.0,
                    probation_allocated_days=0.0,
                    probation_used_days=0.0,
                    probation_remaining_days=0.0,
                    is_on_probation=on_probation,
                )
            ]

        out: list[LeaveBalance] = []
        for lt_id in type_ids:
            res = by_type.get(lt_id) or PolicyResolution(leave_type_id=lt_id)
            carried = float(carry_forward.get(lt_id, 0.0))
            allocated = float(res.max_days_per_year) + carried
            probation_allocated = float(res.probation_max_days)
            u = used.get(lt_id, 0.0)
            pu = probation_used.get(lt_id, 0.0)

            balance = LeaveBalance(
                employee_id=employee.employee_id,
                leave_type_id=lt_id,
                leave_type_name=leave_type_names.get(lt_id, str(lt_id)),
                year=year,
                month=month,
                allocated_days=allocated,
                used_days=u,
                remaining_days=allocated - u,
                probation_allocated_days=probation_allocated,
                probation_used_days=pu,
                probation_remaining_days=probation_allocated - pu,
                is_on_probation=on_probation,
                carried_forward_days=carried,
            )
            if balance.is_overdrawn:
                logger.warning(
                    "Leave overdrawn: employee=%s leave_type=%s year=%s remaining=%s probation_remaining=%s",
                    employee.employee_id,
                    lt_id,
                    year,
                    balance.remaining_days,
                    balance.probation_remaining_days,
                )
            out.append(balance)
        return out

    @staticmethod
    def summarize(employee: Employee, balances: Sequence[LeaveBalance], *, year: int, month: Optional[int] = None) -> BalanceSummary:
        on_probation = any(b.is_on_probation for b in balances)
        return BalanceSummary(
            employee_id=employee.employee_id,
            employee_name=employee.full_name,
            year=year,
            month=month,
            is_on_probation=on_probation,
            total_allocated=sum(b.allocated_days for b in balances),
            total_used=sum(b.used_days for b in balances),
            total_remaining=sum(b.remaining_days for b in balances),
            probation_allocated=sum(b.probation_allocated_days for b in balances),
            probation_used=sum(b.probation_used_days for b in balances),
            probation_remaining=sum(b.probation_remaining_days for b in balances),
            balances=tuple(balances),
        )

    @staticmethod
    def _in_period(
        requests: Iterable[LeaveRequest],
        *,
        employee_id: int,
        year: int,
        month: Optional[int],
    ) -> Iterable[LeaveRequest]:
        for r in requests:
            if r.employee_id != employee_id or r.status != LeaveStatus.APPROVED:
                continue
            if r.start_date.year != year:
                continue
            if month is not None and r.start_date.month != month:
                continue
            yield r
