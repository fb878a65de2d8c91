from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..core.exceptions import PolicyMissingError
from ..employees.model import EmployeeCategory
from .model import LeavePolicy, LeaveType
from .repository import PolicyRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyResolution:
    leave_type_id: int
    max_days_per_year: float = 0.0
    probation_max_days: float = 0.0
    policy_id: Optional[int] = None
    duplicate_count: int = 0
    ineligible: bool = False

    @property
    def found(self) -> bool:
        return self.policy_id is not None

    @property
    def has_duplicates(self) -> bool:
        """Several active policies matched; the newest one was used."""
        return self.duplicate_count > 1


def pick_policy(policies: Sequence[LeavePolicy]) -> Optional[LeavePolicy]:
    """Most recently created wins; ties fall back to the highest id."""
    if not policies:
        return None
    return max(policies, key=lambda p: (p.created_at or datetime.min, p.policy_id))


class PolicyResolver:
    def __init__(self, policies: PolicyRepository):
        self._policies = policies

    def resolve(
        self,
        category_id: Optional[int],
        leave_type_id: int,
        *,
        category: Optional[EmployeeCategory] = None,
        leave_type: Optional[LeaveType] = None,
        strict: bool = False,
    ) -> PolicyResolution:
        """Caps for one (category, leave type) pair.

        A missing policy means zero allocation. With ``strict=True`` it raises
        PolicyMissingError instead, for callers that want to surface it.
        """
        if category_id is None:
            candidates: Sequence[LeavePolicy] = []
        else:
            candidates = self._policies.list_active_policies(
                category_id=int(category_id), leave_type_id=int(leave_type_id)
            )
        return self._resolve_from(
            category_id, int(leave_type_id), candidates, category=category, leave_type=leave_type, strict=strict
        )

    def resolve_all(
        self,
        category_id: Optional[int],
        *,
        category: Optional[EmployeeCategory] = None,
        leave_types: Optional[dict[int, LeaveType]] = None,
    ) -> list[PolicyResolution]:
        """One resolution per leave type configured for the category."""
        if category_id is None:
            return []

        grouped: dict[int, list[LeavePolicy]] = {}
        for p in self._policies.list_active_policies(category_id=int(category_id)):
            grouped.setdefault(int(p.leave_type_id), []).append(p)

        leave_types = leave_types or {}
        return [
            self._resolve_from(category_id, lt_id, grouped[lt_id], category=category, leave_type=leave_types.get(lt_id))
            for lt_id in sorted(grouped)
        ]

    def _resolve_from(
        self,
        category_id: Optional[int],
        leave_type_id: int,
        candidates: Sequence[LeavePolicy],
        *,
        category: Optional[EmployeeCategory],
        leave_type: Optional[LeaveType],
        strict: bool = False,
    ) -> PolicyResolution:
        policy = pick_policy([p for p in candidates if p.is_active])
        if policy is None:
            err = PolicyMissingError(category_id, leave_type_id)
            if strict:
                raise err
            logger.warning("Data quality: %s; allocating 0 days", err)
            return PolicyResolution(leave_type_id=leave_type_id)

        if len(candidates) > 1:
            logger.warning(
                "Data quality: %d active policies for category=%s leave_type=%s; using policy_id=%s",
                len(candidates),
                category_id,
                leave_type_id,
                policy.policy_id,
            )

        if category is not None and not category.is_paid_leave_eligible and leave_type is not None and leave_type.is_paid:
            return PolicyResolution(
                leave_type_id=leave_type_id,
                policy_id=policy.policy_id,
                duplicate_count=len(candidates),
                ineligible=True,
            )

        return PolicyResolution(
            leave_type_id=leave_type_id,
            max_days_per_year=float(policy.max_days_per_year),
            probation_max_days=float(policy.probation_max_days),
            policy_id=policy.policy_id,
            duplicate_count=len(candidates),
        )
