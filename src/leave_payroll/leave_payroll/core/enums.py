from __future__ import annotations

from enum import Enum


class LeaveStatus(str, Enum):
    """Lifecycle of a leave request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
