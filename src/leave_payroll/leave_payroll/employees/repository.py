from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import Employee, EmployeeCategory


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Employee]:
        raise NotImplementedError

    def list_by_ids(self, employee_ids: Iterable[int]) -> Sequence[Employee]:
        """Return the employees that exist; missing ids are silently absent."""

        raise NotImplementedError

    def get_category(self, category_id: int) -> Optional[EmployeeCategory]:
        raise NotImplementedError
