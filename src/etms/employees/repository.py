from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import Employee, EmployeeFilters


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Employee]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def create(self, *, employee_code: str, fields: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, employee_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def list_direct_report_ids(self, manager_id: int) -> Sequence[int]:
        raise NotImplementedError

    def list_direct_reports(self, manager_id: int) -> Sequence[Employee]:
        raise NotImplementedError

    def existing_ids(self, employee_ids: Iterable[int]) -> set[int]:
        raise NotImplementedError

    def count_active_in_department(self, department: str) -> int:
        raise NotImplementedError

    def list_page(
        self,
        scope: Scope,
        filters: EmployeeFilters,
        page: PageRequest,
        *,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> Page[Employee]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: EmployeeFilters) -> Sequence[Employee]:
        raise NotImplementedError
