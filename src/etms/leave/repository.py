from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import LeaveFilters, LeaveRequest


class LeaveRepository(Protocol):
    def get_by_id(self, leave_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, leave_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def find_overlapping(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        *,
        exclude_id: Optional[int] = None,
    ) -> Sequence[LeaveRequest]:
        """Pending or approved requests of the employee whose range intersects [start, end]."""
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: LeaveFilters, page: PageRequest) -> Page[LeaveRequest]:
        raise NotImplementedError

    def list_for_employee_year(self, employee_id: int, year: int) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: LeaveFilters) -> Sequence[LeaveRequest]:
        raise NotImplementedError
