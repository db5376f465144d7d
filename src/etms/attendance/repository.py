from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import AttendanceStatus
from .model import AttendanceFilters, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        employee_id: int,
        work_date: date,
        check_in: datetime,
        status: AttendanceStatus,
        notes: Optional[str] = None,
        location: Optional[dict[str, Any]] = None,
    ) -> int:
        """Insert today's record. A concurrent duplicate for (employee, date) raises ConflictError."""
        raise NotImplementedError

    def update(self, attendance_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: AttendanceFilters, page: PageRequest) -> Page[AttendanceRecord]:
        raise NotImplementedError

    def list_between(self, scope: Scope, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def total_overtime(self, employee_id: int, start_date: date, end_date: date) -> float:
        raise NotImplementedError
