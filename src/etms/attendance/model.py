from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance record per (employee, work date)."""

    attendance_id: int
    employee_id: int
    work_date: date
    status: AttendanceStatus
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    working_hours: float = 0.0
    overtime: float = 0.0
    notes: Optional[str] = None
    location: dict[str, Any] = field(default_factory=dict)
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None
    department: Optional[str] = None

    @property
    def on_break(self) -> bool:
        return self.break_start is not None and self.break_end is None


@dataclass(frozen=True)
class AttendanceFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[AttendanceStatus] = None

    def matches(self, record: AttendanceRecord) -> bool:
        if self.start_date and record.work_date < self.start_date:
            return False
        if self.end_date and record.work_date > self.end_date:
            return False
        if self.status and record.status != self.status:
            return False
        return True
