from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveRequest:
    leave_id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: int
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    applied_date: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    documents: tuple[str, ...] = ()
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None
    department: Optional[str] = None

    @property
    def is_open(self) -> bool:
        """Pending and approved requests block overlapping requests."""
        return self.status in (LeaveStatus.PENDING, LeaveStatus.APPROVED)


@dataclass(frozen=True)
class LeaveFilters:
    status: Optional[LeaveStatus] = None
    leave_type: Optional[LeaveType] = None
    start_from: Optional[date] = None
    start_to: Optional[date] = None

    def matches(self, request: LeaveRequest) -> bool:
        if self.status and request.status != self.status:
            return False
        if self.leave_type and request.leave_type != self.leave_type:
            return False
        if self.start_from and request.start_date < self.start_from:
            return False
        if self.start_to and request.start_date > self.start_to:
            return False
        return True
