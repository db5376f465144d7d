from __future__ import annotations

import calendar
import logging
from datetime import date, datetime
from typing import Optional

from ..access.policy import AccessPolicy, Action, Entity, Identity
from ..access.scope import Scope
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..core.constants import RECENT_ACTIVITY_LIMIT
from ..core.enums import EmployeeStatus, LeaveStatus, LeaveType, PayrollStatus
from ..core.exceptions import ValidationError
from ..departments.repository import DepartmentRepository
from ..employees.model import EmployeeFilters
from ..employees.repository import EmployeeRepository
from ..leave.model import LeaveFilters
from ..leave.repository import LeaveRepository
from ..payroll.model import PayrollFilters
from ..payroll.repository import PayrollRepository
from ..tasks.model import TaskFilters
from ..tasks.repository import TaskRepository
from . import builders

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _window(start: Optional[date], end: Optional[date], default: tuple[date, date]) -> tuple[date, date]:
    start = start or default[0]
    end = end or default[1]
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    return start, end


class ReportService:
    """Cross-module reports. Every figure is computed over the caller's scope."""

    def __init__(
        self,
        *,
        employees: EmployeeRepository,
        departments: DepartmentRepository,
        attendance: AttendanceRepository,
        leave: LeaveRepository,
        tasks: TaskRepository,
        payrolls: PayrollRepository,
        policy: AccessPolicy,
    ):
        self._employees = employees
        self._departments = departments
        self._attendance = attendance
        self._leave = leave
        self._tasks = tasks
        self._payrolls = payrolls
        self._policy = policy

    def dashboard(self, identity: Identity, *, now: datetime | None = None) -> dict:
        now = now or now_local()
        today = now.date()
        month_start, month_end = month_bounds(today.year, today.month)

        employees = self._employees.list_all(
            self._policy.scope_for(identity, Entity.EMPLOYEE, Action.READ),
            EmployeeFilters(status=EmployeeStatus.ACTIVE),
        )
        departments = (
            self._departments.list_all() if self._policy.can(identity, Entity.DEPARTMENT, Action.LIST) else ()
        )
        tasks = self._tasks.list_all(self._policy.scope_for(identity, Entity.TASK), TaskFilters())

        recent = None
        if self._policy.can(identity, Entity.TASK, Action.CREATE):
            recent = sorted(tasks, key=lambda t: (t.created_at or datetime.min, t.task_id), reverse=True)
            recent = recent[:RECENT_ACTIVITY_LIMIT]

        return builders.dashboard(
            total_employees=len(employees),
            total_departments=len(departments),
            today=self._attendance.list_between(self._policy.scope_for(identity, Entity.ATTENDANCE), today, today),
            tasks=tasks,
            leaves=self._leave.list_all(
                self._policy.scope_for(identity, Entity.LEAVE),
                LeaveFilters(start_from=month_start, start_to=month_end),
            ),
            recent=recent,
            now=now,
        )

    def attendance(
        self,
        identity: Identity,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        employee_id: Optional[int] = None,
        department: Optional[str] = None,
        detailed: bool = False,
        now: datetime | None = None,
    ) -> dict:
        today = (now or now_local()).date()
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.REPORT)
        start, end = _window(start, end, month_bounds(today.year, today.month))

        employees = self._employees.list_all(
            self._policy.scope_for(identity, Entity.EMPLOYEE, Action.REPORT).narrow(employee_id),
            EmployeeFilters(status=EmployeeStatus.ACTIVE, department=department),
        )
        records = self._attendance.list_between(
            self._policy.scope_for(identity, Entity.ATTENDANCE, Action.REPORT).narrow(employee_id), start, end
        )
        report = builders.attendance_report(employees, records, detailed=detailed)
        report["dateRange"] = {"start": start.isoformat(), "end": end.isoformat()}
        return report

    def leaves(
        self,
        identity: Identity,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        employee_id: Optional[int] = None,
        leave_type: Optional[LeaveType] = None,
        status: Optional[LeaveStatus] = None,
        now: datetime | None = None,
    ) -> dict:
        year = (now or now_local()).year
        self._policy.enforce(identity, Entity.LEAVE, Action.REPORT)
        start, end = _window(start, end, (date(year, 1, 1), date(year, 12, 31)))

        leaves = self._leave.list_all(
            self._policy.scope_for(identity, Entity.LEAVE, Action.REPORT).narrow(employee_id),
            LeaveFilters(status=status, leave_type=leave_type, start_from=start, start_to=end),
        )
        employees = {}
        for employee_id_ in {r.employee_id for r in leaves}:
            employee = self._employees.get_by_id(employee_id_)
            if employee is not None:
                employees[employee_id_] = employee
        report = builders.leave_report(leaves, employees)
        report["dateRange"] = {"start": start.isoformat(), "end": end.isoformat()}
        return report

    def payroll(
        self,
        identity: Identity,
        *,
        year: Optional[int] = None,
        month: Optional[int] = None,
        department: Optional[str] = None,
        status: Optional[PayrollStatus] = None,
        now: datetime | None = None,
    ) -> dict:
        now = now or now_local()
        self._policy.enforce(identity, Entity.PAYROLL, Action.REPORT)
        year = year or now.year
        if month is not None and not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        if month is None:
            start, end = date(year, 1, 1), date(year, 12, 31)
        else:
            start, end = month_bounds(year, month)

        payrolls = self._payrolls.list_all(
            self._policy.scope_for(identity, Entity.PAYROLL, Action.REPORT),
            PayrollFilters(status=status, period_from=start, period_to=end),
        )
        departments = {
            e.employee_id: e.department for e in self._employees.list_all(Scope.everyone(), EmployeeFilters())
        }
        if department:
            wanted = department.lower()
            payrolls = [p for p in payrolls if (departments.get(p.employee_id) or p.department or "").lower() == wanted]

        report = builders.payroll_report(payrolls, departments)
        report["period"] = {"year": year, "month": month}
        logger.debug("payroll report year=%s month=%s rows=%s user=%s", year, month, len(payrolls), identity.user_id)
        return report

    def employee_performance(
        self,
        identity: Identity,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        employee_id: Optional[int] = None,
        department: Optional[str] = None,
        now: datetime | None = None,
    ) -> dict:
        now = now or now_local()
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.REPORT)
        start, end = _window(start, end, month_bounds(now.year, now.month))

        employees = self._employees.list_all(
            self._policy.scope_for(identity, Entity.EMPLOYEE, Action.REPORT).narrow(employee_id),
            EmployeeFilters(status=EmployeeStatus.ACTIVE, department=department),
        )
        ids = [e.employee_id for e in employees]
        scope = Scope.of(ids)
        report = builders.performance_report(
            employees,
            self._attendance.list_between(scope, start, end),
            self._tasks.list_all(scope, TaskFilters(due_from=start, due_to=end)),
            self._leave.list_all(scope, LeaveFilters(start_from=start, start_to=end)),
            now,
        )
        report["dateRange"] = {"start": start.isoformat(), "end": end.isoformat()}
        return report
