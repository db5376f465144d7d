from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..common.datetime_utils import now_local, optional_datetime, parse_clock
from ..common.pagination import Page, PageRequest
from ..common.validators import require_enum
from ..core.constants import DEFAULT_LATE_CUTOFF, DEFAULT_STANDARD_WORK_HOURS
from ..core.enums import AttendanceAction, AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .calculator import compute_hours
from .factory import AttendanceStrategyFactory
from .model import AttendanceFilters, AttendanceRecord
from .repository import AttendanceRepository
from .summary import daily_trends, employee_summary, period_start, status_statistics

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        policy: AccessPolicy,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        late_cutoff: str = DEFAULT_LATE_CUTOFF,
        standard_hours: float = DEFAULT_STANDARD_WORK_HOURS,
    ):
        self._attendance = attendance
        self._employees = employees
        self._policy = policy
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._late_cutoff = parse_clock(late_cutoff)
        self._standard_hours = float(standard_hours)

    def record_action(
        self,
        identity: Identity,
        *,
        action: Any,
        employee_id: Optional[int] = None,
        location: Optional[Mapping[str, Any]] = None,
        notes: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        action = require_enum(action, AttendanceAction, "action")
        now = now or now_local()
        today = now.date()

        employee_id = employee_id if employee_id is not None else identity.employee_id
        if employee_id is None:
            raise ValidationError("No employee record is linked to this account")
        if self._employees.get_by_id(employee_id) is None:
            raise NotFoundError("Employee not found")
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.CREATE, Target.owned_by(employee_id))

        record = self._attendance.get_for_employee_and_date(employee_id, today)

        if action == AttendanceAction.CHECK_IN:
            return self._check_in(employee_id, record, now=now, location=location, notes=notes)

        if record is None or record.check_in is None:
            raise ValidationError("Please check in first")
        if record.check_out is not None:
            raise ValidationError("Already checked out today")

        changes: dict[str, Any] = {}
        if action == AttendanceAction.CHECK_OUT:
            break_end = now if record.on_break else record.break_end
            hours, overtime = compute_hours(
                record.check_in, now, record.break_start, break_end, standard_hours=self._standard_hours
            )
            changes = {"check_out": now, "break_end": break_end, "working_hours": hours, "overtime": overtime}
        elif action == AttendanceAction.BREAK_START:
            if record.break_start is not None:
                raise ValidationError("Break already started today")
            changes = {"break_start": now}
        elif action == AttendanceAction.BREAK_END:
            if record.break_start is None:
                raise ValidationError("Break not started")
            if record.break_end is not None:
                raise ValidationError("Break already ended")
            changes = {"break_end": now}

        if notes:
            changes["notes"] = notes
        self._attendance.update(record.attendance_id, changes)
        logger.info("attendance %s employee=%s date=%s by user=%s", action.value, employee_id, today, identity.user_id)
        return self._require(record.attendance_id)

    def _check_in(
        self,
        employee_id: int,
        record: Optional[AttendanceRecord],
        *,
        now: datetime,
        location: Optional[Mapping[str, Any]],
        notes: Optional[str],
    ) -> AttendanceRecord:
        if record is not None and record.check_in is not None:
            raise ValidationError("Already checked in today")

        strategy = self._factory.for_checkin(now=now, late_cutoff=self._late_cutoff)
        decision = strategy.decide_checkin(now=now, late_cutoff=self._late_cutoff)

        if record is not None:
            # a record prepared earlier (e.g. marked absent) is turned into a check-in
            self._attendance.update(
                record.attendance_id,
                {"check_in": now, "status": decision.status, "notes": notes or decision.note, "location": dict(location or {})},
            )
            attendance_id = record.attendance_id
        else:
            attendance_id = self._attendance.create_checkin(
                employee_id=employee_id,
                work_date=now.date(),
                check_in=now,
                status=decision.status,
                notes=notes or decision.note,
                location=dict(location or {}),
            )
        logger.info("attendance check_in employee=%s status=%s", employee_id, decision.status.value)
        return self._require(attendance_id)

    def list(
        self,
        identity: Identity,
        filters: AttendanceFilters,
        page: PageRequest,
        *,
        employee_id: Optional[int] = None,
    ) -> Page[AttendanceRecord]:
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.ATTENDANCE).narrow(employee_id)
        return self._attendance.list_page(scope, filters, page)

    def get(self, identity: Identity, attendance_id: int) -> AttendanceRecord:
        record = self._require(attendance_id)
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.READ, Target.owned_by(record.employee_id))
        return record

    def correct(self, identity: Identity, attendance_id: int, payload: Mapping[str, Any]) -> AttendanceRecord:
        """Manual correction of times, status or notes; derived hours are recomputed."""
        record = self._require(attendance_id)
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.UPDATE, Target.owned_by(record.employee_id))

        changes: dict[str, Any] = {}
        for key, column in (("checkIn", "check_in"), ("checkOut", "check_out"), ("breakStart", "break_start"), ("breakEnd", "break_end")):
            if key in payload:
                changes[column] = optional_datetime(payload[key])
        if "status" in payload:
            changes["status"] = require_enum(payload["status"], AttendanceStatus, "status")
        if "notes" in payload:
            changes["notes"] = payload["notes"]

        check_in = changes.get("check_in", record.check_in)
        check_out = changes.get("check_out", record.check_out)
        if check_in and check_out and check_out <= check_in:
            raise ValidationError("checkOut must be after checkIn")

        hours, overtime = compute_hours(
            check_in,
            check_out,
            changes.get("break_start", record.break_start),
            changes.get("break_end", record.break_end),
            standard_hours=self._standard_hours,
        )
        changes.update(working_hours=hours, overtime=overtime)
        self._attendance.update(record.attendance_id, changes)
        logger.info("attendance corrected id=%s by user=%s", record.attendance_id, identity.user_id)
        return self._require(record.attendance_id)

    def summary(
        self,
        identity: Identity,
        *,
        period: str = "month",
        employee_id: Optional[int] = None,
        today: date | None = None,
    ) -> dict:
        self._policy.enforce(identity, Entity.ATTENDANCE, Action.REPORT)
        today = today or now_local().date()
        start = period_start(period, today)
        scope = self._policy.scope_for(identity, Entity.ATTENDANCE, Action.REPORT).narrow(employee_id)
        records = self._attendance.list_between(scope, start, today)
        return {
            "period": period,
            "dateRange": {"start": start.isoformat(), "end": today.isoformat()},
            "statistics": status_statistics(records),
            "dailyTrends": daily_trends(records),
            "employeeSummary": employee_summary(records),
        }

    def _require(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(attendance_id)
        if record is None:
            raise NotFoundError("Attendance record not found")
        return record
