from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_int,
    require_enum,
    require_fields,
    require_max_length,
    require_non_empty,
    string_list,
)
from ..core.constants import LEAVE_REASON_MAX_LENGTH
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .entitlements import build_balance, leave_days
from .model import LeaveFilters, LeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("type", "startDate", "endDate", "reason")


class LeaveService:
    def __init__(self, leave: LeaveRepository, employees: EmployeeRepository, policy: AccessPolicy):
        self._leave = leave
        self._employees = employees
        self._policy = policy

    def apply(self, identity: Identity, payload: Mapping[str, Any], *, now: datetime | None = None) -> LeaveRequest:
        now = now or now_local()
        require_fields(payload, REQUIRED_FIELDS)

        employee_id = optional_int(payload.get("employeeId"), "employeeId")
        if employee_id is None:
            employee_id = identity.employee_id
        if employee_id is None:
            raise ValidationError("No employee record is linked to this account")
        if self._employees.get_by_id(employee_id) is None:
            raise NotFoundError("Employee not found")
        self._policy.enforce(identity, Entity.LEAVE, Action.CREATE, Target.owned_by(employee_id))

        leave_type = require_enum(payload["type"], LeaveType, "type")
        start, end = self._validate_range(payload["startDate"], payload["endDate"], today=now.date())
        reason = self._validate_reason(payload["reason"])
        self._ensure_no_overlap(employee_id, start, end)

        leave_id = self._leave.create(
            {
                "employee_id": employee_id,
                "leave_type": leave_type,
                "start_date": start,
                "end_date": end,
                "days": leave_days(start, end),
                "reason": reason,
                "status": LeaveStatus.PENDING,
                "applied_date": now,
                "documents": string_list(payload.get("documents"), "documents"),
            }
        )
        logger.info("leave applied id=%s employee=%s %s..%s", leave_id, employee_id, start, end)
        return self._require(leave_id)

    def list(
        self,
        identity: Identity,
        filters: LeaveFilters,
        page: PageRequest,
        *,
        employee_id: Optional[int] = None,
    ) -> Page[LeaveRequest]:
        self._policy.enforce(identity, Entity.LEAVE, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.LEAVE).narrow(employee_id)
        return self._leave.list_page(scope, filters, page)

    def get(self, identity: Identity, leave_id: int) -> LeaveRequest:
        request = self._require(leave_id)
        self._policy.enforce(identity, Entity.LEAVE, Action.READ, Target.owned_by(request.employee_id))
        return request

    def update(
        self,
        identity: Identity,
        leave_id: int,
        payload: Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> LeaveRequest:
        """Dispatch on ``action``: approve, reject, cancel, or (absent) edit a pending request."""
        now = now or now_local()
        request = self._require(leave_id)
        target = Target.owned_by(request.employee_id)
        action = payload.get("action")

        if action == "approve":
            self._policy.enforce(identity, Entity.LEAVE, Action.APPROVE, target)
            self._require_pending(request, "approved")
            changes = {"status": LeaveStatus.APPROVED, "approved_by": identity.user_id, "approved_date": now}
        elif action == "reject":
            self._policy.enforce(identity, Entity.LEAVE, Action.REJECT, target)
            self._require_pending(request, "rejected")
            rejection_reason = str(payload.get("rejectionReason") or "").strip()
            if not rejection_reason:
                raise ValidationError("Rejection reason is required")
            changes = {
                "status": LeaveStatus.REJECTED,
                "approved_by": identity.user_id,
                "approved_date": now,
                "rejection_reason": rejection_reason,
            }
        elif action == "cancel":
            self._policy.enforce(identity, Entity.LEAVE, Action.CANCEL, target)
            self._ensure_cancellable(request, today=now.date())
            changes = {"status": LeaveStatus.CANCELLED}
        elif action in (None, ""):
            self._policy.enforce(identity, Entity.LEAVE, Action.UPDATE, target)
            changes = self._edit(request, payload, today=now.date())
        else:
            raise ValidationError("action must be one of: approve, reject, cancel")

        self._leave.update(request.leave_id, changes)
        if action:
            logger.info("leave %s id=%s by user=%s", action, request.leave_id, identity.user_id)
        return self._require(request.leave_id)

    def balance(
        self,
        identity: Identity,
        *,
        employee_id: Optional[int] = None,
        year: Optional[int] = None,
        today: date | None = None,
    ) -> dict:
        today = today or now_local().date()
        employee_id = employee_id if employee_id is not None else identity.employee_id
        if employee_id is None:
            raise ValidationError("No employee record is linked to this account")
        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        self._policy.enforce(identity, Entity.LEAVE, Action.REPORT, Target.owned_by(employee_id))

        year = year or today.year
        requests = self._leave.list_for_employee_year(employee_id, year)
        result = build_balance(requests, hire_date=employee.hire_date, today=today)
        result.update(employeeId=employee_id, employeeName=employee.full_name, year=year)
        return result

    # --- helpers ---------------------------------------------------------

    def _require(self, leave_id: int) -> LeaveRequest:
        request = self._leave.get_by_id(leave_id)
        if request is None:
            raise NotFoundError("Leave request not found")
        return request

    @staticmethod
    def _require_pending(request: LeaveRequest, verb: str) -> None:
        if request.status != LeaveStatus.PENDING:
            raise ValidationError(f"Only pending leave requests can be {verb}")

    @staticmethod
    def _ensure_cancellable(request: LeaveRequest, *, today: date) -> None:
        if request.status == LeaveStatus.PENDING:
            return
        if request.status == LeaveStatus.APPROVED:
            if request.start_date <= today:
                raise ValidationError("Cannot cancel leave that has already started")
            return
        raise ValidationError(f"Cannot cancel a {request.status.value} leave request")

    @staticmethod
    def _validate_range(
        raw_start: Any, raw_end: Any, *, today: date, unchanged_start: Optional[date] = None
    ) -> tuple[date, date]:
        """Parse and order the range; a start kept from the stored request may lie in the past."""
        start = parse_iso_date(str(raw_start))
        end = parse_iso_date(str(raw_end))
        if end <= start:
            raise ValidationError("End date must be after start date")
        if start < today and start != unchanged_start:
            raise ValidationError("Start date cannot be in the past")
        return start, end

    @staticmethod
    def _validate_reason(raw: Any) -> str:
        reason = require_non_empty(raw, "reason")
        require_max_length(reason, "reason", LEAVE_REASON_MAX_LENGTH)
        return reason

    def _ensure_no_overlap(self, employee_id: int, start: date, end: date, *, exclude_id: Optional[int] = None) -> None:
        if self._leave.find_overlapping(employee_id, start, end, exclude_id=exclude_id):
            raise ConflictError("Leave request overlaps with an existing request")

    def _edit(self, request: LeaveRequest, payload: Mapping[str, Any], *, today: date) -> dict[str, Any]:
        if request.status != LeaveStatus.PENDING:
            raise ValidationError("Only pending leave requests can be edited")

        changes: dict[str, Any] = {}
        if "type" in payload:
            changes["leave_type"] = require_enum(payload["type"], LeaveType, "type")
        if "reason" in payload:
            changes["reason"] = self._validate_reason(payload["reason"])
        if "documents" in payload:
            changes["documents"] = string_list(payload["documents"], "documents")
        if "startDate" in payload or "endDate" in payload:
            start, end = self._validate_range(
                payload.get("startDate", request.start_date.isoformat()),
                payload.get("endDate", request.end_date.isoformat()),
                today=today,
                unchanged_start=request.start_date,
            )
            self._ensure_no_overlap(request.employee_id, start, end, exclude_id=request.leave_id)
            changes.update(start_date=start, end_date=end, days=leave_days(start, end))
        return changes
