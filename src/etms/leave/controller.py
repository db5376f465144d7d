from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, optional_date
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import LEAVE_PAGE_SIZE
from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveFilters, LeaveRequest


def serialize_leave(leave: LeaveRequest) -> dict:
    return {
        "id": leave.leave_id,
        "employeeId": leave.employee_id,
        "employee": {
            "id": leave.employee_id,
            "name": leave.employee_name,
            "employeeCode": leave.employee_code,
            "department": leave.department,
        },
        "type": leave.leave_type.value,
        "startDate": iso(leave.start_date),
        "endDate": iso(leave.end_date),
        "days": leave.days,
        "reason": leave.reason,
        "status": leave.status.value,
        "appliedDate": iso(leave.applied_date),
        "approvedBy": leave.approved_by,
        "approvedDate": iso(leave.approved_date),
        "rejectionReason": leave.rejection_reason,
        "documents": list(leave.documents),
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.leave_service

    @app.route("/api/leave", methods=["POST"], endpoint="apply_leave")
    @require()
    def apply_leave():
        return created(serialize_leave(service.apply(current_identity(), json_body())))

    @app.route("/api/leave", methods=["GET"], endpoint="list_leave")
    @require()
    def list_leave():
        args = request.args
        page = PageRequest.from_args(args, default_limit=LEAVE_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        status = args.get("status")
        leave_type = args.get("type")
        filters = LeaveFilters(
            status=require_enum(status, LeaveStatus, "status") if status else None,
            leave_type=require_enum(leave_type, LeaveType, "type") if leave_type else None,
            start_from=optional_date(args.get("startDate")),
            start_to=optional_date(args.get("endDate")),
        )
        result = service.list(
            current_identity(), filters, page, employee_id=optional_int(args.get("employeeId"), "employeeId")
        )
        return paged(result, serialize_leave)

    @app.route("/api/leave/balance", methods=["GET"], endpoint="leave_balance")
    @require()
    def leave_balance():
        data = service.balance(
            current_identity(),
            employee_id=optional_int(request.args.get("employeeId"), "employeeId"),
            year=optional_int(request.args.get("year"), "year"),
        )
        data["pending"] = [serialize_leave(r) for r in data["pending"]]
        return ok(data)

    @app.route("/api/leave/<int:leave_id>", methods=["GET"], endpoint="get_leave")
    @require()
    def get_leave(leave_id: int):
        return ok(serialize_leave(service.get(current_identity(), leave_id)))

    @app.route("/api/leave/<int:leave_id>", methods=["PUT"], endpoint="update_leave")
    @require()
    def update_leave(leave_id: int):
        return ok(serialize_leave(service.update(current_identity(), leave_id, json_body())))
