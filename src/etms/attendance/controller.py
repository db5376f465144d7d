from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, optional_date
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import ATTENDANCE_PAGE_SIZE
from ..core.enums import AttendanceAction, AttendanceStatus, STAFF_ROLES
from .model import AttendanceFilters, AttendanceRecord


def serialize_attendance(record: AttendanceRecord) -> dict:
    return {
        "id": record.attendance_id,
        "employeeId": record.employee_id,
        "employee": {
            "id": record.employee_id,
            "name": record.employee_name,
            "employeeCode": record.employee_code,
            "department": record.department,
        },
        "date": iso(record.work_date),
        "checkIn": iso(record.check_in),
        "checkOut": iso(record.check_out),
        "breakStart": iso(record.break_start),
        "breakEnd": iso(record.break_end),
        "status": record.status.value,
        "workingHours": record.working_hours,
        "overtime": record.overtime,
        "notes": record.notes,
        "location": record.location or None,
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.attendance_service

    @app.route("/api/attendance", methods=["POST"], endpoint="record_attendance")
    @require()
    def record_attendance():
        payload = json_body()
        action = require_enum(payload.get("action"), AttendanceAction, "action")
        record = service.record_action(
            current_identity(),
            action=action,
            employee_id=optional_int(payload.get("employeeId"), "employeeId"),
            location=payload.get("location"),
            notes=payload.get("notes"),
        )
        body = serialize_attendance(record)
        if action == AttendanceAction.CHECK_IN:
            return created(body)
        return ok(body)

    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    @require()
    def list_attendance():
        args = request.args
        page = PageRequest.from_args(args, default_limit=ATTENDANCE_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        status = args.get("status")
        filters = AttendanceFilters(
            start_date=optional_date(args.get("startDate")),
            end_date=optional_date(args.get("endDate")),
            status=require_enum(status, AttendanceStatus, "status") if status else None,
        )
        result = service.list(
            current_identity(), filters, page, employee_id=optional_int(args.get("employeeId"), "employeeId")
        )
        return paged(result, serialize_attendance)

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @require(*STAFF_ROLES)
    def attendance_summary():
        data = service.summary(
            current_identity(),
            period=request.args.get("period", "month"),
            employee_id=optional_int(request.args.get("employeeId"), "employeeId"),
        )
        return ok(data)

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="get_attendance")
    @require()
    def get_attendance(attendance_id: int):
        return ok(serialize_attendance(service.get(current_identity(), attendance_id)))

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="update_attendance")
    @require(*STAFF_ROLES)
    def update_attendance(attendance_id: int):
        record = service.correct(current_identity(), attendance_id, json_body())
        return ok(serialize_attendance(record))
