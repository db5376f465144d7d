from __future__ import annotations

from flask import Flask, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import optional_date
from ..common.responses import ok
from ..common.security import api_key_required
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.enums import LeaveStatus, LeaveType, PayrollStatus, PRIVILEGED_ROLES, STAFF_ROLES


def _date_range(args) -> dict:
    return {"start": optional_date(args.get("startDate")), "end": optional_date(args.get("endDate"))}


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    reports = container.report_service

    @app.route("/api/reports/dashboard", methods=["GET"], endpoint="dashboard_report")
    @api_key_required
    @require()
    def dashboard_report():
        return ok(reports.dashboard(current_identity()))

    @app.route("/api/reports/attendance", methods=["GET"], endpoint="attendance_report")
    @api_key_required
    @require(*STAFF_ROLES)
    def attendance_report():
        args = request.args
        report = reports.attendance(
            current_identity(),
            employee_id=optional_int(args.get("employeeId"), "employeeId"),
            department=args.get("department") or None,
            detailed=args.get("format") == "detailed",
            **_date_range(args),
        )
        return ok(report)

    @app.route("/api/reports/leaves", methods=["GET"], endpoint="leave_report")
    @api_key_required
    @require(*STAFF_ROLES)
    def leave_report():
        args = request.args
        leave_type, status = args.get("leaveType"), args.get("status")
        report = reports.leaves(
            current_identity(),
            employee_id=optional_int(args.get("employeeId"), "employeeId"),
            leave_type=require_enum(leave_type, LeaveType, "leaveType") if leave_type else None,
            status=require_enum(status, LeaveStatus, "status") if status else None,
            **_date_range(args),
        )
        return ok(report)

    @app.route("/api/reports/payroll", methods=["GET"], endpoint="payroll_report")
    @api_key_required
    @require(*PRIVILEGED_ROLES)
    def payroll_report():
        args = request.args
        status = args.get("status")
        report = reports.payroll(
            current_identity(),
            year=optional_int(args.get("year"), "year"),
            month=optional_int(args.get("month"), "month"),
            department=args.get("department") or None,
            status=require_enum(status, PayrollStatus, "status") if status else None,
        )
        return ok(report)

    @app.route("/api/reports/employee-performance", methods=["GET"], endpoint="employee_performance_report")
    @api_key_required
    @require(*STAFF_ROLES)
    def employee_performance_report():
        args = request.args
        report = reports.employee_performance(
            current_identity(),
            employee_id=optional_int(args.get("employeeId"), "employeeId"),
            department=args.get("department") or None,
            **_date_range(args),
        )
        return ok(report)

    @app.route("/api/reports/tasks", methods=["GET"], endpoint="task_report")
    @api_key_required
    @require(*STAFF_ROLES)
    def task_report():
        report = container.task_service.report(current_identity(), **_date_range(request.args))
        return ok(report)
