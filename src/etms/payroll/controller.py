from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, optional_date
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import ok, paged
from ..common.security import api_key_required
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import PAYROLL_PAGE_SIZE
from ..core.enums import PRIVILEGED_ROLES, PayrollStatus
from .model import Payroll, PayrollFilters, RunResult


def serialize_payroll(payroll: Payroll) -> dict:
    b = payroll.breakdown
    return {
        "id": payroll.payroll_id,
        "employeeId": payroll.employee_id,
        "employee": {
            "id": payroll.employee_id,
            "name": payroll.employee_name,
            "employeeCode": payroll.employee_code,
            "department": payroll.department,
        },
        "payPeriod": {"startDate": iso(payroll.period_start), "endDate": iso(payroll.period_end)},
        "basicSalary": b.basic_salary,
        "overtime": {"hours": b.overtime_hours, "rate": b.overtime_rate, "amount": b.overtime_amount},
        "allowances": b.allowances,
        "deductions": b.deductions,
        "grossSalary": b.gross_salary,
        "netSalary": b.net_salary,
        "status": payroll.status.value,
        "processedBy": payroll.processed_by,
        "processedDate": iso(payroll.processed_date),
        "paymentDate": iso(payroll.payment_date),
        "createdAt": iso(payroll.created_at),
    }


def serialize_result(result: RunResult) -> dict:
    return {
        "employeeId": result.employee_id,
        "employeeName": result.employee_name,
        "status": result.status,
        "payrollId": result.payroll_id,
        "message": result.message,
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.payroll_service

    @app.route("/api/payroll/calculate", methods=["POST"], endpoint="calculate_payroll")
    @api_key_required
    @require(*PRIVILEGED_ROLES)
    def calculate_payroll():
        results = service.calculate(current_identity(), json_body())
        return ok(
            [serialize_result(r) for r in results],
            message=f"Payroll calculated for {sum(1 for r in results if r.status == 'success')} employee(s)",
        )

    @app.route("/api/payroll", methods=["GET"], endpoint="list_payroll")
    @require()
    def list_payroll():
        args = request.args
        page = PageRequest.from_args(args, default_limit=PAYROLL_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        status = args.get("status")
        filters = PayrollFilters(
            status=require_enum(status, PayrollStatus, "status") if status else None,
            period_from=optional_date(args.get("startDate")),
            period_to=optional_date(args.get("endDate")),
        )
        result = service.list(
            current_identity(), filters, page, employee_id=optional_int(args.get("employeeId"), "employeeId")
        )
        return paged(result, serialize_payroll)

    @app.route("/api/payroll/stats", methods=["GET"], endpoint="payroll_stats")
    @require(*PRIVILEGED_ROLES)
    def payroll_stats():
        return ok(service.stats(current_identity(), year=optional_int(request.args.get("year"), "year")))

    @app.route("/api/payroll/<int:payroll_id>", methods=["GET"], endpoint="get_payroll")
    @require()
    def get_payroll(payroll_id: int):
        return ok(serialize_payroll(service.get(current_identity(), payroll_id)))

    @app.route("/api/payroll/<int:payroll_id>/status", methods=["PUT"], endpoint="update_payroll_status")
    @require(*PRIVILEGED_ROLES)
    def update_payroll_status(payroll_id: int):
        payroll = service.update_status(current_identity(), payroll_id, json_body().get("status"))
        return ok(serialize_payroll(payroll))
