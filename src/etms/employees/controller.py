from __future__ import annotations

from typing import Optional, Sequence

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, optional_date
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import parse_number, require_enum, string_list
from ..core.constants import EMPLOYEES_PAGE_SIZE, SEARCH_LIMIT
from ..core.enums import EmployeeStatus, PRIVILEGED_ROLES, STAFF_ROLES
from ..container import Container
from .model import Employee, EmployeeFilters


def serialize_employee_summary(employee: Employee) -> dict:
    return {
        "id": employee.employee_id,
        "employeeCode": employee.employee_code,
        "fullName": employee.full_name,
        "email": employee.email,
        "department": employee.department,
        "position": employee.position,
    }


def serialize_employee(employee: Employee, *, direct_reports: Optional[Sequence[Employee]] = None) -> dict:
    body = {
        "id": employee.employee_id,
        "employeeCode": employee.employee_code,
        "firstName": employee.first_name,
        "lastName": employee.last_name,
        "fullName": employee.full_name,
        "email": employee.email,
        "phone": employee.phone,
        "department": employee.department,
        "position": employee.position,
        "managerId": employee.manager_id,
        "managerName": employee.manager_name,
        "hireDate": iso(employee.hire_date),
        "salary": employee.salary,
        "status": employee.status.value,
        "address": employee.address,
        "emergencyContact": employee.emergency_contact,
        "skills": list(employee.skills),
        "notes": employee.notes,
        "createdAt": iso(employee.created_at),
    }
    if direct_reports is not None:
        body["directReports"] = [serialize_employee_summary(e) for e in direct_reports]
    return body


def _optional_number(name: str) -> Optional[float]:
    raw = request.args.get(name)
    return parse_number(raw, name) if raw not in (None, "") else None


def _filters_from_args() -> EmployeeFilters:
    args = request.args
    status = args.get("status")
    return EmployeeFilters(
        search=(args.get("search") or args.get("q") or "").strip() or None,
        department=args.get("department") or None,
        position=args.get("position") or None,
        status=require_enum(status, EmployeeStatus, "status") if status else None,
        skills=tuple(string_list(args.get("skills"), "skills")),
        hired_from=optional_date(args.get("hireDateFrom")),
        hired_to=optional_date(args.get("hireDateTo")),
        min_salary=_optional_number("minSalary"),
        max_salary=_optional_number("maxSalary"),
    )


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.employee_service

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    @require(*STAFF_ROLES)
    def list_employees():
        page = PageRequest.from_args(
            request.args,
            default_limit=EMPLOYEES_PAGE_SIZE,
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        result = service.list(
            current_identity(),
            _filters_from_args(),
            page,
            sort_by=request.args.get("sortBy"),
            sort_order=request.args.get("sortOrder"),
        )
        return paged(result, serialize_employee)

    @app.route("/api/employees/search", methods=["GET"], endpoint="search_employees")
    @require(*STAFF_ROLES)
    def search_employees():
        limit = PageRequest.from_args(
            request.args, default_limit=SEARCH_LIMIT, max_limit=current_app.config["MAX_PAGE_SIZE"]
        ).limit
        employees = service.search(current_identity(), _filters_from_args(), limit=limit)
        return ok([serialize_employee(e) for e in employees], count=len(employees))

    @app.route("/api/employees/departments", methods=["GET"], endpoint="employee_department_stats")
    @require(*STAFF_ROLES)
    def employee_department_stats():
        return ok(service.department_stats(current_identity()))

    @app.route("/api/employees", methods=["POST"], endpoint="create_employee")
    @require(*PRIVILEGED_ROLES)
    def create_employee():
        employee = service.create(current_identity(), json_body())
        return created(serialize_employee(employee))

    @app.route("/api/employees/<int:employee_id>", methods=["GET"], endpoint="get_employee")
    @require()
    def get_employee(employee_id: int):
        employee, reports = service.get(current_identity(), employee_id)
        return ok(serialize_employee(employee, direct_reports=reports))

    @app.route("/api/employees/<int:employee_id>", methods=["PUT"], endpoint="update_employee")
    @require()
    def update_employee(employee_id: int):
        employee = service.update(current_identity(), employee_id, json_body())
        return ok(serialize_employee(employee))

    @app.route("/api/employees/<int:employee_id>", methods=["DELETE"], endpoint="delete_employee")
    @require(*PRIVILEGED_ROLES)
    def delete_employee(employee_id: int):
        service.deactivate(current_identity(), employee_id)
        return ok(message="Employee deactivated successfully")
