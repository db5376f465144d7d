from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso
from ..common.http import json_body
from ..common.responses import created, ok
from ..container import Container
from ..core.enums import PRIVILEGED_ROLES, STAFF_ROLES
from .model import Department


def serialize_department(department: Department, *, employee_count: Optional[int] = None) -> dict:
    body = {
        "id": department.department_id,
        "name": department.name,
        "description": department.description,
        "managerId": department.manager_id,
        "budget": department.budget,
        "location": department.location,
        "isActive": department.is_active,
        "createdAt": iso(department.created_at),
    }
    if employee_count is not None:
        body["employeeCount"] = employee_count
    return body


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.department_service

    @app.route("/api/departments", methods=["GET"], endpoint="list_departments")
    @require(*STAFF_ROLES)
    def list_departments():
        include_inactive = request.args.get("includeInactive", "").lower() in {"1", "true", "yes"}
        departments = service.list(current_identity(), include_inactive=include_inactive)
        return ok([serialize_department(d) for d in departments], count=len(departments))

    @app.route("/api/departments/<int:department_id>", methods=["GET"], endpoint="get_department")
    @require(*STAFF_ROLES)
    def get_department(department_id: int):
        department, count = service.get(current_identity(), department_id)
        return ok(serialize_department(department, employee_count=count))

    @app.route("/api/departments", methods=["POST"], endpoint="create_department")
    @require(*PRIVILEGED_ROLES)
    def create_department():
        return created(serialize_department(service.create(current_identity(), json_body())))

    @app.route("/api/departments/<int:department_id>", methods=["PUT"], endpoint="update_department")
    @require(*PRIVILEGED_ROLES)
    def update_department(department_id: int):
        return ok(serialize_department(service.update(current_identity(), department_id, json_body())))

    @app.route("/api/departments/<int:department_id>", methods=["DELETE"], endpoint="delete_department")
    @require(*PRIVILEGED_ROLES)
    def delete_department(department_id: int):
        service.deactivate(current_identity(), department_id)
        return ok(message="Department deactivated successfully")
