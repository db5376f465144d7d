from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..access.policy import AccessPolicy, Action, Entity, Identity
from ..common.validators import optional_int, parse_number, require_fields, require_non_empty
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .model import Department
from .repository import DepartmentRepository

logger = logging.getLogger(__name__)


class DepartmentService:
    def __init__(self, departments: DepartmentRepository, employees: EmployeeRepository, policy: AccessPolicy):
        self._departments = departments
        self._employees = employees
        self._policy = policy

    def list(self, identity: Identity, *, include_inactive: bool = False) -> Sequence[Department]:
        self._policy.enforce(identity, Entity.DEPARTMENT, Action.LIST)
        return self._departments.list_all(include_inactive=include_inactive)

    def get(self, identity: Identity, department_id: int) -> tuple[Department, int]:
        self._policy.enforce(identity, Entity.DEPARTMENT, Action.READ)
        department = self._require(department_id)
        return department, self._employees.count_active_in_department(department.name)

    def create(self, identity: Identity, payload: Mapping[str, Any]) -> Department:
        self._policy.enforce(identity, Entity.DEPARTMENT, Action.CREATE)
        require_fields(payload, ("name",))
        fields = self._clean(payload)
        if self._departments.get_by_name(fields["name"]):
            raise ConflictError("Department with this name already exists")
        department_id = self._departments.create(fields)
        logger.info("department created id=%s name=%s", department_id, fields["name"])
        return self._require(department_id)

    def update(self, identity: Identity, department_id: int, payload: Mapping[str, Any]) -> Department:
        self._policy.enforce(identity, Entity.DEPARTMENT, Action.UPDATE)
        department = self._require(department_id)
        changes = self._clean(payload)
        if "name" in changes and changes["name"] != department.name:
            if self._departments.get_by_name(changes["name"]):
                raise ConflictError("Department with this name already exists")
            if self._employees.count_active_in_department(department.name):
                raise ValidationError("Cannot rename a department that still has active employees")
        self._departments.update(department.department_id, changes)
        return self._require(department.department_id)

    def deactivate(self, identity: Identity, department_id: int) -> None:
        self._policy.enforce(identity, Entity.DEPARTMENT, Action.DELETE)
        department = self._require(department_id)
        active = self._employees.count_active_in_department(department.name)
        if active:
            raise ValidationError(f"Cannot delete department with {active} active employee(s)")
        self._departments.update(department.department_id, {"is_active": False})
        logger.info("department deactivated id=%s", department.department_id)

    def _require(self, department_id: int) -> Department:
        department = self._departments.get_by_id(department_id)
        if department is None:
            raise NotFoundError("Department not found")
        return department

    def _clean(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if "name" in payload:
            fields["name"] = require_non_empty(payload["name"], "name")
        for key in ("description", "location"):
            if key in payload:
                fields[key] = (str(payload[key]).strip() or None) if payload[key] is not None else None
        if "managerId" in payload:
            manager_id = optional_int(payload["managerId"], "managerId")
            if manager_id is not None and self._employees.get_by_id(manager_id) is None:
                raise ValidationError("Manager not found")
            fields["manager_id"] = manager_id
        if "budget" in payload:
            fields["budget"] = parse_number(payload["budget"], "budget", minimum=0) if payload["budget"] is not None else None
        if "isActive" in payload:
            fields["is_active"] = bool(payload["isActive"])
        return fields
