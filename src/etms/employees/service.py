from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Mapping, Optional, Sequence

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..auth.repository import UserRepository
from ..common.datetime_utils import parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_int,
    parse_number,
    require_enum,
    require_fields,
    require_non_empty,
    string_list,
)
from ..core.constants import DEFAULT_COUNTRY
from ..core.enums import EmployeeStatus, Role
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import SORTABLE_FIELDS, Employee, EmployeeFilters, generate_employee_code
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("firstName", "lastName", "email", "phone", "department", "position", "hireDate", "salary")
SELF_SERVICE_FIELDS = frozenset({"phone", "address", "emergencyContact", "skills"})

# wire key -> column
_TEXT_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "department": "department",
    "position": "position",
    "notes": "notes",
}


def _clean_address(value: Any) -> dict:
    if not isinstance(value, Mapping):
        raise ValidationError("address must be an object")
    address = {key: str(value[key]).strip() for key in ("street", "city", "state", "zipCode", "country") if value.get(key)}
    address.setdefault("country", DEFAULT_COUNTRY)
    return address


def _clean_contact(value: Any) -> dict:
    if not isinstance(value, Mapping):
        raise ValidationError("emergencyContact must be an object")
    return {key: str(value[key]).strip() for key in ("name", "relationship", "phone") if value.get(key)}


def _clean_email(value: Any) -> str:
    email = require_non_empty(value, "email").lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Please enter a valid email")
    return email


class EmployeeService:
    def __init__(self, employees: EmployeeRepository, users: UserRepository, policy: AccessPolicy):
        self._employees = employees
        self._users = users
        self._policy = policy

    # --- reads -----------------------------------------------------------

    def list(
        self,
        identity: Identity,
        filters: EmployeeFilters,
        page: PageRequest,
        *,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> Page[Employee]:
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.LIST)
        column = SORTABLE_FIELDS.get(sort_by or "createdAt")
        if column is None:
            raise ValidationError(f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}")
        scope = self._policy.scope_for(identity, Entity.EMPLOYEE)
        return self._employees.list_page(
            scope, filters, page, sort_by=column, descending=(sort_order or "desc").lower() != "asc"
        )

    def search(self, identity: Identity, filters: EmployeeFilters, *, limit: int) -> Sequence[Employee]:
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.LIST)
        page = self._employees.list_page(
            self._policy.scope_for(identity, Entity.EMPLOYEE),
            filters,
            PageRequest(page=1, limit=limit),
            sort_by="first_name",
            descending=False,
        )
        return page.records

    def get(self, identity: Identity, employee_id: int) -> tuple[Employee, Sequence[Employee]]:
        employee = self._require(employee_id)
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.READ, Target.owned_by(employee.employee_id))
        return employee, self._employees.list_direct_reports(employee.employee_id)

    def department_stats(self, identity: Identity) -> dict:
        """Per-department headcount and salary figures over the caller's visible employees."""
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.REPORT)
        employees = self._employees.list_all(self._policy.scope_for(identity, Entity.EMPLOYEE), EmployeeFilters())

        by_department: dict[str, list[Employee]] = defaultdict(list)
        for employee in employees:
            if employee.is_active:
                by_department[employee.department].append(employee)

        departments = []
        for name in sorted(by_department):
            members = by_department[name]
            departments.append(
                {
                    "department": name,
                    "count": len(members),
                    "averageSalary": round(sum(e.salary for e in members) / len(members), 2),
                    "positions": sorted({e.position for e in members}),
                }
            )

        totals = {status.value: 0 for status in EmployeeStatus}
        for employee in employees:
            totals[employee.status.value] += 1

        return {
            "departments": departments,
            "overall": {
                "totalEmployees": len(employees),
                "byStatus": totals,
                "totalSalaryBudget": round(sum(e.salary for e in employees if e.is_active), 2),
            },
        }

    # --- writes ----------------------------------------------------------

    def create(self, identity: Identity, payload: Mapping[str, Any]) -> Employee:
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.CREATE)
        employee = self.create_profile(payload)
        logger.info("employee created id=%s code=%s by user=%s", employee.employee_id, employee.employee_code, identity.user_id)
        return employee

    def create_profile(self, payload: Mapping[str, Any], *, email: Optional[str] = None) -> Employee:
        """Validate and store a new employee record. Authorization is the caller's job."""
        data = dict(payload)
        if email:
            data["email"] = email
        require_fields(data, REQUIRED_FIELDS)

        fields = self._clean(data)
        fields.setdefault("status", EmployeeStatus.ACTIVE)
        fields.setdefault("address", {"country": DEFAULT_COUNTRY})

        if self._employees.get_by_email(fields["email"]):
            raise ConflictError("Employee with this email already exists")

        code = str(data.get("employeeCode") or "").strip() or generate_employee_code(self._employees.count())
        employee_id = self._employees.create(employee_code=code, fields=fields)
        return self._require(employee_id)

    def update(self, identity: Identity, employee_id: int, payload: Mapping[str, Any]) -> Employee:
        employee = self._require(employee_id)
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.UPDATE, Target.owned_by(employee.employee_id))

        data = dict(payload)
        if identity.role == Role.EMPLOYEE:
            data = {key: value for key, value in data.items() if key in SELF_SERVICE_FIELDS}
        data.pop("employeeCode", None)

        changes = self._clean(data)
        if "email" in changes and changes["email"] != employee.email:
            existing = self._employees.get_by_email(changes["email"])
            if existing and existing.employee_id != employee.employee_id:
                raise ConflictError("Employee with this email already exists")
        if changes.get("manager_id") == employee.employee_id:
            raise ValidationError("An employee cannot be their own manager")

        if changes:
            self._employees.update(employee.employee_id, changes)
        return self._require(employee.employee_id)

    def deactivate(self, identity: Identity, employee_id: int) -> Employee:
        employee = self._require(employee_id)
        self._policy.enforce(identity, Entity.EMPLOYEE, Action.DELETE, Target.owned_by(employee.employee_id))
        self._employees.update(employee.employee_id, {"status": EmployeeStatus.TERMINATED})
        self._users.set_active_for_employee(employee.employee_id, is_active=False)
        logger.info("employee deactivated id=%s by user=%s", employee.employee_id, identity.user_id)
        return self._require(employee.employee_id)

    # --- helpers ---------------------------------------------------------

    def _require(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    def _clean(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate present wire fields and map them to columns."""
        fields: dict[str, Any] = {}
        for key, column in _TEXT_FIELDS.items():
            if key in data:
                value = data[key]
                fields[column] = None if value is None and key == "notes" else require_non_empty(value, key)
        if "email" in data:
            fields["email"] = _clean_email(data["email"])
        if "hireDate" in data:
            fields["hire_date"] = parse_iso_date(str(data["hireDate"]))
        if "salary" in data:
            fields["salary"] = parse_number(data["salary"], "salary", minimum=0)
        if "status" in data:
            fields["status"] = require_enum(data["status"], EmployeeStatus, "status")
        if "managerId" in data:
            manager_id = optional_int(data["managerId"], "managerId")
            if manager_id is not None and self._employees.get_by_id(manager_id) is None:
                raise ValidationError("Manager not found")
            fields["manager_id"] = manager_id
        if "address" in data:
            fields["address"] = _clean_address(data["address"] or {})
        if "emergencyContact" in data:
            fields["emergency_contact"] = _clean_contact(data["emergencyContact"] or {})
        if "skills" in data:
            fields["skills"] = string_list(data["skills"], "skills")
        return fields
