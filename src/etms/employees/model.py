from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.constants import EMPLOYEE_CODE_PREFIX
from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    employee_id: int
    employee_code: str
    first_name: str
    last_name: str
    email: str
    phone: str
    department: str
    position: str
    hire_date: date
    salary: float
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    manager_id: Optional[int] = None
    address: dict[str, Any] = field(default_factory=dict)
    emergency_contact: dict[str, Any] = field(default_factory=dict)
    skills: tuple[str, ...] = ()
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    manager_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE


@dataclass(frozen=True)
class EmployeeFilters:
    """Criteria shared by the list and search endpoints. Empty fields are ignored."""

    search: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    status: Optional[EmployeeStatus] = None
    skills: tuple[str, ...] = ()
    hired_from: Optional[date] = None
    hired_to: Optional[date] = None
    min_salary: Optional[float] = None
    max_salary: Optional[float] = None

    def matches(self, employee: Employee) -> bool:
        if self.search:
            needle = self.search.lower()
            haystack = (
                employee.first_name,
                employee.last_name,
                employee.email,
                employee.employee_code,
                employee.position,
            )
            if not any(needle in (value or "").lower() for value in haystack):
                return False
        if self.department and employee.department != self.department:
            return False
        if self.position and self.position.lower() not in employee.position.lower():
            return False
        if self.status and employee.status != self.status:
            return False
        if self.skills and not set(s.lower() for s in self.skills) & set(s.lower() for s in employee.skills):
            return False
        if self.hired_from and employee.hire_date < self.hired_from:
            return False
        if self.hired_to and employee.hire_date > self.hired_to:
            return False
        if self.min_salary is not None and employee.salary < self.min_salary:
            return False
        if self.max_salary is not None and employee.salary > self.max_salary:
            return False
        return True


SORTABLE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "employeeCode": "employee_code",
    "department": "department",
    "position": "position",
    "hireDate": "hire_date",
    "salary": "salary",
    "status": "status",
    "createdAt": "created_at",
}


def generate_employee_code(existing_count: int) -> str:
    """Next sequential code, e.g. 0 existing -> EMP0001."""
    return f"{EMPLOYEE_CODE_PREFIX}{existing_count + 1:04d}"
