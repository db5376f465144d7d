from __future__ import annotations

import pytest

from etms.common.pagination import PageRequest
from etms.core.enums import EmployeeStatus
from etms.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from etms.employees.model import EmployeeFilters, generate_employee_code


@pytest.fixture
def service(container):
    return container.employee_service


def new_employee(**extra):
    return {
        "firstName": "Nina",
        "lastName": "Park",
        "email": "Nina.Park@etms.com",
        "phone": "+1-555-0199",
        "department": "Engineering",
        "position": "Data Engineer",
        "hireDate": "2025-02-03",
        "salary": 90000,
        "managerId": 3,
        **extra,
    }


def test_generate_employee_code():
    assert generate_employee_code(0) == "EMP0001"
    assert generate_employee_code(41) == "EMP0042"


def test_hr_creates_employee_with_next_code(service, who):
    employee = service.create(who("hr"), new_employee())

    assert employee.employee_code == "EMP0007"
    assert employee.email == "nina.park@etms.com"
    assert employee.address == {"country": "USA"}
    assert employee.status == EmployeeStatus.ACTIVE


def test_duplicate_email_conflicts(service, who):
    service.create(who("hr"), new_employee())

    with pytest.raises(ConflictError):
        service.create(who("hr"), new_employee(firstName="Other"))


def test_missing_field_rejected(service, who):
    payload = new_employee()
    del payload["salary"]

    with pytest.raises(ValidationError, match="salary is required"):
        service.create(who("hr"), payload)


def test_unknown_manager_rejected(service, who):
    with pytest.raises(ValidationError, match="Manager not found"):
        service.create(who("hr"), new_employee(managerId=99))


def test_manager_cannot_create(service, who):
    with pytest.raises(AuthorizationError):
        service.create(who("manager"), new_employee())


def test_manager_lists_team_only(service, who):
    page = service.list(who("manager"), EmployeeFilters(), PageRequest(1, 10), sort_by="firstName", sort_order="asc")

    assert [e.first_name for e in page.records] == ["David", "Emily", "Michael"]
    assert page.total == 3


def test_invalid_sort_field_rejected(service, who):
    with pytest.raises(ValidationError, match="sortBy must be one of"):
        service.list(who("admin"), EmployeeFilters(), PageRequest(1, 10), sort_by="password")


def test_page_past_the_end_is_empty(service, who):
    page = service.list(who("admin"), EmployeeFilters(), PageRequest(page=5, limit=10))

    assert page.records == []
    assert page.total == 6
    assert page.pages == 1


def test_search_respects_scope(service, who):
    assert [e.employee_id for e in service.search(who("manager"), EmployeeFilters(search="laura"), limit=20)] == []
    assert [e.employee_id for e in service.search(who("admin"), EmployeeFilters(search="laura"), limit=20)] == [6]


def test_get_returns_direct_reports(service, who):
    employee, reports = service.get(who("admin"), 3)

    assert employee.full_name == "Michael Brown"
    assert sorted(r.employee_id for r in reports) == [4, 5]


def test_employee_reads_only_self(service, who):
    service.get(who("emily"), 4)

    with pytest.raises(AuthorizationError):
        service.get(who("emily"), 5)


def test_employee_self_update_is_limited(service, who):
    updated = service.update(who("emily"), 4, {"phone": "+1-555-9999", "salary": 1_000_000, "position": "CEO"})

    assert updated.phone == "+1-555-9999"
    assert updated.salary == 85000.0
    assert updated.position == "Software Engineer"


def test_employee_cannot_be_own_manager(service, who):
    with pytest.raises(ValidationError, match="own manager"):
        service.update(who("hr"), 4, {"managerId": 4})


def test_deactivate_terminates_and_disables_login(container, service, who):
    employee = service.deactivate(who("hr"), 5)

    assert employee.status == EmployeeStatus.TERMINATED
    assert container.repos.users.get_by_id(5).is_active is False


def test_missing_employee_is_not_found(service, who):
    with pytest.raises(NotFoundError):
        service.get(who("admin"), 404)


def test_department_stats_for_manager(service, who):
    stats = service.department_stats(who("manager"))

    assert stats["overall"]["totalEmployees"] == 3
    (engineering,) = stats["departments"]
    assert engineering["department"] == "Engineering"
    assert engineering["averageSalary"] == round((120000 + 85000 + 72000) / 3, 2)
