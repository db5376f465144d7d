from __future__ import annotations

from datetime import date, datetime

import mysql.connector
import pytest

from etms.attendance.model import AttendanceRecord
from etms.common.pagination import PageRequest
from etms.core.enums import AttendanceStatus, EmployeeStatus, PayrollStatus
from etms.core.exceptions import AuthorizationError, ConflictError, ValidationError
from etms.payroll.model import PayrollFilters
from etms.payroll.service import PayrollService

PERIOD = {"payPeriodStart": "2025-01-01", "payPeriodEnd": "2025-01-30"}


@pytest.fixture
def service(container):
    return container.payroll_service


def test_run_for_all_active_employees(container, service, who):
    container.repos.employees.update(6, {"status": EmployeeStatus.TERMINATED})

    results = service.calculate(who("hr"), PERIOD)

    assert sorted(r.employee_id for r in results) == [1, 2, 3, 4, 5]
    assert {r.status for r in results} == {"success"}


def test_existing_period_is_skipped(service, who):
    service.calculate(who("hr"), {**PERIOD, "employeeId": 4})

    (result,) = service.calculate(who("hr"), {**PERIOD, "employeeId": 4})

    assert result.status == "skipped"
    assert result.payroll_id is None


class RacingPayrolls:
    """Stored periods look free, but the insert loses for some employees."""

    def __init__(self, inner, *, conflict_for=(), broken_for=()):
        self._inner = inner
        self._conflict_for = set(conflict_for)
        self._broken_for = set(broken_for)

    def exists_for_period(self, employee_id, period_start, period_end):
        return False

    def create(self, *, employee_id, **kwargs):
        if employee_id in self._conflict_for:
            raise ConflictError("Payroll already exists for this period")
        if employee_id in self._broken_for:
            raise mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=1452)
        return self._inner.create(employee_id=employee_id, **kwargs)


def test_lost_insert_race_is_skipped_and_batch_continues(container, who):
    payrolls = RacingPayrolls(container.repos.payrolls, conflict_for={4}, broken_for={5})
    service = PayrollService(payrolls, container.repos.employees, container.repos.attendance, container.policy)

    results = {r.employee_id: r for r in service.calculate(who("hr"), PERIOD)}

    assert results[4].status == "skipped"
    assert results[5].status == "error"
    assert results[5].message == "Cannot add or update a child row"
    assert {results[i].status for i in (1, 2, 3, 6)} == {"success"}


def test_overtime_comes_from_attendance(container, service, who):
    container.repos.attendance.add(
        AttendanceRecord(
            attendance_id=1,
            employee_id=4,
            work_date=date(2025, 1, 6),
            status=AttendanceStatus.PRESENT,
            working_hours=10.0,
            overtime=2.0,
        )
    )

    (result,) = service.calculate(who("admin"), {**PERIOD, "employeeId": 4})

    payroll = service.get(who("admin"), result.payroll_id)
    assert payroll.breakdown.overtime_hours == 2.0
    assert payroll.status == PayrollStatus.DRAFT


def test_inverted_period_rejected(service, who):
    with pytest.raises(ValidationError):
        service.calculate(who("hr"), {"payPeriodStart": "2025-02-01", "payPeriodEnd": "2025-01-01"})


def test_manager_cannot_run_payroll(service, who):
    with pytest.raises(AuthorizationError):
        service.calculate(who("manager"), PERIOD)


def test_status_moves_forward_only(service, who):
    (result,) = service.calculate(who("hr"), {**PERIOD, "employeeId": 5})
    now = datetime(2025, 2, 1, 9, 0)

    with pytest.raises(ValidationError, match="from 'draft' to 'paid'"):
        service.update_status(who("hr"), result.payroll_id, "paid", now=now)

    processed = service.update_status(who("hr"), result.payroll_id, "processed", now=now)
    assert processed.processed_by == who("hr").user_id
    assert processed.processed_date == now

    paid = service.update_status(who("hr"), result.payroll_id, "paid", now=now)
    assert paid.payment_date == now

    with pytest.raises(ValidationError):
        service.update_status(who("hr"), result.payroll_id, "draft", now=now)


def test_list_scope(service, who):
    service.calculate(who("hr"), PERIOD)

    def owners(identity, **kwargs):
        return sorted(p.employee_id for p in service.list(identity, PayrollFilters(), PageRequest(1, 20), **kwargs).records)

    assert owners(who("hr")) == [1, 2, 3, 4, 5, 6]
    assert owners(who("manager")) == [3, 4, 5]
    assert owners(who("emily")) == [4]
    assert owners(who("emily"), employee_id=5) == []


def test_employee_cannot_read_colleague_payslip(service, who):
    (result,) = service.calculate(who("hr"), {**PERIOD, "employeeId": 5})

    with pytest.raises(AuthorizationError):
        service.get(who("emily"), result.payroll_id)


def test_stats_totals(service, who):
    results = service.calculate(who("hr"), PERIOD)
    service.update_status(who("hr"), results[0].payroll_id, "processed")

    stats = service.stats(who("admin"))

    assert stats["totalPayrolls"] == 6
    by_status = {row["status"]: row["count"] for row in stats["byStatus"]}
    assert by_status == {"draft": 5, "processed": 1}
