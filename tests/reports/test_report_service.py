from __future__ import annotations

from datetime import date, datetime

import pytest

from etms.attendance.model import AttendanceRecord
from etms.core.enums import AttendanceStatus, LeaveStatus, LeaveType
from etms.core.exceptions import AuthorizationError, ValidationError
from etms.payroll.model import PayrollBreakdown

NOW = datetime(2025, 3, 12, 10, 0)


@pytest.fixture
def service(container):
    return container.report_service


@pytest.fixture
def org(container, who):
    """A month of activity for the demo organisation."""
    attendance = container.repos.attendance
    rows = [
        (4, date(2025, 3, 3), AttendanceStatus.PRESENT, 8.0, 0.0),
        (4, date(2025, 3, 4), AttendanceStatus.LATE, 8.5, 0.5),
        (4, date(2025, 3, 5), AttendanceStatus.ABSENT, 0.0, 0.0),
        (5, date(2025, 3, 3), AttendanceStatus.PRESENT, 9.0, 1.0),
        (6, date(2025, 3, 3), AttendanceStatus.PRESENT, 8.0, 0.0),
    ]
    for i, (employee_id, day, status, hours, overtime) in enumerate(rows, start=1):
        checked_in = status != AttendanceStatus.ABSENT
        attendance.add(
            AttendanceRecord(
                attendance_id=i,
                employee_id=employee_id,
                work_date=day,
                status=status,
                check_in=datetime.combine(day, datetime.min.time()).replace(hour=9) if checked_in else None,
                check_out=datetime.combine(day, datetime.min.time()).replace(hour=18) if checked_in else None,
                working_hours=hours,
                overtime=overtime,
            )
        )
    attendance.add(
        AttendanceRecord(
            attendance_id=10,
            employee_id=3,
            work_date=NOW.date(),
            status=AttendanceStatus.PRESENT,
            check_in=NOW.replace(hour=9),
            break_start=NOW.replace(hour=9, minute=45),
        )
    )

    leave = container.repos.leave
    for employee_id, start, days, leave_type, status in [
        (4, date(2025, 3, 20), 2, LeaveType.ANNUAL, LeaveStatus.PENDING),
        (5, date(2025, 3, 24), 3, LeaveType.SICK, LeaveStatus.APPROVED),
        (6, date(2025, 2, 10), 1, LeaveType.PERSONAL, LeaveStatus.REJECTED),
    ]:
        leave.create(
            {
                "employee_id": employee_id,
                "leave_type": leave_type,
                "start_date": start,
                "end_date": date(start.year, start.month, start.day + days - 1),
                "days": days,
                "reason": "Family matters",
                "status": status,
            }
        )

    tasks = container.task_service
    base = {"description": "Sprint work", "startDate": "2025-03-03", "estimatedHours": 5}
    tasks.create(who("manager"), {**base, "title": "Timesheet export", "assignedTo": [4], "dueDate": "2025-03-14"}, now=NOW)
    late = tasks.create(who("manager"), {**base, "title": "Regression pass", "assignedTo": [5], "dueDate": "2025-03-10"}, now=NOW)
    return {"overdue_task": late}


def breakdown(gross, net):
    return PayrollBreakdown(
        basic_salary=gross,
        overtime_hours=0.0,
        overtime_rate=0.0,
        overtime_amount=0.0,
        allowances={},
        deductions={"tax": gross - net},
        gross_salary=gross,
        net_salary=net,
    )


def test_manager_dashboard_counts_team(service, org, who):
    data = service.dashboard(who("manager"), now=NOW)

    assert data["overview"] == {"totalEmployees": 3, "totalDepartments": 0, "todayPresent": 1, "onBreak": 1}
    assert data["tasks"] == {"total": 2, "todo": 2, "inProgress": 0, "completed": 0, "overdue": 1}
    assert data["leaves"] == {"total": 2, "pending": 1, "approved": 1, "rejected": 0}
    assert [a["title"] for a in data["recentActivities"]] == ["Regression pass", "Timesheet export"]


def test_employee_dashboard_is_own_and_has_no_activity_feed(container, service, org, who):
    container.repos.departments.create({"name": "Engineering"})

    data = service.dashboard(who("emily"), now=NOW)

    assert data["overview"]["totalEmployees"] == 1
    assert data["overview"]["totalDepartments"] == 0
    assert data["overview"]["todayPresent"] == 0
    assert data["tasks"]["total"] == 1
    assert data["leaves"]["total"] == 1
    assert data["recentActivities"] == []

    assert service.dashboard(who("hr"), now=NOW)["overview"]["totalDepartments"] == 1


def test_attendance_report_for_the_month(service, org, who):
    report = service.attendance(who("manager"), now=NOW)

    assert report["dateRange"] == {"start": "2025-03-01", "end": "2025-03-31"}
    rows = {row["employeeId"]: row for row in report["report"]}
    assert sorted(rows) == [3, 4, 5]
    assert rows[4]["presentDays"] == 1
    assert rows[4]["lateDays"] == 1
    assert rows[4]["absentDays"] == 1
    assert rows[4]["totalHours"] == 16.5
    assert rows[4]["overtimeHours"] == 0.5
    assert rows[4]["attendancePercentage"] == 33.33
    assert "records" not in rows[4]
    assert report["summary"]["totalEmployees"] == 3
    assert report["summary"]["totalOvertimeHours"] == 1.5


def test_attendance_report_detailed_and_filtered(service, org, who):
    report = service.attendance(who("hr"), department="Sales", detailed=True, now=NOW)

    (row,) = report["report"]
    assert row["employeeName"] == "Laura Martinez"
    assert [r["date"] for r in row["records"]] == ["2025-03-03"]


def test_attendance_report_is_staff_only(service, who):
    with pytest.raises(AuthorizationError):
        service.attendance(who("emily"), now=NOW)


def test_leave_report_for_the_year(service, org, who):
    report = service.leaves(who("hr"), now=NOW)

    assert report["dateRange"] == {"start": "2025-01-01", "end": "2025-12-31"}
    assert report["statistics"] == {
        "total": 3,
        "approved": 1,
        "pending": 1,
        "rejected": 1,
        "cancelled": 0,
        "totalDays": 3,
    }
    assert report["typeBreakdown"]["sick"] == {"count": 1, "days": 3}
    assert report["typeBreakdown"]["annual"] == {"count": 1, "days": 0}
    david = next(s for s in report["employeeSummary"] if s["employeeId"] == 5)
    assert david["employeeName"] == "David Wilson"
    assert david["byType"] == {"sick": 3}


def test_manager_leave_report_excludes_other_teams(service, org, who):
    report = service.leaves(who("manager"), now=NOW)

    assert {s["employeeId"] for s in report["employeeSummary"]} == {4, 5}


def test_payroll_report_totals_and_departments(container, service, who):
    payrolls = container.repos.payrolls
    payrolls.create(employee_id=4, period_start=date(2025, 2, 1), period_end=date(2025, 2, 28), breakdown=breakdown(1000.0, 800.0))
    payrolls.create(employee_id=6, period_start=date(2025, 2, 1), period_end=date(2025, 2, 28), breakdown=breakdown(2000.0, 1500.0))

    report = service.payroll(who("hr"), now=NOW)

    assert report["summary"] == {
        "totalEmployees": 2,
        "totalGrossSalary": 3000.0,
        "totalNetSalary": 2300.0,
        "totalDeductions": 700.0,
        "averageGrossSalary": 1500.0,
        "averageNetSalary": 1150.0,
    }
    assert [d["department"] for d in report["departmentBreakdown"]] == ["Engineering", "Sales"]
    assert report["departmentBreakdown"][1]["totalDeductions"] == 500.0

    assert service.payroll(who("hr"), month=2, now=NOW)["summary"]["totalEmployees"] == 2
    assert service.payroll(who("hr"), month=3, now=NOW)["summary"]["totalEmployees"] == 0
    assert service.payroll(who("hr"), department="sales", now=NOW)["summary"]["totalGrossSalary"] == 2000.0


def test_payroll_report_rules(service, who):
    with pytest.raises(AuthorizationError):
        service.payroll(who("manager"), now=NOW)
    with pytest.raises(ValidationError, match="month must be between 1 and 12"):
        service.payroll(who("admin"), month=13, now=NOW)


def test_performance_scores_are_ranked(container, service, org, who):
    container.task_service.update(who("david"), org["overdue_task"].task_id, {"status": "completed"}, now=NOW)

    report = service.employee_performance(who("manager"), now=NOW)

    scores = [(row["employeeId"], row["overallScore"]) for row in report["report"]]
    # david: full attendance, all tasks done, punctual; emily: one late day
    assert scores == [(5, 100), (3, 67), (4, 38)]
    emily = report["report"][2]
    assert emily["attendance"]["attendanceRate"] == 33.33
    assert emily["tasks"] == {"total": 1, "completed": 0, "todo": 1, "overdue": 0, "completionRate": 0.0}
    assert report["report"][0]["leaves"] == {"totalRequests": 1, "totalDays": 3}
    assert report["summary"]["totalEmployees"] == 3


def test_report_window_must_be_ordered(service, who):
    with pytest.raises(ValidationError, match="endDate must not be before startDate"):
        service.attendance(who("hr"), start=date(2025, 3, 10), end=date(2025, 3, 1), now=NOW)
