"""Report figures computed from already-scoped records (pure functions)."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import iso
from ..core.constants import LATE_SCORE, PUNCTUAL_SCORE
from ..core.enums import AttendanceStatus, LeaveStatus, TaskStatus
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..payroll.model import Payroll
from ..tasks.model import Task
from ..tasks.stats import completion_rate


def _mean(values: Sequence[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


def _by_employee(rows: Iterable) -> dict[int, list]:
    grouped: dict[int, list] = defaultdict(list)
    for row in rows:
        grouped[row.employee_id].append(row)
    return grouped


def _attendance_figures(records: Sequence[AttendanceRecord]) -> dict:
    present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    return {
        "totalDays": len(records),
        "presentDays": present,
        "absentDays": sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
        "lateDays": sum(1 for r in records if r.status == AttendanceStatus.LATE),
        "totalHours": round(sum(r.working_hours for r in records), 2),
        "overtimeHours": round(sum(r.overtime for r in records), 2),
        "attendancePercentage": completion_rate(present, len(records)),
    }


def dashboard(
    *,
    total_employees: int,
    total_departments: int,
    today: Sequence[AttendanceRecord],
    tasks: Sequence[Task],
    leaves: Sequence[LeaveRequest],
    recent: Optional[Sequence[Task]],
    now: datetime,
) -> dict:
    checked_in = [r for r in today if r.check_in is not None]
    return {
        "overview": {
            "totalEmployees": total_employees,
            "totalDepartments": total_departments,
            "todayPresent": len(checked_in),
            "onBreak": sum(1 for r in checked_in if r.check_out is None and r.on_break),
        },
        "tasks": {
            "total": len(tasks),
            "todo": sum(1 for t in tasks if t.status == TaskStatus.TODO),
            "inProgress": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            "completed": sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            "overdue": sum(1 for t in tasks if t.is_overdue(now)),
        },
        "leaves": {
            "total": len(leaves),
            "pending": sum(1 for r in leaves if r.status == LeaveStatus.PENDING),
            "approved": sum(1 for r in leaves if r.status == LeaveStatus.APPROVED),
            "rejected": sum(1 for r in leaves if r.status == LeaveStatus.REJECTED),
        },
        "recentActivities": [
            {
                "id": t.task_id,
                "title": t.title,
                "status": t.status.value,
                "createdAt": iso(t.created_at),
                "assignedTo": list(t.assignee_names),
                "assignedBy": t.assigner_name,
            }
            for t in (recent or ())
        ],
    }


def attendance_report(
    employees: Sequence[Employee],
    records: Iterable[AttendanceRecord],
    *,
    detailed: bool = False,
) -> dict:
    per_employee = _by_employee(records)
    rows = []
    for employee in employees:
        own = sorted(per_employee.get(employee.employee_id, []), key=lambda r: r.work_date)
        row = {
            "employeeId": employee.employee_id,
            "employeeCode": employee.employee_code,
            "employeeName": employee.full_name,
            "department": employee.department,
            **_attendance_figures(own),
        }
        if detailed:
            row["records"] = [
                {
                    "date": r.work_date.isoformat(),
                    "status": r.status.value,
                    "checkIn": iso(r.check_in),
                    "checkOut": iso(r.check_out),
                    "workingHours": r.working_hours,
                    "overtime": r.overtime,
                }
                for r in own
            ]
        rows.append(row)

    return {
        "report": rows,
        "summary": {
            "totalEmployees": len(rows),
            "averageAttendance": _mean([r["attendancePercentage"] for r in rows]),
            "totalHours": round(sum(r["totalHours"] for r in rows), 2),
            "totalOvertimeHours": round(sum(r["overtimeHours"] for r in rows), 2),
        },
    }


def leave_report(leaves: Sequence[LeaveRequest], employees: Mapping[int, Employee]) -> dict:
    approved = [r for r in leaves if r.status == LeaveStatus.APPROVED]

    types: dict[str, dict] = {}
    for request in leaves:
        bucket = types.setdefault(request.leave_type.value, {"count": 0, "days": 0})
        bucket["count"] += 1
        if request.status == LeaveStatus.APPROVED:
            bucket["days"] += request.days

    summary = []
    for employee_id, rows in sorted(_by_employee(leaves).items()):
        employee = employees.get(employee_id)
        by_type: dict[str, int] = defaultdict(int)
        for r in rows:
            if r.status == LeaveStatus.APPROVED:
                by_type[r.leave_type.value] += r.days
        summary.append(
            {
                "employeeId": employee_id,
                "employeeName": employee.full_name if employee else rows[0].employee_name,
                "department": employee.department if employee else rows[0].department,
                "totalRequests": len(rows),
                "approvedRequests": sum(1 for r in rows if r.status == LeaveStatus.APPROVED),
                "totalDaysTaken": sum(by_type.values()),
                "byType": dict(by_type),
            }
        )

    return {
        "statistics": {
            "total": len(leaves),
            "approved": len(approved),
            "pending": sum(1 for r in leaves if r.status == LeaveStatus.PENDING),
            "rejected": sum(1 for r in leaves if r.status == LeaveStatus.REJECTED),
            "cancelled": sum(1 for r in leaves if r.status == LeaveStatus.CANCELLED),
            "totalDays": sum(r.days for r in approved),
        },
        "typeBreakdown": dict(sorted(types.items())),
        "employeeSummary": summary,
    }


def payroll_report(payrolls: Sequence[Payroll], departments: Mapping[int, str]) -> dict:
    """``departments`` maps employee id to department name."""
    gross = sum(p.breakdown.gross_salary for p in payrolls)
    net = sum(p.breakdown.net_salary for p in payrolls)

    by_department: dict[str, dict] = {}
    for payroll in payrolls:
        name = departments.get(payroll.employee_id) or payroll.department or "N/A"
        bucket = by_department.setdefault(
            name, {"department": name, "employees": 0, "totalGross": 0.0, "totalNet": 0.0, "totalDeductions": 0.0}
        )
        bucket["employees"] += 1
        bucket["totalGross"] += payroll.breakdown.gross_salary
        bucket["totalNet"] += payroll.breakdown.net_salary
        bucket["totalDeductions"] += payroll.breakdown.gross_salary - payroll.breakdown.net_salary

    breakdown = []
    for name in sorted(by_department):
        bucket = by_department[name]
        breakdown.append({**bucket, **{k: round(bucket[k], 2) for k in ("totalGross", "totalNet", "totalDeductions")}})

    count = len(payrolls)
    return {
        "summary": {
            "totalEmployees": count,
            "totalGrossSalary": round(gross, 2),
            "totalNetSalary": round(net, 2),
            "totalDeductions": round(gross - net, 2),
            "averageGrossSalary": round(gross / count, 2) if count else 0.0,
            "averageNetSalary": round(net / count, 2) if count else 0.0,
        },
        "departmentBreakdown": breakdown,
    }


def performance_report(
    employees: Sequence[Employee],
    records: Iterable[AttendanceRecord],
    tasks: Iterable[Task],
    leaves: Iterable[LeaveRequest],
    now: datetime,
) -> dict:
    """Blend attendance rate, task completion and punctuality into one score per employee."""
    attendance = _by_employee(records)
    approved = _by_employee(r for r in leaves if r.status == LeaveStatus.APPROVED)
    assigned: dict[int, list[Task]] = defaultdict(list)
    for task in tasks:
        for employee_id in task.assigned_to:
            assigned[employee_id].append(task)

    rows = []
    for employee in employees:
        own_records = attendance.get(employee.employee_id, [])
        own_tasks = assigned.get(employee.employee_id, [])
        own_leaves = approved.get(employee.employee_id, [])
        figures = _attendance_figures(own_records)
        completed = sum(1 for t in own_tasks if t.status == TaskStatus.COMPLETED)
        task_rate = completion_rate(completed, len(own_tasks))
        punctuality = LATE_SCORE if figures["lateDays"] else PUNCTUAL_SCORE
        rows.append(
            {
                "employeeId": employee.employee_id,
                "employeeCode": employee.employee_code,
                "employeeName": employee.full_name,
                "department": employee.department,
                "attendance": {
                    "totalDays": figures["totalDays"],
                    "presentDays": figures["presentDays"],
                    "totalHours": figures["totalHours"],
                    "overtimeHours": figures["overtimeHours"],
                    "attendanceRate": figures["attendancePercentage"],
                },
                "tasks": {
                    "total": len(own_tasks),
                    "completed": completed,
                    "todo": sum(1 for t in own_tasks if t.status == TaskStatus.TODO),
                    "overdue": sum(1 for t in own_tasks if t.is_overdue(now)),
                    "completionRate": task_rate,
                },
                "leaves": {"totalRequests": len(own_leaves), "totalDays": sum(r.days for r in own_leaves)},
                "overallScore": round((figures["attendancePercentage"] + task_rate + punctuality) / 3),
            }
        )

    rows.sort(key=lambda row: row["overallScore"], reverse=True)
    return {
        "report": rows,
        "summary": {
            "totalEmployees": len(rows),
            "averageAttendanceRate": _mean([r["attendance"]["attendanceRate"] for r in rows]),
            "averageTaskCompletionRate": _mean([r["tasks"]["completionRate"] for r in rows]),
            "averageOverallScore": _mean([r["overallScore"] for r in rows]),
        },
    }
