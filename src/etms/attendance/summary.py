"""Attendance statistics over a window of records (pure functions)."""
from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import AttendanceRecord

PERIOD_MONTHS = {"month": 1, "quarter": 3, "year": 12}


def _months_back(day: date, months: int) -> date:
    years, month_index = divmod(day.month - 1 - months, 12)
    year = day.year + years
    month = month_index + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def period_start(period: str, today: date) -> date:
    """Start of a rolling window ending today: last week, month, quarter or year."""
    if period == "week":
        return today - timedelta(days=7)
    if period not in PERIOD_MONTHS:
        raise ValidationError("period must be one of: week, month, quarter, year")
    return _months_back(today, PERIOD_MONTHS[period])


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def status_statistics(records: Iterable[AttendanceRecord]) -> list[dict]:
    buckets: dict[str, list[AttendanceRecord]] = defaultdict(list)
    for record in records:
        buckets[record.status.value].append(record)
    out = []
    for status in sorted(buckets):
        rows = buckets[status]
        total_hours = sum(r.working_hours for r in rows)
        out.append(
            {
                "status": status,
                "count": len(rows),
                "totalHours": round(total_hours, 2),
                "avgHours": round(total_hours / len(rows), 2),
            }
        )
    return out


def daily_trends(records: Iterable[AttendanceRecord]) -> list[dict]:
    days: dict[date, list[AttendanceRecord]] = defaultdict(list)
    for record in records:
        days[record.work_date].append(record)
    out = []
    for day in sorted(days):
        rows = days[day]
        out.append(
            {
                "date": day.isoformat(),
                "present": sum(1 for r in rows if r.status == AttendanceStatus.PRESENT),
                "late": sum(1 for r in rows if r.status == AttendanceStatus.LATE),
                "absent": sum(1 for r in rows if r.status == AttendanceStatus.ABSENT),
                "total": len(rows),
                "avgHours": round(sum(r.working_hours for r in rows) / len(rows), 2),
                "totalOvertime": round(sum(r.overtime for r in rows), 2),
            }
        )
    return out


def employee_summary(records: Iterable[AttendanceRecord]) -> list[dict]:
    people: dict[int, list[AttendanceRecord]] = defaultdict(list)
    for record in records:
        people[record.employee_id].append(record)
    out = []
    for employee_id, rows in people.items():
        present = sum(1 for r in rows if r.status == AttendanceStatus.PRESENT)
        out.append(
            {
                "employeeId": employee_id,
                "employeeName": rows[0].employee_name,
                "employeeCode": rows[0].employee_code,
                "totalDays": len(rows),
                "presentDays": present,
                "lateDays": sum(1 for r in rows if r.status == AttendanceStatus.LATE),
                "absentDays": sum(1 for r in rows if r.status == AttendanceStatus.ABSENT),
                "totalHours": round(sum(r.working_hours for r in rows), 2),
                "totalOvertime": round(sum(r.overtime for r in rows), 2),
                "attendanceRate": _rate(present, len(rows)),
            }
        )
    out.sort(key=lambda row: row["attendanceRate"], reverse=True)
    return out
