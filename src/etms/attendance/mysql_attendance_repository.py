from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    Where,
    as_page,
    db_cursor,
    fetchall,
    fetchone,
    from_json,
    is_duplicate_key,
    round2,
    run_paged_query,
    to_json,
)
from .model import AttendanceFilters, AttendanceRecord
from .repository import AttendanceRepository

_SELECT = """
    a.attendance_id, a.employee_id, a.work_date, a.check_in, a.check_out,
    a.break_start, a.break_end, a.status, a.working_hours, a.overtime,
    a.notes, a.location,
    CONCAT(e.first_name, ' ', e.last_name) AS employee_name,
    e.employee_code, e.department
"""
_FROM = "attendance_records a JOIN employees e ON e.employee_id = a.employee_id"


def _row_to_record(row: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(row["attendance_id"]),
        employee_id=int(row["employee_id"]),
        work_date=row["work_date"],
        status=AttendanceStatus(row["status"]),
        check_in=row.get("check_in"),
        check_out=row.get("check_out"),
        break_start=row.get("break_start"),
        break_end=row.get("break_end"),
        working_hours=float(row.get("working_hours") or 0),
        overtime=float(row.get("overtime") or 0),
        notes=row.get("notes"),
        location=from_json(row.get("location"), {}),
        employee_name=row.get("employee_name"),
        employee_code=row.get("employee_code"),
        department=row.get("department"),
    )


def _column_value(column: str, value: Any) -> Any:
    if column == "location":
        return to_json(value)
    if isinstance(value, AttendanceStatus):
        return value.value
    return value


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE a.attendance_id=%s", (attendance_id,))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE a.employee_id=%s AND a.work_date=%s",
                (employee_id, work_date),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def create_checkin(
        self,
        *,
        employee_id: int,
        work_date: date,
        check_in: datetime,
        status: AttendanceStatus,
        notes: Optional[str] = None,
        location: Optional[dict[str, Any]] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(employee_id, work_date, check_in, status, notes, location)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (employee_id, work_date, check_in, status.value, notes, to_json(location or None)),
                )
                return int(cur.lastrowid)
        except Exception as exc:
            # unique (employee_id, work_date): another request checked in first
            if is_duplicate_key(exc):
                raise ConflictError("Attendance for this employee and date already exists")
            raise

    def update(self, attendance_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        values = [_column_value(c, v) for c, v in changes.items()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE attendance_records SET {assignments} WHERE attendance_id=%s", (*values, attendance_id))
            return cur.rowcount > 0

    def list_page(self, scope: Scope, filters: AttendanceFilters, page: PageRequest) -> Page[AttendanceRecord]:
        where = Where().add_scope(scope, owner_in="a.employee_id IN ({ids})")
        if filters.start_date:
            where.add("a.work_date >= %s", filters.start_date)
        if filters.end_date:
            where.add("a.work_date <= %s", filters.end_date)
        if filters.status:
            where.add("a.status=%s", filters.status.value)

        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=where,
            order_by="a.work_date DESC, a.attendance_id DESC",
            page=page,
            summary_select=(
                "a.status AS status, COUNT(*) AS count,"
                " SUM(a.working_hours) AS total_hours, SUM(a.overtime) AS total_overtime"
            ),
            summary_group_by="a.status",
        )
        summary = [
            {
                "status": s["status"],
                "count": int(s["count"]),
                "totalHours": round2(s.get("total_hours")),
                "totalOvertime": round2(s.get("total_overtime")),
            }
            for s in summary
        ]
        return as_page([_row_to_record(r) for r in rows], total, page, summary)

    def list_between(self, scope: Scope, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        where = Where().add_scope(scope, owner_in="a.employee_id IN ({ids})")
        where.add("a.work_date BETWEEN %s AND %s", start_date, end_date)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY a.work_date, a.employee_id",
                tuple(where.params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def total_overtime(self, employee_id: int, start_date: date, end_date: date) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(overtime), 0) AS total
                FROM attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                """,
                (employee_id, start_date, end_date),
            )
            return round2((fetchone(cur) or {}).get("total"))
