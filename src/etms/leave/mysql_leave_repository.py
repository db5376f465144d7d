from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    Where,
    as_page,
    db_cursor,
    fetchall,
    fetchone,
    from_json,
    placeholders,
    run_paged_query,
    to_json,
)
from .model import LeaveFilters, LeaveRequest
from .repository import LeaveRepository

_SELECT = """
    l.leave_id, l.employee_id, l.leave_type, l.start_date, l.end_date, l.days, l.reason,
    l.status, l.applied_date, l.approved_by, l.approved_date, l.rejection_reason, l.documents,
    CONCAT(e.first_name, ' ', e.last_name) AS employee_name, e.employee_code, e.department
"""
_FROM = "leave_requests l JOIN employees e ON e.employee_id = l.employee_id"


def _row_to_leave(row: dict) -> LeaveRequest:
    return LeaveRequest(
        leave_id=int(row["leave_id"]),
        employee_id=int(row["employee_id"]),
        leave_type=LeaveType(row["leave_type"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        days=int(row["days"]),
        reason=row["reason"],
        status=LeaveStatus(row["status"]),
        applied_date=row.get("applied_date"),
        approved_by=int(row["approved_by"]) if row.get("approved_by") is not None else None,
        approved_date=row.get("approved_date"),
        rejection_reason=row.get("rejection_reason"),
        documents=tuple(from_json(row.get("documents"), [])),
        employee_name=row.get("employee_name"),
        employee_code=row.get("employee_code"),
        department=row.get("department"),
    )


def _where_for(scope: Scope, filters: LeaveFilters) -> Where:
    where = Where().add_scope(scope, owner_in="l.employee_id IN ({ids})")
    if filters.status:
        where.add("l.status=%s", filters.status.value)
    if filters.leave_type:
        where.add("l.leave_type=%s", filters.leave_type.value)
    if filters.start_from:
        where.add("l.start_date >= %s", filters.start_from)
    if filters.start_to:
        where.add("l.start_date <= %s", filters.start_to)
    return where


def _column_value(column: str, value: Any) -> Any:
    if column == "documents":
        return to_json(list(value))
    if isinstance(value, (LeaveStatus, LeaveType)):
        return value.value
    return value


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE l.leave_id=%s", (leave_id,))
            row = fetchone(cur)
            return _row_to_leave(row) if row else None

    def create(self, fields: dict[str, Any]) -> int:
        columns = list(fields.keys())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO leave_requests({', '.join(columns)}) VALUES({placeholders(columns)})",
                tuple(_column_value(c, fields[c]) for c in columns),
            )
            return int(cur.lastrowid)

    def update(self, leave_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        values = [_column_value(c, v) for c, v in changes.items()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE leave_requests SET {assignments} WHERE leave_id=%s", (*values, leave_id))
            return cur.rowcount > 0

    def find_overlapping(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        *,
        exclude_id: Optional[int] = None,
    ) -> Sequence[LeaveRequest]:
        where = Where()
        where.add("l.employee_id=%s", employee_id)
        where.add_in("l.status", [LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value])
        where.add("l.start_date <= %s AND l.end_date >= %s", end_date, start_date)
        if exclude_id is not None:
            where.add("l.leave_id <> %s", exclude_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql}", tuple(where.params))
            return [_row_to_leave(r) for r in fetchall(cur)]

    def list_page(self, scope: Scope, filters: LeaveFilters, page: PageRequest) -> Page[LeaveRequest]:
        where = _where_for(scope, filters)
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=where,
            order_by="l.applied_date DESC, l.leave_id DESC",
            page=page,
            summary_select="l.status AS status, COUNT(*) AS count, SUM(l.days) AS total_days",
            summary_group_by="l.status",
        )
        summary = [
            {"status": s["status"], "count": int(s["count"]), "totalDays": int(s.get("total_days") or 0)}
            for s in summary
        ]
        return as_page([_row_to_leave(r) for r in rows], total, page, summary)

    def list_for_employee_year(self, employee_id: int, year: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SELECT} FROM {_FROM}
                WHERE l.employee_id=%s AND l.start_date BETWEEN %s AND %s
                ORDER BY l.start_date
                """,
                (employee_id, date(year, 1, 1), date(year, 12, 31)),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]

    def list_all(self, scope: Scope, filters: LeaveFilters) -> Sequence[LeaveRequest]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY l.start_date", tuple(where.params))
            return [_row_to_leave(r) for r in fetchall(cur)]
