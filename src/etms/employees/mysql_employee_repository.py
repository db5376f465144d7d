from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import EmployeeStatus
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
    placeholders,
    run_paged_query,
    to_json,
)
from .model import Employee, EmployeeFilters
from .repository import EmployeeRepository

_SELECT = """
    e.employee_id, e.employee_code, e.first_name, e.last_name, e.email, e.phone,
    e.department, e.position, e.manager_id, e.hire_date, e.salary, e.status,
    e.address, e.emergency_contact, e.skills, e.notes, e.created_at,
    CONCAT(m.first_name, ' ', m.last_name) AS manager_name
"""
_FROM = "employees e LEFT JOIN employees m ON m.employee_id = e.manager_id"
_JSON_COLUMNS = {"address", "emergency_contact", "skills"}


def _row_to_employee(row: dict) -> Employee:
    return Employee(
        employee_id=int(row["employee_id"]),
        employee_code=row["employee_code"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        phone=row.get("phone") or "",
        department=row["department"],
        position=row["position"],
        manager_id=int(row["manager_id"]) if row.get("manager_id") is not None else None,
        hire_date=row["hire_date"],
        salary=float(row.get("salary") or 0),
        status=EmployeeStatus(row["status"]),
        address=from_json(row.get("address"), {}),
        emergency_contact=from_json(row.get("emergency_contact"), {}),
        skills=tuple(from_json(row.get("skills"), [])),
        notes=row.get("notes"),
        created_at=row.get("created_at"),
        manager_name=row.get("manager_name"),
    )


def _column_value(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return to_json(list(value) if column == "skills" else value)
    if isinstance(value, EmployeeStatus):
        return value.value
    return value


def _where_for(scope: Scope, filters: EmployeeFilters) -> Where:
    where = Where().add_scope(scope, owner_in="e.employee_id IN ({ids})")
    if filters.search:
        like = f"%{filters.search}%"
        where.add(
            "(e.first_name LIKE %s OR e.last_name LIKE %s OR e.email LIKE %s"
            " OR e.employee_code LIKE %s OR e.position LIKE %s)",
            like,
            like,
            like,
            like,
            like,
        )
    if filters.department:
        where.add("e.department=%s", filters.department)
    if filters.position:
        where.add("e.position LIKE %s", f"%{filters.position}%")
    if filters.status:
        where.add("e.status=%s", filters.status.value)
    if filters.skills:
        where.add(
            "(" + " OR ".join(["JSON_CONTAINS(e.skills, JSON_QUOTE(%s))"] * len(filters.skills)) + ")",
            *filters.skills,
        )
    if filters.hired_from:
        where.add("e.hire_date >= %s", filters.hired_from)
    if filters.hired_to:
        where.add("e.hire_date <= %s", filters.hired_to)
    if filters.min_salary is not None:
        where.add("e.salary >= %s", filters.min_salary)
    if filters.max_salary is not None:
        where.add("e.salary <= %s", filters.max_salary)
    return where


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE e.employee_id=%s", (employee_id,))
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def get_by_email(self, email: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE e.email=%s", (email.lower(),))
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM employees")
            return int((fetchone(cur) or {}).get("total") or 0)

    def create(self, *, employee_code: str, fields: dict[str, Any]) -> int:
        columns = ["employee_code", *fields.keys()]
        values = [employee_code, *(_column_value(c, v) for c, v in fields.items())]
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO employees({', '.join(columns)}) VALUES({placeholders(values)})",
                    tuple(values),
                )
                return int(cur.lastrowid)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Employee with this email or code already exists")
            raise

    def update(self, employee_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        values = [_column_value(c, v) for c, v in changes.items()]
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"UPDATE employees SET {assignments} WHERE employee_id=%s", (*values, employee_id))
                return cur.rowcount > 0
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Employee with this email already exists")
            raise

    def list_direct_report_ids(self, manager_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM employees WHERE manager_id=%s", (manager_id,))
            return [int(r["employee_id"]) for r in fetchall(cur)]

    def list_direct_reports(self, manager_id: int) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE e.manager_id=%s ORDER BY e.first_name, e.last_name",
                (manager_id,),
            )
            return [_row_to_employee(r) for r in fetchall(cur)]

    def existing_ids(self, employee_ids: Iterable[int]) -> set[int]:
        ids = sorted({int(i) for i in employee_ids})
        if not ids:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT employee_id FROM employees WHERE employee_id IN ({placeholders(ids)})", tuple(ids))
            return {int(r["employee_id"]) for r in fetchall(cur)}

    def count_active_in_department(self, department: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS total FROM employees WHERE department=%s AND status=%s",
                (department, EmployeeStatus.ACTIVE.value),
            )
            return int((fetchone(cur) or {}).get("total") or 0)

    def list_page(
        self,
        scope: Scope,
        filters: EmployeeFilters,
        page: PageRequest,
        *,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> Page[Employee]:
        where = _where_for(scope, filters)
        direction = "DESC" if descending else "ASC"
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=where,
            order_by=f"e.{sort_by} {direction}, e.employee_id {direction}",
            page=page,
            summary_select="e.department AS department, e.status AS status, COUNT(*) AS count",
            summary_group_by="e.department, e.status",
        )
        summary = [{"department": s["department"], "status": s["status"], "count": int(s["count"])} for s in summary]
        return as_page([_row_to_employee(r) for r in rows], total, page, summary)

    def list_all(self, scope: Scope, filters: EmployeeFilters) -> Sequence[Employee]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY e.first_name, e.last_name",
                tuple(where.params),
            )
            return [_row_to_employee(r) for r in fetchall(cur)]
