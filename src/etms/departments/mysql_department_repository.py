from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, placeholders
from .model import Department
from .repository import DepartmentRepository

_COLUMNS = "department_id, name, description, manager_id, budget, location, is_active, created_at"


def _row_to_department(row: dict) -> Department:
    return Department(
        department_id=int(row["department_id"]),
        name=row["name"],
        description=row.get("description"),
        manager_id=int(row["manager_id"]) if row.get("manager_id") is not None else None,
        budget=float(row["budget"]) if row.get("budget") is not None else None,
        location=row.get("location"),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, include_inactive: bool = False) -> Sequence[Department]:
        sql = f"SELECT {_COLUMNS} FROM departments"
        if not include_inactive:
            sql += " WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY name")
            return [_row_to_department(r) for r in fetchall(cur)]

    def get_by_id(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM departments WHERE department_id=%s", (department_id,))
            row = fetchone(cur)
            return _row_to_department(row) if row else None

    def get_by_name(self, name: str) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM departments WHERE name=%s", (name,))
            row = fetchone(cur)
            return _row_to_department(row) if row else None

    def create(self, fields: dict[str, Any]) -> int:
        columns = list(fields.keys())
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO departments({', '.join(columns)}) VALUES({placeholders(columns)})",
                    tuple(fields[c] for c in columns),
                )
                return int(cur.lastrowid)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Department with this name already exists")
            raise

    def update(self, department_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE departments SET {assignments} WHERE department_id=%s",
                    (*changes.values(), department_id),
                )
                return cur.rowcount > 0
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Department with this name already exists")
            raise
