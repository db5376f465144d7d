from __future__ import annotations

from collections import defaultdict
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import ProjectStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import Where, as_page, db_cursor, fetchall, fetchone, placeholders, run_paged_query
from .model import Project, ProjectFilters
from .repository import ProjectRepository

_SELECT = """
    p.project_id, p.name, p.description, p.status, p.manager_id, p.start_date, p.end_date,
    p.progress, p.created_at,
    CONCAT(m.first_name, ' ', m.last_name) AS manager_name
"""
_FROM = "projects p LEFT JOIN employees m ON m.employee_id = p.manager_id"
_OWNER_IN = "p.project_id IN (SELECT pm.project_id FROM project_members pm WHERE pm.employee_id IN ({ids}))"


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, ProjectStatus) else value


def _where_for(scope: Scope, filters: ProjectFilters) -> Where:
    where = Where().add_scope(scope, owner_in=_OWNER_IN, author_column="p.manager_id")
    if filters.status:
        where.add("p.status=%s", filters.status.value)
    if filters.manager_id is not None:
        where.add("p.manager_id=%s", filters.manager_id)
    if filters.search:
        where.add("p.name LIKE %s", f"%{filters.search}%")
    return where


def _insert_members(cur, project_id: int, members: Sequence[int]) -> None:
    if members:
        cur.executemany(
            "INSERT INTO project_members(project_id, employee_id) VALUES(%s,%s)",
            [(project_id, int(employee_id)) for employee_id in members],
        )


class MySQLProjectRepository(ProjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: list[dict]) -> list[Project]:
        if not rows:
            return []
        ids = [int(r["project_id"]) for r in rows]
        cur.execute(
            f"""
            SELECT pm.project_id, pm.employee_id, CONCAT(e.first_name, ' ', e.last_name) AS name
            FROM project_members pm JOIN employees e ON e.employee_id = pm.employee_id
            WHERE pm.project_id IN ({placeholders(ids)})
            ORDER BY pm.project_id, pm.employee_id
            """,
            tuple(ids),
        )
        members: dict[int, list[tuple[int, str]]] = defaultdict(list)
        for r in fetchall(cur):
            members[int(r["project_id"])].append((int(r["employee_id"]), r["name"]))

        projects = []
        for row in rows:
            project_id = int(row["project_id"])
            people = members.get(project_id, [])
            projects.append(
                Project(
                    project_id=project_id,
                    name=row["name"],
                    description=row["description"],
                    manager_id=int(row["manager_id"]),
                    manager_name=row.get("manager_name"),
                    start_date=row["start_date"],
                    end_date=row["end_date"],
                    status=ProjectStatus(row["status"]),
                    progress=int(row.get("progress") or 0),
                    team_members=tuple(p[0] for p in people),
                    member_names=tuple(p[1] for p in people),
                    created_at=row.get("created_at"),
                )
            )
        return projects

    def get_by_id(self, project_id: int) -> Optional[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE p.project_id=%s", (project_id,))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def create(self, fields: dict[str, Any], *, members: Sequence[int]) -> int:
        columns = list(fields.keys())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO projects({', '.join(columns)}) VALUES({placeholders(columns)})",
                tuple(_column_value(fields[c]) for c in columns),
            )
            project_id = int(cur.lastrowid)
            _insert_members(cur, project_id, members)
            return project_id

    def update(self, project_id: int, changes: dict[str, Any], *, members: Optional[Sequence[int]] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            touched = False
            if changes:
                assignments = ", ".join(f"{column}=%s" for column in changes)
                values = [_column_value(v) for v in changes.values()]
                cur.execute(f"UPDATE projects SET {assignments} WHERE project_id=%s", (*values, project_id))
                touched = cur.rowcount > 0
            if members is not None:
                cur.execute("DELETE FROM project_members WHERE project_id=%s", (project_id,))
                _insert_members(cur, project_id, members)
                touched = True
            return touched

    def delete(self, project_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # members cascade; tasks.project_id is SET NULL
            cur.execute("DELETE FROM projects WHERE project_id=%s", (project_id,))
            return cur.rowcount > 0

    def list_page(self, scope: Scope, filters: ProjectFilters, page: PageRequest) -> Page[Project]:
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=_where_for(scope, filters),
            order_by="p.created_at DESC, p.project_id DESC",
            page=page,
            summary_select="p.status AS status, COUNT(*) AS count, AVG(p.progress) AS avg_progress",
            summary_group_by="p.status",
        )
        with db_cursor(self._conn_factory) as (_, cur):
            projects = self._hydrate(cur, rows)
        summary = [
            {
                "status": s["status"],
                "count": int(s["count"]),
                "averageProgress": round(float(s.get("avg_progress") or 0), 2),
            }
            for s in summary
        ]
        return as_page(projects, total, page, summary)
