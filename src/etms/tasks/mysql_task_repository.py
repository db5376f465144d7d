from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import TaskPriority, TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    Where,
    as_page,
    db_cursor,
    fetchall,
    fetchone,
    from_json,
    placeholders,
    round2,
    run_paged_query,
    to_json,
)
from .model import Task, TaskComment, TaskFilters
from .repository import TaskRepository

_SELECT = """
    t.task_id, t.title, t.description, t.assigned_by, t.project_id, pr.name AS project, t.priority, t.status,
    t.start_date, t.due_date, t.completed_date, t.estimated_hours, t.actual_hours,
    t.tags, t.attachments, t.created_at,
    CONCAT(ab.first_name, ' ', ab.last_name) AS assigner_name
"""
_FROM = (
    "tasks t LEFT JOIN employees ab ON ab.employee_id = t.assigned_by"
    " LEFT JOIN projects pr ON pr.project_id = t.project_id"
)
_OWNER_IN = "t.task_id IN (SELECT ta.task_id FROM task_assignees ta WHERE ta.employee_id IN ({ids}))"
_JSON_COLUMNS = {"tags", "attachments"}


def _column_value(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return to_json(list(value))
    if isinstance(value, (TaskPriority, TaskStatus)):
        return value.value
    return value


def _where_for(scope: Scope, filters: TaskFilters) -> Where:
    where = Where().add_scope(scope, owner_in=_OWNER_IN, author_column="t.assigned_by")
    if filters.assigned_by is not None:
        where.add("t.assigned_by=%s", filters.assigned_by)
    if filters.project_id is not None:
        where.add("t.project_id=%s", filters.project_id)
    if filters.project:
        where.add("pr.name LIKE %s", f"%{filters.project}%")
    if filters.status:
        where.add("t.status=%s", filters.status.value)
    if filters.priority:
        where.add("t.priority=%s", filters.priority.value)
    if filters.due_from:
        where.add("t.due_date >= %s", filters.due_from)
    if filters.due_to:
        where.add("t.due_date <= %s", filters.due_to)
    return where


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: list[dict]) -> list[Task]:
        """Attach assignees and comments to task rows in two batched queries."""
        if not rows:
            return []
        ids = [int(r["task_id"]) for r in rows]

        cur.execute(
            f"""
            SELECT ta.task_id, ta.employee_id, CONCAT(e.first_name, ' ', e.last_name) AS name
            FROM task_assignees ta JOIN employees e ON e.employee_id = ta.employee_id
            WHERE ta.task_id IN ({placeholders(ids)})
            ORDER BY ta.task_id, ta.employee_id
            """,
            tuple(ids),
        )
        assignees: dict[int, list[tuple[int, str]]] = defaultdict(list)
        for r in fetchall(cur):
            assignees[int(r["task_id"])].append((int(r["employee_id"]), r["name"]))

        cur.execute(
            f"""
            SELECT c.comment_id, c.task_id, c.user_id, c.content, c.created_at, u.email AS author_email
            FROM task_comments c LEFT JOIN users u ON u.user_id = c.user_id
            WHERE c.task_id IN ({placeholders(ids)})
            ORDER BY c.created_at, c.comment_id
            """,
            tuple(ids),
        )
        comments: dict[int, list[TaskComment]] = defaultdict(list)
        for r in fetchall(cur):
            comments[int(r["task_id"])].append(
                TaskComment(
                    comment_id=int(r["comment_id"]),
                    task_id=int(r["task_id"]),
                    user_id=int(r["user_id"]),
                    content=r["content"],
                    created_at=r.get("created_at"),
                    author_email=r.get("author_email"),
                )
            )

        tasks = []
        for row in rows:
            task_id = int(row["task_id"])
            people = assignees.get(task_id, [])
            tasks.append(
                Task(
                    task_id=task_id,
                    title=row["title"],
                    description=row["description"],
                    assigned_to=tuple(p[0] for p in people),
                    assignee_names=tuple(p[1] for p in people),
                    assigned_by=int(row["assigned_by"]) if row.get("assigned_by") is not None else None,
                    assigner_name=row.get("assigner_name"),
                    project_id=int(row["project_id"]) if row.get("project_id") is not None else None,
                    project=row.get("project"),
                    priority=TaskPriority(row["priority"]),
                    status=TaskStatus(row["status"]),
                    start_date=row["start_date"],
                    due_date=row["due_date"],
                    completed_date=row.get("completed_date"),
                    estimated_hours=float(row.get("estimated_hours") or 0),
                    actual_hours=float(row.get("actual_hours") or 0),
                    tags=tuple(from_json(row.get("tags"), [])),
                    attachments=tuple(from_json(row.get("attachments"), [])),
                    comments=tuple(comments.get(task_id, [])),
                    created_at=row.get("created_at"),
                )
            )
        return tasks

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE t.task_id=%s", (task_id,))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def create(self, fields: dict[str, Any], *, assignees: Sequence[int]) -> int:
        columns = list(fields.keys())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO tasks({', '.join(columns)}) VALUES({placeholders(columns)})",
                tuple(_column_value(c, fields[c]) for c in columns),
            )
            task_id = int(cur.lastrowid)
            cur.executemany(
                "INSERT INTO task_assignees(task_id, employee_id) VALUES(%s,%s)",
                [(task_id, int(employee_id)) for employee_id in assignees],
            )
            return task_id

    def update(self, task_id: int, changes: dict[str, Any], *, assignees: Optional[Sequence[int]] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            touched = False
            if changes:
                assignments = ", ".join(f"{column}=%s" for column in changes)
                values = [_column_value(c, v) for c, v in changes.items()]
                cur.execute(f"UPDATE tasks SET {assignments} WHERE task_id=%s", (*values, task_id))
                touched = cur.rowcount > 0
            if assignees is not None:
                cur.execute("DELETE FROM task_assignees WHERE task_id=%s", (task_id,))
                cur.executemany(
                    "INSERT INTO task_assignees(task_id, employee_id) VALUES(%s,%s)",
                    [(task_id, int(employee_id)) for employee_id in assignees],
                )
                touched = True
            return touched

    def delete(self, task_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # assignees and comments go with the task (ON DELETE CASCADE)
            cur.execute("DELETE FROM tasks WHERE task_id=%s", (task_id,))
            return cur.rowcount > 0

    def add_comment(self, task_id: int, *, user_id: int, content: str, when: datetime) -> TaskComment:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO task_comments(task_id, user_id, content, created_at) VALUES(%s,%s,%s,%s)",
                (task_id, user_id, content, when),
            )
            return TaskComment(
                comment_id=int(cur.lastrowid), task_id=task_id, user_id=user_id, content=content, created_at=when
            )

    def list_page(self, scope: Scope, filters: TaskFilters, page: PageRequest) -> Page[Task]:
        where = _where_for(scope, filters)
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=where,
            order_by="t.due_date ASC, t.task_id DESC",
            page=page,
            summary_select=(
                "t.status AS status, COUNT(*) AS count,"
                " SUM(t.estimated_hours) AS total_estimated, SUM(t.actual_hours) AS total_actual"
            ),
            summary_group_by="t.status",
        )
        with db_cursor(self._conn_factory) as (_, cur):
            tasks = self._hydrate(cur, rows)
        summary = [
            {
                "status": s["status"],
                "count": int(s["count"]),
                "totalEstimatedHours": round2(s.get("total_estimated")),
                "totalActualHours": round2(s.get("total_actual")),
            }
            for s in summary
        ]
        return as_page(tasks, total, page, summary)

    def list_all(self, scope: Scope, filters: TaskFilters) -> Sequence[Task]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY t.due_date", tuple(where.params))
            return self._hydrate(cur, fetchall(cur))
