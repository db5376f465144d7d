from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import ReviewStatus, ReviewType
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
from .model import PerformanceReview, ReviewFilters
from .repository import ReviewRepository

_SELECT = """
    r.review_id, r.employee_id, r.reviewer_id, r.period_start, r.period_end, r.review_type,
    r.overall_rating, r.categories, r.goals, r.strengths, r.areas_for_improvement,
    r.development_plan, r.manager_comments, r.employee_comments, r.status,
    r.submitted_date, r.approved_date, r.acknowledged_date, r.created_at,
    CONCAT(e.first_name, ' ', e.last_name) AS employee_name, e.department,
    CONCAT(rv.first_name, ' ', rv.last_name) AS reviewer_name
"""
_FROM = (
    "performance_reviews r"
    " JOIN employees e ON e.employee_id = r.employee_id"
    " LEFT JOIN employees rv ON rv.employee_id = r.reviewer_id"
)
_JSON_COLUMNS = {"categories", "goals", "strengths", "areas_for_improvement"}


def _row_to_review(row: dict) -> PerformanceReview:
    return PerformanceReview(
        review_id=int(row["review_id"]),
        employee_id=int(row["employee_id"]),
        reviewer_id=int(row["reviewer_id"]) if row.get("reviewer_id") is not None else None,
        period_start=row["period_start"],
        period_end=row["period_end"],
        review_type=ReviewType(row["review_type"]),
        overall_rating=float(row["overall_rating"]),
        categories=tuple(from_json(row.get("categories"), [])),
        goals=tuple(from_json(row.get("goals"), [])),
        strengths=tuple(from_json(row.get("strengths"), [])),
        areas_for_improvement=tuple(from_json(row.get("areas_for_improvement"), [])),
        development_plan=row.get("development_plan"),
        manager_comments=row.get("manager_comments"),
        employee_comments=row.get("employee_comments"),
        status=ReviewStatus(row["status"]),
        submitted_date=row.get("submitted_date"),
        approved_date=row.get("approved_date"),
        acknowledged_date=row.get("acknowledged_date"),
        created_at=row.get("created_at"),
        employee_name=row.get("employee_name"),
        department=row.get("department"),
        reviewer_name=row.get("reviewer_name"),
    )


def _column_value(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return to_json(list(value))
    if isinstance(value, (ReviewStatus, ReviewType)):
        return value.value
    return value


def _where_for(scope: Scope, filters: ReviewFilters) -> Where:
    where = Where().add_scope(scope, owner_in="r.employee_id IN ({ids})", author_column="r.reviewer_id")
    if filters.reviewer_id is not None:
        where.add("r.reviewer_id=%s", filters.reviewer_id)
    if filters.review_type:
        where.add("r.review_type=%s", filters.review_type.value)
    if filters.status:
        where.add("r.status=%s", filters.status.value)
    if filters.year:
        where.add("r.period_start BETWEEN %s AND %s", date(filters.year, 1, 1), date(filters.year, 12, 31))
    if filters.department:
        where.add("e.department=%s", filters.department)
    return where


class MySQLReviewRepository(ReviewRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, review_id: int) -> Optional[PerformanceReview]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE r.review_id=%s", (review_id,))
            row = fetchone(cur)
            return _row_to_review(row) if row else None

    def create(self, fields: dict[str, Any]) -> int:
        columns = list(fields.keys())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO performance_reviews({', '.join(columns)}) VALUES({placeholders(columns)})",
                tuple(_column_value(c, fields[c]) for c in columns),
            )
            return int(cur.lastrowid)

    def update(self, review_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        values = [_column_value(c, v) for c, v in changes.items()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE performance_reviews SET {assignments} WHERE review_id=%s", (*values, review_id))
            return cur.rowcount > 0

    def find_overlapping(
        self,
        employee_id: int,
        review_type: ReviewType,
        start: date,
        end: date,
        *,
        exclude_id: Optional[int] = None,
    ) -> Sequence[PerformanceReview]:
        where = Where()
        where.add("r.employee_id=%s", employee_id)
        where.add("r.review_type=%s", review_type.value)
        where.add("r.period_start <= %s AND r.period_end >= %s", end, start)
        if exclude_id is not None:
            where.add("r.review_id <> %s", exclude_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql}", tuple(where.params))
            return [_row_to_review(r) for r in fetchall(cur)]

    def list_page(self, scope: Scope, filters: ReviewFilters, page: PageRequest) -> Page[PerformanceReview]:
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=_where_for(scope, filters),
            order_by="r.period_end DESC, r.review_id DESC",
            page=page,
            summary_select="r.status AS status, COUNT(*) AS count, AVG(r.overall_rating) AS avg_rating",
            summary_group_by="r.status",
        )
        summary = [
            {"status": s["status"], "count": int(s["count"]), "avgRating": round2(s.get("avg_rating"))} for s in summary
        ]
        return as_page([_row_to_review(r) for r in rows], total, page, summary)

    def list_all(self, scope: Scope, filters: ReviewFilters) -> Sequence[PerformanceReview]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY r.period_end",
                tuple(where.params),
            )
            return [_row_to_review(r) for r in fetchall(cur)]
