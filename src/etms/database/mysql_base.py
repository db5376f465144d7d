from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errorcode

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: BaseException) -> bool:
    return isinstance(exc, mysql.connector.IntegrityError) and getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def to_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def from_json(value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def placeholders(values: Sequence[Any]) -> str:
    return ",".join(["%s"] * len(values))


class Where:
    """Accumulates AND-ed SQL predicates with their parameters."""

    def __init__(self) -> None:
        self._clauses: list[str] = []
        self.params: list[Any] = []

    def add(self, clause: str, *params: Any) -> "Where":
        self._clauses.append(clause)
        self.params.extend(params)
        return self

    def add_in(self, column: str, values: Iterable[Any]) -> "Where":
        values = list(values)
        if not values:
            return self.add("1=0")
        return self.add(f"{column} IN ({placeholders(values)})", *values)

    def add_scope(self, scope: Scope, *, owner_in: str, author_column: Optional[str] = None) -> "Where":
        """Translate a Scope into SQL.

        ``owner_in`` is a template with an ``{ids}`` slot, e.g. ``"a.employee_id IN ({ids})"``.
        """
        if not scope.unrestricted:
            branches: list[str] = []
            params: list[Any] = []
            ids = sorted(scope.employee_ids or ())
            if ids:
                branches.append(owner_in.format(ids=placeholders(ids)))
                params.extend(ids)
            if scope.authored_by is not None and author_column:
                branches.append(f"{author_column}=%s")
                params.append(scope.authored_by)
            if not branches:
                self.add("1=0")
            else:
                self.add("(" + " OR ".join(branches) + ")", *params)

        if scope.narrowed_to is not None:
            self.add(owner_in.format(ids="%s"), scope.narrowed_to)
        return self

    @property
    def sql(self) -> str:
        return " AND ".join(self._clauses) if self._clauses else "1=1"


def run_paged_query(
    conn_factory: DatabaseConnection,
    *,
    select: str,
    from_: str,
    where: Where,
    order_by: str,
    page: PageRequest,
    summary_select: Optional[str] = None,
    summary_group_by: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int, List[Dict[str, Any]]]:
    """Count, fetch one page and compute the grouped summary for one predicate."""
    with db_cursor(conn_factory) as (_, cur):
        cur.execute(f"SELECT COUNT(*) AS total FROM {from_} WHERE {where.sql}", tuple(where.params))
        total = int((fetchone(cur) or {}).get("total") or 0)

        rows: List[Dict[str, Any]] = []
        if page.offset < total:
            cur.execute(
                f"SELECT {select} FROM {from_} WHERE {where.sql} ORDER BY {order_by} LIMIT %s OFFSET %s",
                tuple(where.params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)

        summary: List[Dict[str, Any]] = []
        if summary_select and summary_group_by:
            cur.execute(
                f"SELECT {summary_select} FROM {from_} WHERE {where.sql} GROUP BY {summary_group_by}",
                tuple(where.params),
            )
            summary = fetchall(cur)

    return rows, total, summary


def as_page(records: Sequence[Any], total: int, page: PageRequest, summary: List[Dict[str, Any]]) -> Page:
    return Page(records=list(records), page=page.page, limit=page.limit, total=total, summary=summary)


def round2(value: Any) -> float:
    return round(float(value or 0), 2)
