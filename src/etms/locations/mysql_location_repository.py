from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import LocationActivity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import Where, as_page, db_cursor, fetchall, fetchone, placeholders, run_paged_query
from .model import Location, LocationFilters
from .repository import LocationRepository

_SELECT = """
    l.location_id, l.employee_id, l.latitude, l.longitude, l.address, l.accuracy,
    l.activity, l.recorded_at,
    CONCAT(e.first_name, ' ', e.last_name) AS employee_name, e.employee_code
"""
_FROM = "locations l JOIN employees e ON e.employee_id = l.employee_id"


def _row_to_location(row: dict) -> Location:
    return Location(
        location_id=int(row["location_id"]),
        employee_id=int(row["employee_id"]),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        address=row.get("address"),
        accuracy=float(row["accuracy"]) if row.get("accuracy") is not None else None,
        activity=LocationActivity(row["activity"]),
        recorded_at=row["recorded_at"],
        employee_name=row.get("employee_name"),
        employee_code=row.get("employee_code"),
    )


def _where_for(scope: Scope, filters: LocationFilters) -> Where:
    where = Where().add_scope(scope, owner_in="l.employee_id IN ({ids})")
    if filters.start:
        where.add("l.recorded_at >= %s", filters.start)
    if filters.end:
        where.add("l.recorded_at <= %s", filters.end)
    if filters.activity:
        where.add("l.activity=%s", filters.activity.value)
    return where


class MySQLLocationRepository(LocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, location_id: int) -> Optional[Location]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE l.location_id=%s", (location_id,))
            row = fetchone(cur)
            return _row_to_location(row) if row else None

    def create(self, fields: dict[str, Any]) -> int:
        columns = list(fields.keys())
        values = [v.value if isinstance(v, LocationActivity) else v for v in fields.values()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO locations({', '.join(columns)}) VALUES({placeholders(columns)})",
                tuple(values),
            )
            return int(cur.lastrowid)

    def list_page(self, scope: Scope, filters: LocationFilters, page: PageRequest) -> Page[Location]:
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=_where_for(scope, filters),
            order_by="l.recorded_at DESC, l.location_id DESC",
            page=page,
            summary_select="l.activity AS activity, COUNT(*) AS count",
            summary_group_by="l.activity",
        )
        summary = [{"activity": s["activity"], "count": int(s["count"])} for s in summary]
        return as_page([_row_to_location(r) for r in rows], total, page, summary)

    def list_all(self, scope: Scope, filters: LocationFilters) -> Sequence[Location]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY l.recorded_at, l.location_id",
                tuple(where.params),
            )
            return [_row_to_location(r) for r in fetchall(cur)]

    def latest_per_employee(self, scope: Scope, *, since: datetime) -> Sequence[Location]:
        where = Where().add_scope(scope, owner_in="l.employee_id IN ({ids})")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SELECT} FROM {_FROM}
                JOIN (
                    SELECT employee_id, MAX(recorded_at) AS latest
                    FROM locations WHERE recorded_at >= %s GROUP BY employee_id
                ) last ON last.employee_id = l.employee_id AND last.latest = l.recorded_at
                WHERE {where.sql}
                ORDER BY l.recorded_at DESC, l.location_id DESC
                """,
                (since, *where.params),
            )
            latest: dict[int, Location] = {}
            for row in fetchall(cur):
                location = _row_to_location(row)
                # two pings with the same timestamp: keep the newest id
                latest.setdefault(location.employee_id, location)
            return list(latest.values())

    def delete_before(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM locations WHERE recorded_at < %s", (cutoff,))
            return int(cur.rowcount)
