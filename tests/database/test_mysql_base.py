from __future__ import annotations

import mysql.connector
import pytest

from etms.access.scope import Scope
from etms.common.pagination import PageRequest
from etms.database.mysql_base import Where, is_duplicate_key, run_paged_query
from etms.tasks.mysql_task_repository import _OWNER_IN

EMPLOYEE_IN = "e.employee_id IN ({ids})"


class RecordingCursor:
    def __init__(self, total: int, rows: list[dict]):
        self.executed: list[tuple[str, tuple]] = []
        self._total = total
        self._rows = rows

    def execute(self, sql, params=()):
        self.executed.append((sql, tuple(params)))

    def fetchone(self):
        return {"total": self._total}

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class RecordingConnection:
    def __init__(self, cursor: RecordingCursor):
        self._cursor = cursor
        self.committed = False
        self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        pass

    def close(self):
        self.closed = True


class StubDatabase:
    def __init__(self, cursor: RecordingCursor):
        self.connection = RecordingConnection(cursor)

    def connect(self):
        return self.connection


def test_unrestricted_scope_adds_nothing():
    where = Where().add_scope(Scope.everyone(), owner_in=EMPLOYEE_IN)

    assert where.sql == "1=1"
    assert where.params == []


def test_empty_scope_matches_no_rows():
    where = Where().add_scope(Scope.nobody(), owner_in=EMPLOYEE_IN)

    assert where.sql == "1=0"
    assert where.params == []


def test_team_scope_or_authored_by():
    where = Where().add_scope(Scope.of({5, 3, 4}, authored_by=3), owner_in=_OWNER_IN, author_column="t.assigned_by")

    assert where.sql == (
        "(t.task_id IN (SELECT ta.task_id FROM task_assignees ta WHERE ta.employee_id IN (%s,%s,%s))"
        " OR t.assigned_by=%s)"
    )
    assert where.params == [3, 4, 5, 3]


def test_authored_only_scope_without_author_column_matches_nothing():
    where = Where().add_scope(Scope(employee_ids=frozenset(), authored_by=3), owner_in=EMPLOYEE_IN)

    assert where.sql == "1=0"


def test_narrowed_scope_is_and_ed_with_role_scope():
    where = Where().add("e.status=%s", "active").add_scope(Scope.of({3, 4}).narrow(6), owner_in=EMPLOYEE_IN)

    assert where.sql == "e.status=%s AND (e.employee_id IN (%s,%s)) AND e.employee_id IN (%s)"
    assert where.params == ["active", 3, 4, 6]


def test_narrowing_an_unrestricted_scope_filters_to_that_employee():
    where = Where().add_scope(Scope.everyone().narrow(4), owner_in=EMPLOYEE_IN)

    assert where.sql == "e.employee_id IN (%s)"
    assert where.params == [4]


def test_add_in_with_no_values():
    assert Where().add_in("t.status", []).sql == "1=0"


def test_paged_query_fetches_page_and_summary():
    cursor = RecordingCursor(total=3, rows=[{"id": 1}, {"id": 2}])
    db = StubDatabase(cursor)
    where = Where().add("l.status=%s", "pending")

    rows, total, summary = run_paged_query(
        db,
        select="l.leave_id AS id",
        from_="leave_requests l",
        where=where,
        order_by="l.created_at DESC",
        page=PageRequest(page=1, limit=2),
        summary_select="l.status AS status, COUNT(*) AS count",
        summary_group_by="l.status",
    )

    assert total == 3
    assert rows == [{"id": 1}, {"id": 2}]
    assert summary == [{"id": 1}, {"id": 2}]
    count_sql, page_sql, summary_sql = [sql for sql, _ in cursor.executed]
    assert count_sql.startswith("SELECT COUNT(*) AS total FROM leave_requests l WHERE l.status=%s")
    assert page_sql.endswith("ORDER BY l.created_at DESC LIMIT %s OFFSET %s")
    assert cursor.executed[1][1] == ("pending", 2, 0)
    assert "GROUP BY l.status" in summary_sql
    assert db.connection.committed and db.connection.closed


def test_paged_query_skips_page_past_the_end():
    cursor = RecordingCursor(total=3, rows=[{"id": 1}])
    db = StubDatabase(cursor)

    rows, total, summary = run_paged_query(
        db,
        select="l.leave_id AS id",
        from_="leave_requests l",
        where=Where(),
        order_by="l.created_at DESC",
        page=PageRequest(page=2, limit=5),
    )

    assert (rows, total, summary) == ([], 3, [])
    assert len(cursor.executed) == 1
    assert cursor.executed[0][0] == "SELECT COUNT(*) AS total FROM leave_requests l WHERE 1=1"


@pytest.mark.parametrize(
    "exc, expected",
    [
        (mysql.connector.IntegrityError(msg="Duplicate entry", errno=1062), True),
        (mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=1452), False),
        (ValueError("Duplicate entry"), False),
    ],
)
def test_is_duplicate_key(exc, expected):
    assert is_duplicate_key(exc) is expected
