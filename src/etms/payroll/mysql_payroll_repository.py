from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import PayrollStatus
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
from .model import Payroll, PayrollBreakdown, PayrollFilters
from .repository import PayrollRepository

_SELECT = """
    p.payroll_id, p.employee_id, p.period_start, p.period_end, p.basic_salary,
    p.overtime_hours, p.overtime_rate, p.overtime_amount, p.allowances, p.deductions,
    p.gross_salary, p.net_salary, p.status, p.processed_by, p.processed_date,
    p.payment_date, p.created_at,
    CONCAT(e.first_name, ' ', e.last_name) AS employee_name, e.employee_code, e.department
"""
_FROM = "payrolls p JOIN employees e ON e.employee_id = p.employee_id"


def _row_to_payroll(row: dict) -> Payroll:
    return Payroll(
        payroll_id=int(row["payroll_id"]),
        employee_id=int(row["employee_id"]),
        period_start=row["period_start"],
        period_end=row["period_end"],
        breakdown=PayrollBreakdown(
            basic_salary=round2(row["basic_salary"]),
            overtime_hours=round2(row["overtime_hours"]),
            overtime_rate=round2(row["overtime_rate"]),
            overtime_amount=round2(row["overtime_amount"]),
            allowances=from_json(row.get("allowances"), {}),
            deductions=from_json(row.get("deductions"), {}),
            gross_salary=round2(row["gross_salary"]),
            net_salary=round2(row["net_salary"]),
        ),
        status=PayrollStatus(row["status"]),
        processed_by=int(row["processed_by"]) if row.get("processed_by") is not None else None,
        processed_date=row.get("processed_date"),
        payment_date=row.get("payment_date"),
        created_at=row.get("created_at"),
        employee_name=row.get("employee_name"),
        employee_code=row.get("employee_code"),
        department=row.get("department"),
    )


def _where_for(scope: Scope, filters: PayrollFilters) -> Where:
    where = Where().add_scope(scope, owner_in="p.employee_id IN ({ids})")
    if filters.status:
        where.add("p.status=%s", filters.status.value)
    if filters.period_from:
        where.add("p.period_start >= %s", filters.period_from)
    if filters.period_to:
        where.add("p.period_start <= %s", filters.period_to)
    return where


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, payroll_id: int) -> Optional[Payroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SELECT} FROM {_FROM} WHERE p.payroll_id=%s", (payroll_id,))
            row = fetchone(cur)
            return _row_to_payroll(row) if row else None

    def exists_for_period(self, employee_id: int, period_start: date, period_end: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM payrolls WHERE employee_id=%s AND period_start=%s AND period_end=%s",
                (employee_id, period_start, period_end),
            )
            return fetchone(cur) is not None

    def create(self, *, employee_id: int, period_start: date, period_end: date, breakdown: PayrollBreakdown) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO payrolls(
                        employee_id, period_start, period_end, basic_salary,
                        overtime_hours, overtime_rate, overtime_amount,
                        allowances, deductions, gross_salary, net_salary, status
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        employee_id,
                        period_start,
                        period_end,
                        breakdown.basic_salary,
                        breakdown.overtime_hours,
                        breakdown.overtime_rate,
                        breakdown.overtime_amount,
                        to_json(breakdown.allowances),
                        to_json(breakdown.deductions),
                        breakdown.gross_salary,
                        breakdown.net_salary,
                        PayrollStatus.DRAFT.value,
                    ),
                )
                return int(cur.lastrowid)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Payroll already exists for this period")
            raise

    def update(self, payroll_id: int, changes: dict[str, Any]) -> bool:
        if not changes:
            return False
        assignments = ", ".join(f"{column}=%s" for column in changes)
        values = [v.value if isinstance(v, PayrollStatus) else v for v in changes.values()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE payrolls SET {assignments} WHERE payroll_id=%s", (*values, payroll_id))
            return cur.rowcount > 0

    def list_page(self, scope: Scope, filters: PayrollFilters, page: PageRequest) -> Page[Payroll]:
        where = _where_for(scope, filters)
        rows, total, summary = run_paged_query(
            self._conn_factory,
            select=_SELECT,
            from_=_FROM,
            where=where,
            order_by="p.period_start DESC, p.payroll_id DESC",
            page=page,
            summary_select="p.status AS status, COUNT(*) AS count, SUM(p.gross_salary) AS total_gross, SUM(p.net_salary) AS total_net",
            summary_group_by="p.status",
        )
        summary = [
            {
                "status": s["status"],
                "count": int(s["count"]),
                "totalGross": round2(s.get("total_gross")),
                "totalNet": round2(s.get("total_net")),
            }
            for s in summary
        ]
        return as_page([_row_to_payroll(r) for r in rows], total, page, summary)

    def list_all(self, scope: Scope, filters: PayrollFilters) -> Sequence[Payroll]:
        where = _where_for(scope, filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SELECT} FROM {_FROM} WHERE {where.sql} ORDER BY p.period_start, p.payroll_id",
                tuple(where.params),
            )
            return [_row_to_payroll(r) for r in fetchall(cur)]

    def status_totals(self, *, year: Optional[int] = None) -> Sequence[dict]:
        where = Where()
        if year:
            where.add("period_start BETWEEN %s AND %s", date(year, 1, 1), date(year, 12, 31))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS count, SUM(gross_salary) AS total_gross,
                       SUM(net_salary) AS total_net, AVG(net_salary) AS avg_net
                FROM payrolls WHERE {where.sql} GROUP BY status
                """,
                tuple(where.params),
            )
            return [
                {
                    "status": r["status"],
                    "count": int(r["count"]),
                    "totalGross": round2(r.get("total_gross")),
                    "totalNet": round2(r.get("total_net")),
                    "averageNet": round2(r.get("avg_net")),
                }
                for r in fetchall(cur)
            ]
