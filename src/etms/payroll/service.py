from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

import mysql.connector

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..access.scope import Scope
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_int, require_enum, require_fields
from ..core.enums import EmployeeStatus, PayrollStatus
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..employees.model import Employee, EmployeeFilters
from ..employees.repository import EmployeeRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import Payroll, PayrollFilters, RunResult
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

# current status -> the only status it may move to
NEXT_STATUS = {
    PayrollStatus.DRAFT: PayrollStatus.PROCESSED,
    PayrollStatus.PROCESSED: PayrollStatus.PAID,
}


class PayrollService:
    def __init__(
        self,
        payrolls: PayrollRepository,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        policy: AccessPolicy,
        *,
        calculator: Optional[PayrollCalculator] = None,
    ):
        self._payrolls = payrolls
        self._employees = employees
        self._attendance = attendance
        self._policy = policy
        self._calculator = calculator or StandardPayrollCalculator()

    def calculate(self, identity: Identity, payload: Mapping[str, Any]) -> list[RunResult]:
        """Create draft payrolls for one employee or every active employee; existing periods are skipped."""
        self._policy.enforce(identity, Entity.PAYROLL, Action.CREATE)
        require_fields(payload, ("payPeriodStart", "payPeriodEnd"))
        start = parse_iso_date(str(payload["payPeriodStart"]))
        end = parse_iso_date(str(payload["payPeriodEnd"]))
        if end < start:
            raise ValidationError("payPeriodEnd must not be before payPeriodStart")

        employee_id = optional_int(payload.get("employeeId"), "employeeId")
        if employee_id is not None:
            employee = self._employees.get_by_id(employee_id)
            if employee is None:
                raise NotFoundError("Employee not found")
            employees: Sequence[Employee] = [employee]
        else:
            employees = self._employees.list_all(Scope.everyone(), EmployeeFilters(status=EmployeeStatus.ACTIVE))

        results = [self._run_one(employee, start, end) for employee in employees]
        logger.info(
            "payroll run %s..%s by user=%s: %s success, %s skipped, %s error",
            start,
            end,
            identity.user_id,
            sum(1 for r in results if r.status == "success"),
            sum(1 for r in results if r.status == "skipped"),
            sum(1 for r in results if r.status == "error"),
        )
        return results

    def _run_one(self, employee: Employee, start: date, end: date) -> RunResult:
        if self._payrolls.exists_for_period(employee.employee_id, start, end):
            return RunResult(employee.employee_id, employee.full_name, "skipped", message="Payroll already exists for this period")
        try:
            overtime_hours = self._attendance.total_overtime(employee.employee_id, start, end)
            breakdown = self._calculator.calculate(
                salary=employee.salary, period_start=start, period_end=end, overtime_hours=overtime_hours
            )
            payroll_id = self._payrolls.create(
                employee_id=employee.employee_id, period_start=start, period_end=end, breakdown=breakdown
            )
        except ConflictError as exc:
            # a concurrent run stored this period first
            return RunResult(employee.employee_id, employee.full_name, "skipped", message=exc.message)
        except DomainError as exc:
            logger.warning("payroll failed employee=%s: %s", employee.employee_id, exc.message)
            return RunResult(employee.employee_id, employee.full_name, "error", message=exc.message)
        except mysql.connector.Error as exc:
            logger.exception("payroll failed employee=%s", employee.employee_id)
            return RunResult(employee.employee_id, employee.full_name, "error", message=str(exc.msg or exc))
        return RunResult(employee.employee_id, employee.full_name, "success", payroll_id=payroll_id)

    def list(
        self,
        identity: Identity,
        filters: PayrollFilters,
        page: PageRequest,
        *,
        employee_id: Optional[int] = None,
    ) -> Page[Payroll]:
        self._policy.enforce(identity, Entity.PAYROLL, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.PAYROLL).narrow(employee_id)
        return self._payrolls.list_page(scope, filters, page)

    def get(self, identity: Identity, payroll_id: int) -> Payroll:
        payroll = self._require(payroll_id)
        self._policy.enforce(identity, Entity.PAYROLL, Action.READ, Target.owned_by(payroll.employee_id))
        return payroll

    def update_status(self, identity: Identity, payroll_id: int, status: Any, *, now: datetime | None = None) -> Payroll:
        now = now or now_local()
        self._policy.enforce(identity, Entity.PAYROLL, Action.UPDATE)
        payroll = self._require(payroll_id)
        new_status = require_enum(status, PayrollStatus, "status")

        if NEXT_STATUS.get(payroll.status) != new_status:
            raise ValidationError(f"Cannot change payroll status from '{payroll.status.value}' to '{new_status.value}'")

        changes: dict[str, Any] = {"status": new_status}
        if new_status == PayrollStatus.PROCESSED:
            changes.update(processed_by=identity.user_id, processed_date=now)
        else:
            changes["payment_date"] = now
        self._payrolls.update(payroll.payroll_id, changes)
        logger.info("payroll id=%s %s -> %s by user=%s", payroll.payroll_id, payroll.status.value, new_status.value, identity.user_id)
        return self._require(payroll.payroll_id)

    def stats(self, identity: Identity, *, year: Optional[int] = None) -> dict:
        self._policy.enforce(identity, Entity.PAYROLL, Action.REPORT)
        by_status = list(self._payrolls.status_totals(year=year))
        return {
            "year": year,
            "byStatus": by_status,
            "totalPayrolls": sum(s["count"] for s in by_status),
            "totalGross": round(sum(s["totalGross"] for s in by_status), 2),
            "totalNet": round(sum(s["totalNet"] for s in by_status), 2),
        }

    def _require(self, payroll_id: int) -> Payroll:
        payroll = self._payrolls.get_by_id(payroll_id)
        if payroll is None:
            raise NotFoundError("Payroll not found")
        return payroll
