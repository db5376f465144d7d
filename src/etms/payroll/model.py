from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import PayrollStatus


@dataclass(frozen=True)
class PayrollBreakdown:
    """Money figures for one employee and pay period, rounded to 2 dp."""

    basic_salary: float
    overtime_hours: float
    overtime_rate: float
    overtime_amount: float
    allowances: dict[str, float]
    deductions: dict[str, float]
    gross_salary: float
    net_salary: float


@dataclass(frozen=True)
class Payroll:
    payroll_id: int
    employee_id: int
    period_start: date
    period_end: date
    breakdown: PayrollBreakdown
    status: PayrollStatus = PayrollStatus.DRAFT
    processed_by: Optional[int] = None
    processed_date: Optional[datetime] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class PayrollFilters:
    status: Optional[PayrollStatus] = None
    period_from: Optional[date] = None
    period_to: Optional[date] = None

    def matches(self, payroll: Payroll) -> bool:
        if self.status and payroll.status != self.status:
            return False
        if self.period_from and payroll.period_start < self.period_from:
            return False
        if self.period_to and payroll.period_start > self.period_to:
            return False
        return True


@dataclass(frozen=True)
class RunResult:
    employee_id: int
    employee_name: str
    status: str
    payroll_id: Optional[int] = None
    message: Optional[str] = None
