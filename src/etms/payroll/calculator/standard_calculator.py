from __future__ import annotations

from datetime import date

from ...core.constants import (
    DEFAULT_STANDARD_WORK_HOURS,
    INSURANCE_RATE,
    OVERTIME_MULTIPLIER,
    PAYROLL_ALLOWANCES,
    PAYROLL_MONTH_DAYS,
    PROVIDENT_FUND_RATE,
)
from ..model import PayrollBreakdown
from .base import PayrollCalculator

# (upper bound of bracket, base tax at the lower bound, marginal rate, lower bound)
TAX_BRACKETS = (
    (50_000.0, 0.0, 0.0, 0.0),
    (100_000.0, 0.0, 0.10, 50_000.0),
    (200_000.0, 5_000.0, 0.20, 100_000.0),
    (float("inf"), 25_000.0, 0.30, 200_000.0),
)


def progressive_tax(gross: float) -> float:
    for upper, base, rate, lower in TAX_BRACKETS:
        if gross <= upper:
            return round(base + (gross - lower) * rate, 2)
    return 0.0


def period_days(period_start: date, period_end: date) -> int:
    return (period_end - period_start).days + 1


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: pro-rated monthly salary, 1.5x overtime, fixed allowances, progressive tax."""

    def calculate(self, *, salary: float, period_start: date, period_end: date, overtime_hours: float) -> PayrollBreakdown:
        daily = salary / PAYROLL_MONTH_DAYS
        basic = round(daily * period_days(period_start, period_end), 2)

        rate = round(salary / (PAYROLL_MONTH_DAYS * DEFAULT_STANDARD_WORK_HOURS) * OVERTIME_MULTIPLIER, 2)
        overtime_amount = round(overtime_hours * rate, 2)

        allowances = dict(PAYROLL_ALLOWANCES)
        gross = round(basic + overtime_amount + sum(allowances.values()), 2)

        deductions = {
            "tax": progressive_tax(gross),
            "insurance": round(gross * INSURANCE_RATE, 2),
            "providentFund": round(gross * PROVIDENT_FUND_RATE, 2),
            "other": 0.0,
        }
        net = round(gross - sum(deductions.values()), 2)

        return PayrollBreakdown(
            basic_salary=basic,
            overtime_hours=round(overtime_hours, 2),
            overtime_rate=rate,
            overtime_amount=overtime_amount,
            allowances=allowances,
            deductions=deductions,
            gross_salary=gross,
            net_salary=net,
        )
