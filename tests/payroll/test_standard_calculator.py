from datetime import date

import pytest

from etms.payroll.calculator.standard_calculator import StandardPayrollCalculator, period_days, progressive_tax


@pytest.mark.parametrize(
    "gross, tax",
    [
        (40_000, 0.0),
        (50_000, 0.0),
        (60_000, 1_000.0),
        (150_000, 15_000.0),
        (250_000, 40_000.0),
    ],
)
def test_progressive_tax_brackets(gross, tax):
    assert progressive_tax(gross) == tax


def test_period_days_inclusive():
    assert period_days(date(2025, 1, 1), date(2025, 1, 30)) == 30


def test_standard_calculator_breakdown():
    calc = StandardPayrollCalculator()

    b = calc.calculate(salary=60_000, period_start=date(2025, 1, 1), period_end=date(2025, 1, 30), overtime_hours=10)

    assert b.basic_salary == 60_000.0
    assert b.overtime_rate == 375.0
    assert b.overtime_amount == 3_750.0
    assert b.gross_salary == 73_750.0
    assert b.deductions["tax"] == 2_375.0
    assert b.deductions["insurance"] == 1_475.0
    assert b.deductions["providentFund"] == 5_900.0
    assert b.net_salary == 64_000.0


def test_half_period_is_prorated():
    calc = StandardPayrollCalculator()

    b = calc.calculate(salary=30_000, period_start=date(2025, 2, 1), period_end=date(2025, 2, 15), overtime_hours=0)

    assert b.basic_salary == 15_000.0
    assert b.overtime_amount == 0.0
