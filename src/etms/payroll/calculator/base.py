from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from ..model import PayrollBreakdown


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def calculate(self, *, salary: float, period_start: date, period_end: date, overtime_hours: float) -> PayrollBreakdown:
        raise NotImplementedError
