from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import Payroll, PayrollBreakdown, PayrollFilters


class PayrollRepository(Protocol):
    def get_by_id(self, payroll_id: int) -> Optional[Payroll]:
        raise NotImplementedError

    def exists_for_period(self, employee_id: int, period_start: date, period_end: date) -> bool:
        raise NotImplementedError

    def create(self, *, employee_id: int, period_start: date, period_end: date, breakdown: PayrollBreakdown) -> int:
        raise NotImplementedError

    def update(self, payroll_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: PayrollFilters, page: PageRequest) -> Page[Payroll]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: PayrollFilters) -> Sequence[Payroll]:
        raise NotImplementedError

    def status_totals(self, *, year: Optional[int] = None) -> Sequence[dict]:
        raise NotImplementedError
