from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from ..core.enums import ReviewType
from .model import PerformanceReview, ReviewFilters


class ReviewRepository(Protocol):
    def get_by_id(self, review_id: int) -> Optional[PerformanceReview]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, review_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def find_overlapping(
        self,
        employee_id: int,
        review_type: ReviewType,
        start: date,
        end: date,
        *,
        exclude_id: Optional[int] = None,
    ) -> Sequence[PerformanceReview]:
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: ReviewFilters, page: PageRequest) -> Page[PerformanceReview]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: ReviewFilters) -> Sequence[PerformanceReview]:
        raise NotImplementedError
