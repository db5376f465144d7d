from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..access.policy import Target
from ..core.enums import ReviewStatus, ReviewType


@dataclass(frozen=True)
class PerformanceReview:
    review_id: int
    employee_id: int
    reviewer_id: Optional[int]
    period_start: date
    period_end: date
    review_type: ReviewType
    overall_rating: float
    categories: tuple[dict[str, Any], ...] = ()
    goals: tuple[dict[str, Any], ...] = ()
    strengths: tuple[str, ...] = ()
    areas_for_improvement: tuple[str, ...] = ()
    development_plan: Optional[str] = None
    manager_comments: Optional[str] = None
    employee_comments: Optional[str] = None
    status: ReviewStatus = ReviewStatus.DRAFT
    submitted_date: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    acknowledged_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    employee_name: Optional[str] = None
    department: Optional[str] = None
    reviewer_name: Optional[str] = None

    @property
    def target(self) -> Target:
        """The reviewed employee owns the review; the reviewer authored it."""
        return Target.owned_by(self.employee_id, author_id=self.reviewer_id)


@dataclass(frozen=True)
class ReviewFilters:
    reviewer_id: Optional[int] = None
    review_type: Optional[ReviewType] = None
    status: Optional[ReviewStatus] = None
    year: Optional[int] = None
    department: Optional[str] = None

    def matches(self, review: PerformanceReview) -> bool:
        if self.reviewer_id is not None and review.reviewer_id != self.reviewer_id:
            return False
        if self.review_type and review.review_type != self.review_type:
            return False
        if self.status and review.status != self.status:
            return False
        if self.year and review.period_start.year != self.year:
            return False
        if self.department and review.department != self.department:
            return False
        return True
