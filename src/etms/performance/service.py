from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..common.datetime_utils import iso, now_local, optional_date, parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import (
    parse_int,
    parse_number,
    require_enum,
    require_fields,
    require_non_empty,
    string_list,
)
from ..core.enums import GoalStatus, ReviewStatus, ReviewType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .analytics import build_analytics
from .model import PerformanceReview, ReviewFilters
from .repository import ReviewRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "employeeId",
    "period",
    "type",
    "overallRating",
    "categories",
    "developmentPlan",
    "managerComments",
)

# action -> (required current status, next status, policy action, timestamp column)
TRANSITIONS = {
    "submit": (ReviewStatus.DRAFT, ReviewStatus.SUBMITTED, Action.SUBMIT, "submitted_date"),
    "approve": (ReviewStatus.SUBMITTED, ReviewStatus.APPROVED, Action.APPROVE, "approved_date"),
    "acknowledge": (ReviewStatus.APPROVED, ReviewStatus.ACKNOWLEDGED, Action.ACKNOWLEDGE, "acknowledged_date"),
}


def _rating(value: Any, field_name: str) -> float:
    return parse_number(value, field_name, minimum=1, maximum=5)


def _categories(raw: Any) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("categories must be a non-empty list")
    out = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise ValidationError("each category must be an object")
        out.append(
            {
                "name": require_non_empty(item.get("name"), "category name"),
                "rating": _rating(item.get("rating"), "category rating"),
                "comments": item.get("comments"),
            }
        )
    return out


def _goals(raw: Any) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("goals must be a list")
    out = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise ValidationError("each goal must be an object")
        out.append(
            {
                "title": require_non_empty(item.get("title"), "goal title"),
                "description": item.get("description"),
                "targetDate": iso(optional_date(item.get("targetDate"))),
                "status": require_enum(item.get("status") or GoalStatus.NOT_STARTED.value, GoalStatus, "goal status").value,
                "progress": parse_number(item.get("progress", 0), "goal progress", minimum=0, maximum=100),
                "comments": item.get("comments"),
            }
        )
    return out


def _period(raw: Any) -> tuple[date, date]:
    if not isinstance(raw, Mapping):
        raise ValidationError("period must be an object with startDate and endDate")
    require_fields(raw, ("startDate", "endDate"))
    start = parse_iso_date(str(raw["startDate"]))
    end = parse_iso_date(str(raw["endDate"]))
    if end <= start:
        raise ValidationError("Review period end date must be after start date")
    return start, end


class PerformanceService:
    def __init__(self, reviews: ReviewRepository, employees: EmployeeRepository, policy: AccessPolicy):
        self._reviews = reviews
        self._employees = employees
        self._policy = policy

    def create(self, identity: Identity, payload: Mapping[str, Any], *, now: datetime | None = None) -> PerformanceReview:
        self._policy.enforce(identity, Entity.PERFORMANCE, Action.CREATE)
        require_fields(payload, REQUIRED_FIELDS)

        employee_id = parse_int(payload["employeeId"], "employeeId")
        if self._employees.get_by_id(employee_id) is None:
            raise NotFoundError("Employee not found")
        self._policy.enforce(identity, Entity.PERFORMANCE, Action.CREATE, Target.owned_by(employee_id))

        start, end = _period(payload["period"])
        review_type = require_enum(payload["type"], ReviewType, "type")
        if self._reviews.find_overlapping(employee_id, review_type, start, end):
            raise ConflictError("A review of this type already exists for an overlapping period")

        review_id = self._reviews.create(
            {
                "employee_id": employee_id,
                "reviewer_id": identity.employee_id,
                "period_start": start,
                "period_end": end,
                "review_type": review_type,
                "overall_rating": _rating(payload["overallRating"], "overallRating"),
                "categories": _categories(payload["categories"]),
                "goals": _goals(payload.get("goals")),
                "strengths": string_list(payload.get("strengths"), "strengths"),
                "areas_for_improvement": string_list(payload.get("areasForImprovement"), "areasForImprovement"),
                "development_plan": require_non_empty(payload["developmentPlan"], "developmentPlan"),
                "manager_comments": require_non_empty(payload["managerComments"], "managerComments"),
                "status": ReviewStatus.DRAFT,
                "created_at": now or now_local(),
            }
        )
        logger.info("review created id=%s employee=%s by user=%s", review_id, employee_id, identity.user_id)
        return self._require(review_id)

    def list(
        self,
        identity: Identity,
        filters: ReviewFilters,
        page: PageRequest,
        *,
        employee_id: Optional[int] = None,
    ) -> Page[PerformanceReview]:
        self._policy.enforce(identity, Entity.PERFORMANCE, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.PERFORMANCE).narrow(employee_id)
        return self._reviews.list_page(scope, filters, page)

    def get(self, identity: Identity, review_id: int) -> PerformanceReview:
        review = self._require(review_id)
        self._policy.enforce(identity, Entity.PERFORMANCE, Action.READ, review.target)
        return review

    def update(
        self,
        identity: Identity,
        review_id: int,
        payload: Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> PerformanceReview:
        now = now or now_local()
        review = self._require(review_id)
        action = payload.get("action")

        if action in TRANSITIONS:
            current, nxt, policy_action, stamp = TRANSITIONS[action]
            self._policy.enforce(identity, Entity.PERFORMANCE, policy_action, review.target)
            if review.status != current:
                raise ValidationError(f"Cannot {action} a review in '{review.status.value}' status")
            changes: dict[str, Any] = {"status": nxt, stamp: now}
            if action == "acknowledge" and payload.get("employeeComments"):
                changes["employee_comments"] = str(payload["employeeComments"]).strip()
            self._reviews.update(review.review_id, changes)
            logger.info("review %s id=%s by user=%s", action, review.review_id, identity.user_id)
            return self._require(review.review_id)

        if action not in (None, ""):
            raise ValidationError("action must be one of: submit, approve, acknowledge")

        if identity.employee_id is not None and identity.employee_id == review.employee_id and not identity.role.is_privileged:
            # the reviewed employee may only respond
            self._policy.enforce(identity, Entity.PERFORMANCE, Action.COMMENT, review.target)
            if "employeeComments" not in payload:
                raise ValidationError("Only employeeComments can be updated by the reviewed employee")
            self._reviews.update(review.review_id, {"employee_comments": payload["employeeComments"]})
            return self._require(review.review_id)

        self._policy.enforce(identity, Entity.PERFORMANCE, Action.UPDATE, review.target)
        if review.status != ReviewStatus.DRAFT:
            raise ValidationError("Only draft reviews can be edited")
        self._reviews.update(review.review_id, self._content_changes(review, payload))
        return self._require(review.review_id)

    def analytics(
        self,
        identity: Identity,
        *,
        year: Optional[int] = None,
        department: Optional[str] = None,
        today: date | None = None,
    ) -> dict:
        """Aggregates over approved reviews; managers see their direct reports."""
        self._policy.enforce(identity, Entity.PERFORMANCE, Action.REPORT)
        year = year or (today or now_local().date()).year
        scope = self._policy.scope_for(identity, Entity.PERFORMANCE, Action.REPORT)
        reviews = self._reviews.list_all(
            scope, ReviewFilters(status=ReviewStatus.APPROVED, year=year, department=department)
        )
        result = build_analytics(reviews)
        result["year"] = year
        return result

    def _require(self, review_id: int) -> PerformanceReview:
        review = self._reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError("Performance review not found")
        return review

    def _content_changes(self, review: PerformanceReview, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "overallRating" in payload:
            changes["overall_rating"] = _rating(payload["overallRating"], "overallRating")
        if "categories" in payload:
            changes["categories"] = _categories(payload["categories"])
        if "goals" in payload:
            changes["goals"] = _goals(payload["goals"])
        if "strengths" in payload:
            changes["strengths"] = string_list(payload["strengths"], "strengths")
        if "areasForImprovement" in payload:
            changes["areas_for_improvement"] = string_list(payload["areasForImprovement"], "areasForImprovement")
        if "developmentPlan" in payload:
            changes["development_plan"] = require_non_empty(payload["developmentPlan"], "developmentPlan")
        if "managerComments" in payload:
            changes["manager_comments"] = require_non_empty(payload["managerComments"], "managerComments")
        if "type" in payload or "period" in payload:
            review_type = require_enum(payload.get("type", review.review_type.value), ReviewType, "type")
            start, end = (
                _period(payload["period"]) if "period" in payload else (review.period_start, review.period_end)
            )
            if self._reviews.find_overlapping(review.employee_id, review_type, start, end, exclude_id=review.review_id):
                raise ConflictError("A review of this type already exists for an overlapping period")
            changes.update(review_type=review_type, period_start=start, period_end=end)
        return changes
