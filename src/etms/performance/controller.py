from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import PERFORMANCE_PAGE_SIZE
from ..core.enums import ReviewStatus, ReviewType, STAFF_ROLES
from .model import PerformanceReview, ReviewFilters


def serialize_review(review: PerformanceReview) -> dict:
    return {
        "id": review.review_id,
        "employeeId": review.employee_id,
        "employee": {"id": review.employee_id, "name": review.employee_name, "department": review.department},
        "reviewerId": review.reviewer_id,
        "reviewer": {"id": review.reviewer_id, "name": review.reviewer_name} if review.reviewer_id is not None else None,
        "period": {"startDate": iso(review.period_start), "endDate": iso(review.period_end)},
        "type": review.review_type.value,
        "overallRating": review.overall_rating,
        "categories": list(review.categories),
        "goals": list(review.goals),
        "strengths": list(review.strengths),
        "areasForImprovement": list(review.areas_for_improvement),
        "developmentPlan": review.development_plan,
        "managerComments": review.manager_comments,
        "employeeComments": review.employee_comments,
        "status": review.status.value,
        "submittedDate": iso(review.submitted_date),
        "approvedDate": iso(review.approved_date),
        "acknowledgedDate": iso(review.acknowledged_date),
        "createdAt": iso(review.created_at),
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.performance_service

    @app.route("/api/performance", methods=["POST"], endpoint="create_review")
    @require(*STAFF_ROLES)
    def create_review():
        return created(serialize_review(service.create(current_identity(), json_body())))

    @app.route("/api/performance", methods=["GET"], endpoint="list_reviews")
    @require()
    def list_reviews():
        args = request.args
        page = PageRequest.from_args(
            args, default_limit=PERFORMANCE_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"]
        )
        review_type = args.get("type")
        status = args.get("status")
        filters = ReviewFilters(
            reviewer_id=optional_int(args.get("reviewerId"), "reviewerId"),
            review_type=require_enum(review_type, ReviewType, "type") if review_type else None,
            status=require_enum(status, ReviewStatus, "status") if status else None,
            year=optional_int(args.get("year"), "year"),
        )
        result = service.list(
            current_identity(), filters, page, employee_id=optional_int(args.get("employeeId"), "employeeId")
        )
        return paged(result, serialize_review)

    @app.route("/api/performance/analytics", methods=["GET"], endpoint="review_analytics")
    @require(*STAFF_ROLES)
    def review_analytics():
        data = service.analytics(
            current_identity(),
            year=optional_int(request.args.get("year"), "year"),
            department=request.args.get("department") or None,
        )
        return ok(data)

    @app.route("/api/performance/<int:review_id>", methods=["GET"], endpoint="get_review")
    @require()
    def get_review(review_id: int):
        return ok(serialize_review(service.get(current_identity(), review_id)))

    @app.route("/api/performance/<int:review_id>", methods=["PUT"], endpoint="update_review")
    @require()
    def update_review(review_id: int):
        return ok(serialize_review(service.update(current_identity(), review_id, json_body())))
