"""Aggregations over approved performance reviews."""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from ..core.constants import TOP_PERFORMER_RATING
from ..core.enums import GoalStatus
from .model import PerformanceReview


def _avg(values: list[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


def monthly_trends(reviews: Iterable[PerformanceReview]) -> list[dict]:
    months: dict[str, list[float]] = defaultdict(list)
    for review in reviews:
        months[review.period_end.strftime("%Y-%m")].append(review.overall_rating)
    return [{"month": m, "count": len(r), "avgRating": _avg(r)} for m, r in sorted(months.items())]


def department_performance(reviews: Iterable[PerformanceReview]) -> list[dict]:
    departments: dict[str, list[PerformanceReview]] = defaultdict(list)
    for review in reviews:
        departments[review.department or "Unknown"].append(review)

    out = []
    for name in sorted(departments):
        rows = departments[name]
        top = sorted(
            (r for r in rows if r.overall_rating >= TOP_PERFORMER_RATING),
            key=lambda r: r.overall_rating,
            reverse=True,
        )
        out.append(
            {
                "department": name,
                "count": len(rows),
                "avgRating": _avg([r.overall_rating for r in rows]),
                "topPerformers": [
                    {"employeeId": r.employee_id, "name": r.employee_name, "rating": r.overall_rating} for r in top
                ],
            }
        )
    return out


def rating_distribution(reviews: Iterable[PerformanceReview]) -> dict[str, int]:
    counts = {str(score): 0 for score in range(1, 6)}
    for review in reviews:
        score = min(max(int(round(review.overall_rating)), 1), 5)
        counts[str(score)] += 1
    return counts


def goal_analytics(reviews: Iterable[PerformanceReview]) -> list[dict]:
    progress: dict[str, list[float]] = {status.value: [] for status in GoalStatus}
    for review in reviews:
        for goal in review.goals:
            status = goal.get("status") or GoalStatus.NOT_STARTED.value
            progress.setdefault(status, []).append(float(goal.get("progress") or 0))
    return [{"status": s, "count": len(p), "avgProgress": _avg(p)} for s, p in progress.items()]


def category_averages(reviews: Iterable[PerformanceReview]) -> list[dict]:
    ratings: dict[str, list[float]] = defaultdict(list)
    for review in reviews:
        for category in review.categories:
            ratings[category["name"]].append(float(category["rating"]))
    return [{"category": name, "count": len(r), "avgRating": _avg(r)} for name, r in sorted(ratings.items())]


def build_analytics(reviews: Iterable[PerformanceReview]) -> dict:
    reviews = list(reviews)
    return {
        "totalReviews": len(reviews),
        "averageRating": _avg([r.overall_rating for r in reviews]),
        "monthlyTrends": monthly_trends(reviews),
        "departmentPerformance": department_performance(reviews),
        "ratingDistribution": rating_distribution(reviews),
        "goalAnalytics": goal_analytics(reviews),
        "categoryAverages": category_averages(reviews),
    }
