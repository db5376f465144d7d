"""Leave day counting and yearly entitlements."""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable

from ..core.constants import ANNUAL_LEAVE_BASE_DAYS, ANNUAL_LEAVE_MAX_DAYS, LEAVE_ENTITLEMENTS
from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveRequest


def leave_days(start: date, end: date) -> int:
    """Inclusive calendar days, e.g. Mon..Wed -> 3."""
    return (end - start).days + 1


def years_of_service(hire_date: date, today: date) -> int:
    years = today.year - hire_date.year
    if (today.month, today.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def annual_entitlement(hire_date: date, today: date) -> int:
    # one extra day for every two years of service, capped
    return min(ANNUAL_LEAVE_BASE_DAYS + years_of_service(hire_date, today) // 2, ANNUAL_LEAVE_MAX_DAYS)


def entitlements(hire_date: date, today: date) -> dict[str, int]:
    out = {LeaveType.ANNUAL.value: annual_entitlement(hire_date, today)}
    out.update(LEAVE_ENTITLEMENTS)
    return out


def build_balance(requests: Iterable[LeaveRequest], *, hire_date: date, today: date) -> dict:
    """Per-type allocated/used/remaining days from the approved requests of one year."""
    requests = list(requests)
    used: dict[str, int] = defaultdict(int)
    for request in requests:
        if request.status == LeaveStatus.APPROVED:
            used[request.leave_type.value] += request.days

    balance = {}
    for leave_type, allocated in entitlements(hire_date, today).items():
        taken = used.get(leave_type, 0)
        balance[leave_type] = {
            "allocated": allocated,
            "used": taken,
            "remaining": max(allocated - taken, 0),
            "percentage": round(taken / allocated * 100) if allocated else 0,
        }

    return {
        "balance": balance,
        "pending": [r for r in requests if r.status == LeaveStatus.PENDING],
        "yearsOfService": years_of_service(hire_date, today),
    }
