from __future__ import annotations

from datetime import date, datetime

import pytest

from etms.common.pagination import PageRequest
from etms.core.enums import LeaveStatus
from etms.core.exceptions import AuthorizationError, ConflictError, ValidationError
from etms.leave.model import LeaveFilters

NOW = datetime(2025, 3, 3, 10, 0)


@pytest.fixture
def service(container):
    return container.leave_service


def apply(service, identity, start="2025-03-10", end="2025-03-12", **extra):
    payload = {"type": "annual", "startDate": start, "endDate": end, "reason": "Family trip", **extra}
    return service.apply(identity, payload, now=NOW)


def test_apply_counts_inclusive_days(service, who):
    leave = apply(service, who("emily"))

    assert leave.status == LeaveStatus.PENDING
    assert leave.days == 3
    assert leave.employee_id == 4


def test_end_date_not_after_start_rejected(service, who):
    with pytest.raises(ValidationError, match="End date must be after start date"):
        apply(service, who("emily"), start="2025-03-10", end="2025-03-10")


def test_start_in_the_past_rejected(service, who):
    with pytest.raises(ValidationError, match="Start date cannot be in the past"):
        apply(service, who("emily"), start="2025-03-01", end="2025-03-05")


def test_missing_reason_rejected(service, who):
    with pytest.raises(ValidationError, match="reason is required"):
        service.apply(who("emily"), {"type": "sick", "startDate": "2025-03-10", "endDate": "2025-03-11"}, now=NOW)


def test_overlapping_request_conflicts(service, who):
    apply(service, who("emily"))

    with pytest.raises(ConflictError):
        apply(service, who("emily"), start="2025-03-12", end="2025-03-14")


def test_rejected_request_does_not_block(service, who):
    leave = apply(service, who("emily"))
    service.update(who("manager"), leave.leave_id, {"action": "reject", "rejectionReason": "Deadline"}, now=NOW)

    again = apply(service, who("emily"))
    assert again.leave_id != leave.leave_id


def test_employee_cannot_apply_for_a_colleague(service, who):
    with pytest.raises(AuthorizationError):
        apply(service, who("emily"), employeeId=5)


def test_manager_approves_direct_report(service, who):
    leave = apply(service, who("emily"))

    approved = service.update(who("manager"), leave.leave_id, {"action": "approve"}, now=NOW)

    assert approved.status == LeaveStatus.APPROVED
    assert approved.approved_by == who("manager").user_id
    assert approved.approved_date == NOW


def test_manager_cannot_approve_outside_reports(service, who):
    leave = apply(service, who("laura"))

    with pytest.raises(AuthorizationError):
        service.update(who("manager"), leave.leave_id, {"action": "approve"}, now=NOW)


def test_manager_cannot_approve_own_request(service, who):
    leave = apply(service, who("manager"))

    with pytest.raises(AuthorizationError):
        service.update(who("manager"), leave.leave_id, {"action": "approve"}, now=NOW)


def test_employee_cannot_approve(service, who):
    leave = apply(service, who("emily"))

    with pytest.raises(AuthorizationError):
        service.update(who("emily"), leave.leave_id, {"action": "approve"}, now=NOW)


def test_reject_requires_reason(service, who):
    leave = apply(service, who("emily"))

    with pytest.raises(ValidationError, match="Rejection reason is required"):
        service.update(who("hr"), leave.leave_id, {"action": "reject"}, now=NOW)


def test_only_pending_can_be_decided(service, who):
    leave = apply(service, who("emily"))
    service.update(who("hr"), leave.leave_id, {"action": "approve"}, now=NOW)

    with pytest.raises(ValidationError, match="Only pending leave requests can be rejected"):
        service.update(who("hr"), leave.leave_id, {"action": "reject", "rejectionReason": "x"}, now=NOW)


def test_approved_leave_cancellable_before_start(service, who):
    leave = apply(service, who("emily"))
    service.update(who("hr"), leave.leave_id, {"action": "approve"}, now=NOW)

    cancelled = service.update(who("emily"), leave.leave_id, {"action": "cancel"}, now=NOW)
    assert cancelled.status == LeaveStatus.CANCELLED


def test_started_leave_cannot_be_cancelled(service, who):
    leave = apply(service, who("emily"))
    service.update(who("hr"), leave.leave_id, {"action": "approve"}, now=NOW)

    with pytest.raises(ValidationError, match="already started"):
        service.update(who("emily"), leave.leave_id, {"action": "cancel"}, now=datetime(2025, 3, 11, 9, 0))


def test_edit_pending_recomputes_days(service, who):
    leave = apply(service, who("emily"))

    edited = service.update(who("emily"), leave.leave_id, {"endDate": "2025-03-14"}, now=NOW)

    assert edited.days == 5


def test_started_pending_leave_can_extend_end_date(service, who):
    leave = apply(service, who("emily"))
    later = datetime(2025, 3, 11, 9, 0)

    updated = service.update(who("emily"), leave.leave_id, {"endDate": "2025-03-14"}, now=later)

    assert updated.start_date == date(2025, 3, 10)
    assert updated.days == 5


def test_moving_start_into_the_past_rejected(service, who):
    leave = apply(service, who("emily"))
    later = datetime(2025, 3, 11, 9, 0)

    with pytest.raises(ValidationError, match="Start date cannot be in the past"):
        service.update(who("emily"), leave.leave_id, {"startDate": "2025-03-09"}, now=later)


def test_unknown_action_rejected(service, who):
    leave = apply(service, who("emily"))

    with pytest.raises(ValidationError, match="action must be one of"):
        service.update(who("hr"), leave.leave_id, {"action": "archive"}, now=NOW)


def test_list_scoped_and_narrowed(service, who):
    apply(service, who("emily"))
    apply(service, who("david"))
    apply(service, who("laura"))

    def owners(identity, **kwargs):
        return sorted(r.employee_id for r in service.list(identity, LeaveFilters(), PageRequest(1, 20), **kwargs).records)

    assert owners(who("hr")) == [4, 5, 6]
    assert owners(who("manager")) == [4, 5]
    assert owners(who("emily")) == [4]
    assert owners(who("emily"), employee_id=5) == []
    assert owners(who("hr"), employee_id=6) == [6]


def test_balance_counts_approved_days(service, who):
    leave = apply(service, who("emily"))
    service.update(who("hr"), leave.leave_id, {"action": "approve"}, now=NOW)
    apply(service, who("emily"), start="2025-04-01", end="2025-04-02", type="sick")

    data = service.balance(who("emily"), today=date(2025, 3, 3))

    annual = data["balance"]["annual"]
    assert annual["used"] == 3
    assert annual["allocated"] == 22
    assert annual["remaining"] == 19
    assert data["balance"]["sick"]["used"] == 0
    assert len(data["pending"]) == 1
    assert data["yearsOfService"] == 5
