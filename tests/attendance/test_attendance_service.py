from __future__ import annotations

from datetime import date, datetime

import pytest

from etms.attendance.model import AttendanceFilters, AttendanceRecord
from etms.common.pagination import PageRequest
from etms.core.enums import AttendanceStatus
from etms.core.exceptions import AuthorizationError, ConflictError, ValidationError

MONDAY = date(2025, 1, 6)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def service(container):
    return container.attendance_service


def test_checkin_before_cutoff_is_present(service, who):
    record = service.record_action(who("emily"), action="check_in", now=at(8, 55))

    assert record.status == AttendanceStatus.PRESENT
    assert record.check_in == at(8, 55)
    assert record.work_date == MONDAY


def test_checkin_at_quarter_past_nine_is_late(service, who):
    record = service.record_action(who("emily"), action="check_in", now=at(9, 15))

    assert record.status == AttendanceStatus.LATE
    assert "15 min" in record.notes


def test_double_checkin_same_day_rejected(service, who):
    service.record_action(who("emily"), action="check_in", now=at(8, 55))

    with pytest.raises(ValidationError, match="Already checked in today"):
        service.record_action(who("emily"), action="check_in", now=at(9, 30))


def test_checkout_without_checkin_rejected(service, who):
    with pytest.raises(ValidationError, match="Please check in first"):
        service.record_action(who("emily"), action="check_out", now=at(17, 0))


def test_full_day_with_break_computes_hours(service, who):
    emily = who("emily")
    service.record_action(emily, action="check_in", now=at(8, 0))
    service.record_action(emily, action="break_start", now=at(12, 0))
    service.record_action(emily, action="break_end", now=at(12, 30))
    record = service.record_action(emily, action="check_out", now=at(18, 0))

    assert record.working_hours == 9.5
    assert record.overtime == 1.5


def test_checkout_closes_open_break(service, who):
    emily = who("emily")
    service.record_action(emily, action="check_in", now=at(8, 0))
    service.record_action(emily, action="break_start", now=at(16, 0))
    record = service.record_action(emily, action="check_out", now=at(17, 0))

    assert record.break_end == at(17, 0)
    assert record.working_hours == 8.0


def test_second_break_rejected(service, who):
    emily = who("emily")
    service.record_action(emily, action="check_in", now=at(8, 0))
    service.record_action(emily, action="break_start", now=at(12, 0))
    service.record_action(emily, action="break_end", now=at(12, 30))

    with pytest.raises(ValidationError, match="Break already started today"):
        service.record_action(emily, action="break_start", now=at(15, 0))


def test_action_after_checkout_rejected(service, who):
    emily = who("emily")
    service.record_action(emily, action="check_in", now=at(8, 0))
    service.record_action(emily, action="check_out", now=at(17, 0))

    with pytest.raises(ValidationError, match="Already checked out today"):
        service.record_action(emily, action="check_out", now=at(18, 0))


def test_unknown_action_rejected(service, who):
    with pytest.raises(ValidationError):
        service.record_action(who("emily"), action="teleport", now=at(8, 0))


def test_employee_cannot_check_in_a_colleague(service, who):
    with pytest.raises(AuthorizationError):
        service.record_action(who("emily"), action="check_in", employee_id=5, now=at(8, 0))


def test_manager_can_check_in_a_direct_report(service, who):
    record = service.record_action(who("manager"), action="check_in", employee_id=5, now=at(8, 0))

    assert record.employee_id == 5


def test_concurrent_duplicate_insert_is_conflict(container):
    repo = container.repos.attendance
    repo.create_checkin(employee_id=4, work_date=MONDAY, check_in=at(8, 0), status=AttendanceStatus.PRESENT)

    with pytest.raises(ConflictError):
        repo.create_checkin(employee_id=4, work_date=MONDAY, check_in=at(8, 1), status=AttendanceStatus.PRESENT)


def test_correction_recomputes_hours_and_rejects_inverted_times(service, who):
    emily = who("emily")
    record = service.record_action(emily, action="check_in", now=at(8, 0))

    corrected = service.correct(who("manager"), record.attendance_id, {"checkOut": "2025-01-06T16:00:00"})
    assert corrected.working_hours == 8.0

    with pytest.raises(ValidationError, match="checkOut must be after checkIn"):
        service.correct(who("manager"), record.attendance_id, {"checkOut": "2025-01-06T07:00:00"})


def test_employee_cannot_correct_records(service, who):
    record = service.record_action(who("emily"), action="check_in", now=at(8, 0))

    with pytest.raises(AuthorizationError):
        service.correct(who("emily"), record.attendance_id, {"status": "present"})


def _seed(container):
    repo = container.repos.attendance
    rows = [
        (1, 4, AttendanceStatus.PRESENT, 8.0),
        (2, 5, AttendanceStatus.LATE, 7.5),
        (3, 6, AttendanceStatus.PRESENT, 8.0),
        (4, 3, AttendanceStatus.PRESENT, 9.0),
    ]
    for attendance_id, employee_id, status, hours in rows:
        repo.add(
            AttendanceRecord(
                attendance_id=attendance_id,
                employee_id=employee_id,
                work_date=MONDAY,
                status=status,
                working_hours=hours,
            )
        )


def test_list_is_scoped_per_role(container, service, who):
    _seed(container)

    def owners(identity, **kwargs):
        page = service.list(identity, AttendanceFilters(), PageRequest(1, 30), **kwargs)
        return sorted(r.employee_id for r in page.records)

    assert owners(who("admin")) == [3, 4, 5, 6]
    assert owners(who("manager")) == [3, 4, 5]
    assert owners(who("emily")) == [4]
    # an explicit filter never widens the role scope
    assert owners(who("emily"), employee_id=6) == []
    assert owners(who("manager"), employee_id=5) == [5]


def test_summary_groups_by_status(container, service, who):
    _seed(container)

    data = service.summary(who("manager"), period="week", today=MONDAY)

    by_status = {row["status"]: row for row in data["statistics"]}
    assert by_status["present"]["count"] == 2
    assert by_status["late"]["count"] == 1
    assert data["dateRange"] == {"start": "2024-12-30", "end": "2025-01-06"}


def test_summary_rejects_unknown_period(service, who):
    with pytest.raises(ValidationError):
        service.summary(who("admin"), period="decade", today=MONDAY)
