from datetime import datetime

from etms.attendance.calculator import compute_hours


def test_hours_subtract_completed_break():
    hours, overtime = compute_hours(
        datetime(2025, 1, 6, 8, 0),
        datetime(2025, 1, 6, 17, 0),
        datetime(2025, 1, 6, 12, 0),
        datetime(2025, 1, 6, 13, 0),
    )

    assert hours == 8.0
    assert overtime == 0.0


def test_overtime_is_time_beyond_standard_day():
    hours, overtime = compute_hours(datetime(2025, 1, 6, 8, 0), datetime(2025, 1, 6, 18, 30))

    assert hours == 10.5
    assert overtime == 2.5


def test_open_break_is_ignored():
    hours, _ = compute_hours(
        datetime(2025, 1, 6, 9, 0), datetime(2025, 1, 6, 11, 0), datetime(2025, 1, 6, 10, 0), None
    )

    assert hours == 2.0


def test_missing_checkout_gives_zero():
    assert compute_hours(datetime(2025, 1, 6, 9, 0), None) == (0.0, 0.0)


def test_custom_standard_hours():
    _, overtime = compute_hours(datetime(2025, 1, 6, 9, 0), datetime(2025, 1, 6, 17, 0), standard_hours=7.5)

    assert overtime == 0.5
