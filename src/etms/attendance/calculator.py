from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_STANDARD_WORK_HOURS


def compute_hours(
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    break_start: Optional[datetime] = None,
    break_end: Optional[datetime] = None,
    *,
    standard_hours: float = DEFAULT_STANDARD_WORK_HOURS,
) -> tuple[float, float]:
    """Return (working_hours, overtime), both rounded to 2 dp.

    Worked time is (out - in) minus a completed break, never below zero.
    Overtime is whatever exceeds ``standard_hours``.
    """
    if check_in is None or check_out is None:
        return 0.0, 0.0

    seconds = (check_out - check_in).total_seconds()
    if break_start is not None and break_end is not None and break_end > break_start:
        seconds -= (break_end - break_start).total_seconds()

    hours = max(seconds / 3600.0, 0.0)
    return round(hours, 2), round(max(hours - standard_hours, 0.0), 2)
