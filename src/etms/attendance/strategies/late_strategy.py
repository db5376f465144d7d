from __future__ import annotations

from datetime import datetime, time

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, late_cutoff: time) -> StatusDecision:
        minutes = int((now - datetime.combine(now.date(), late_cutoff)).total_seconds() // 60)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Checked in {minutes} min after {late_cutoff.strftime('%H:%M')}")
