from __future__ import annotations

from datetime import datetime, time

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time check-in."""

    def decide_checkin(self, *, now: datetime, late_cutoff: time) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
