from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, late_cutoff: time) -> AttendanceStrategy:
        if now.time() > late_cutoff:
            return LateStrategy()
        return NormalStrategy()
