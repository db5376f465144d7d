from datetime import datetime, time

from etms.attendance.factory import AttendanceStrategyFactory
from etms.attendance.strategies.late_strategy import LateStrategy
from etms.attendance.strategies.normal_strategy import NormalStrategy
from etms.core.enums import AttendanceStatus

CUTOFF = time(9, 0)


def test_factory_checkin_on_time_at_cutoff():
    factory = AttendanceStrategyFactory()
    strategy = factory.for_checkin(now=datetime(2025, 1, 6, 9, 0, 0), late_cutoff=CUTOFF)

    assert isinstance(strategy, NormalStrategy)


def test_factory_checkin_late_after_cutoff():
    factory = AttendanceStrategyFactory()
    strategy = factory.for_checkin(now=datetime(2025, 1, 6, 9, 0, 1), late_cutoff=CUTOFF)

    assert isinstance(strategy, LateStrategy)


def test_late_strategy_notes_minutes_after_cutoff():
    now = datetime(2025, 1, 6, 9, 15)
    decision = LateStrategy().decide_checkin(now=now, late_cutoff=CUTOFF)

    assert decision.status == AttendanceStatus.LATE
    assert decision.note == "Checked in 15 min after 09:00"


def test_normal_strategy_is_present():
    decision = NormalStrategy().decide_checkin(now=datetime(2025, 1, 6, 8, 30), late_cutoff=CUTOFF)

    assert decision.status == AttendanceStatus.PRESENT
    assert decision.note is None
