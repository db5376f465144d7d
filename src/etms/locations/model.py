from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import LocationActivity


@dataclass(frozen=True)
class Location:
    """One position report sent by an employee's device."""

    location_id: int
    employee_id: int
    latitude: float
    longitude: float
    recorded_at: datetime
    activity: LocationActivity = LocationActivity.UNKNOWN
    accuracy: Optional[float] = None
    address: Optional[str] = None
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None


@dataclass(frozen=True)
class LocationFilters:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    activity: Optional[LocationActivity] = None

    def matches(self, location: Location) -> bool:
        if self.start and location.recorded_at < self.start:
            return False
        if self.end and location.recorded_at > self.end:
            return False
        if self.activity and location.activity != self.activity:
            return False
        return True
