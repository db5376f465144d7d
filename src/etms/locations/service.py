from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional, Sequence

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..access.scope import Scope
from ..common.datetime_utils import iso, now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import parse_int, parse_number, require_enum, require_fields, require_max_length
from ..core.constants import (
    ADDRESS_MAX_LENGTH,
    CURRENT_LOCATION_WINDOW_HOURS,
    LOCATION_RETENTION_DAYS,
    LOCATION_STATS_DAYS,
)
from ..core.enums import LocationActivity
from ..core.exceptions import NotFoundError, ValidationError
from .geo import route_distance_km
from .model import Location, LocationFilters
from .repository import LocationRepository

logger = logging.getLogger(__name__)


def location_stats(points: Sequence[Location]) -> dict:
    accuracies = [p.accuracy for p in points if p.accuracy is not None]
    activities = Counter(p.activity.value for p in points)
    return {
        "overview": {
            "totalRecords": len(points),
            "avgAccuracy": round(sum(accuracies) / len(accuracies), 2) if accuracies else 0,
            "firstRecord": iso(min((p.recorded_at for p in points), default=None)),
            "lastRecord": iso(max((p.recorded_at for p in points), default=None)),
        },
        "activityBreakdown": [{"activity": name, "count": count} for name, count in sorted(activities.items())],
    }


class LocationService:
    def __init__(self, locations: LocationRepository, policy: AccessPolicy):
        self._locations = locations
        self._policy = policy

    def record(self, identity: Identity, payload: Mapping[str, Any], *, now: datetime | None = None) -> Location:
        """Store a position for the caller's own employee record."""
        self._policy.enforce(identity, Entity.LOCATION, Action.CREATE)
        if identity.employee_id is None:
            raise ValidationError("No employee record is linked to this account")
        require_fields(payload, ("latitude", "longitude"))

        fields: dict[str, Any] = {
            "employee_id": identity.employee_id,
            "latitude": parse_number(payload["latitude"], "latitude", minimum=-90, maximum=90),
            "longitude": parse_number(payload["longitude"], "longitude", minimum=-180, maximum=180),
            "activity": require_enum(payload.get("activity") or LocationActivity.UNKNOWN.value, LocationActivity, "activity"),
            "recorded_at": now or now_local(),
        }
        if payload.get("accuracy") not in (None, ""):
            fields["accuracy"] = parse_number(payload["accuracy"], "accuracy", minimum=0)
        address = str(payload.get("address") or "").strip()
        if address:
            fields["address"] = require_max_length(address, "address", ADDRESS_MAX_LENGTH)

        location_id = self._locations.create(fields)
        logger.debug("location recorded id=%s employee=%s", location_id, identity.employee_id)
        location = self._locations.get_by_id(location_id)
        if location is None:
            raise NotFoundError("Location not found")
        return location

    def list(
        self,
        identity: Identity,
        filters: LocationFilters,
        page: PageRequest,
        *,
        employee_id: Optional[int] = None,
    ) -> Page[Location]:
        self._policy.enforce(identity, Entity.LOCATION, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.LOCATION).narrow(employee_id)
        return self._locations.list_page(scope, filters, page)

    def current(self, identity: Identity, *, now: datetime | None = None) -> Sequence[Location]:
        """Latest point per employee within the last day."""
        now = now or now_local()
        self._policy.enforce(identity, Entity.LOCATION, Action.REPORT)
        scope = self._policy.scope_for(identity, Entity.LOCATION, Action.REPORT)
        since = now - timedelta(hours=CURRENT_LOCATION_WINDOW_HOURS)
        latest = self._locations.latest_per_employee(scope, since=since)
        return sorted(latest, key=lambda p: p.recorded_at, reverse=True)

    def route(self, identity: Identity, employee_id: int, day: date) -> tuple[list[Location], float]:
        self._policy.enforce(identity, Entity.LOCATION, Action.READ, Target.owned_by(employee_id))
        filters = LocationFilters(start=datetime.combine(day, time.min), end=datetime.combine(day, time.max))
        points = sorted(
            self._locations.list_all(Scope.everyone().narrow(employee_id), filters),
            key=lambda p: (p.recorded_at, p.location_id),
        )
        return points, route_distance_km(points)

    def stats(
        self,
        identity: Identity,
        *,
        employee_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: datetime | None = None,
    ) -> dict:
        now = now or now_local()
        self._policy.enforce(identity, Entity.LOCATION, Action.LIST)
        end = end or now
        start = start or end - timedelta(days=LOCATION_STATS_DAYS)
        if end < start:
            raise ValidationError("endDate must not be before startDate")
        scope = self._policy.scope_for(identity, Entity.LOCATION).narrow(employee_id)
        result = location_stats(self._locations.list_all(scope, LocationFilters(start=start, end=end)))
        result["period"] = {"start": iso(start), "end": iso(end)}
        return result

    def cleanup(self, identity: Identity, days: Any = None, *, now: datetime | None = None) -> int:
        self._policy.enforce(identity, Entity.LOCATION, Action.DELETE)
        days = LOCATION_RETENTION_DAYS if days in (None, "") else parse_int(days, "days")
        if days < 1:
            raise ValidationError("days must be at least 1")
        cutoff = (now or now_local()) - timedelta(days=days)
        deleted = self._locations.delete_before(cutoff)
        logger.info("location cleanup older than %s days removed %s rows by user=%s", days, deleted, identity.user_id)
        return deleted
