from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import Location, LocationFilters


class LocationRepository(Protocol):
    def get_by_id(self, location_id: int) -> Optional[Location]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any]) -> int:
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: LocationFilters, page: PageRequest) -> Page[Location]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: LocationFilters) -> Sequence[Location]:
        """Matching points, oldest first."""
        raise NotImplementedError

    def latest_per_employee(self, scope: Scope, *, since: datetime) -> Sequence[Location]:
        raise NotImplementedError

    def delete_before(self, cutoff: datetime) -> int:
        raise NotImplementedError
