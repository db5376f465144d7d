from __future__ import annotations

from datetime import datetime

import pytest

from etms.locations.geo import haversine_km, route_distance_km
from etms.locations.model import Location


def point(location_id, lat, lon):
    return Location(
        location_id=location_id,
        employee_id=4,
        latitude=lat,
        longitude=lon,
        recorded_at=datetime(2025, 3, 3, 9, location_id),
    )


def test_same_point_is_zero():
    assert haversine_km(40.7128, -74.0060, 40.7128, -74.0060) == 0.0


def test_one_degree_of_latitude():
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


def test_route_sums_consecutive_legs():
    route = [point(1, 0.0, 0.0), point(2, 1.0, 0.0), point(3, 1.0, 1.0)]

    assert route_distance_km(route) == pytest.approx(111.19 + 111.18, abs=0.02)


def test_route_of_one_point_is_zero():
    assert route_distance_km([point(1, 51.5, -0.12)]) == 0.0
    assert route_distance_km([]) == 0.0
