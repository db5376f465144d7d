"""Great-circle distances between recorded positions."""
from __future__ import annotations

import math
from typing import Iterable

from ..core.constants import EARTH_RADIUS_KM
from .model import Location


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def route_distance_km(points: Iterable[Location]) -> float:
    """Sum of the legs between consecutive points, rounded to 2 dp."""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous.latitude, previous.longitude, point.latitude, point.longitude)
        previous = point
    return round(total, 2)
