"""
Geo estimator - distance between airports and flight duration heuristic.

Distances use the Haversine formula against Earth's mean radius. No
ellipsoid corrections are applied; the result is only used to estimate
how long a leg took when the user did not enter times.
"""

import math
from typing import Any

from flightlog.config import config

EARTH_RADIUS_KM = 6371.0


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points in kilometers.

    Uses the Haversine formula for accuracy over short to medium distances.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(a: Any, b: Any) -> float:
    """Distance in km between two objects exposing ``lat`` and ``lon``."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def estimate_duration(distance_km: float) -> int:
    """
    Estimate block time in seconds for a leg of the given length.

    Cruise time at a constant ground speed plus a fixed allowance for
    taxi, climb and descent. Zero distance means no flight, so no overhead.
    """
    if distance_km <= 0:
        return 0

    cruise_hours = distance_km / config.estimator.cruise_speed_kmh
    overhead_seconds = config.estimator.overhead_minutes * 60

    return int(round(cruise_hours * 3600 + overhead_seconds))
