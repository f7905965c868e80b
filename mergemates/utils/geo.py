"""Great-circle helpers for distance-constrained candidate queries."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0088


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in kilometres between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = (
        math.sin(dphi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(
    lat: float, lon: float, radius_km: float
) -> tuple[float, float, float | None, float | None]:
    """Return ``(min_lat, max_lat, min_lon, max_lon)`` enclosing a circle.

    Longitude bounds are ``None`` when the box touches a pole or crosses the
    antimeridian; callers then filter on latitude only.
    """
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(-90.0, lat - dlat)
    max_lat = min(90.0, lat + dlat)

    if min_lat <= -90.0 or max_lat >= 90.0:
        return min_lat, max_lat, None, None

    dlon = math.degrees(radius_km / (EARTH_RADIUS_KM * math.cos(math.radians(lat))))
    min_lon = lon - dlon
    max_lon = lon + dlon
    if min_lon < -180.0 or max_lon > 180.0:
        return min_lat, max_lat, None, None

    return min_lat, max_lat, min_lon, max_lon
