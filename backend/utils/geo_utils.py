"""
Geospatial utility functions for the field tracking system.
Handles great-circle distances and coordinate validation.
"""

import math
from typing import Any, Iterable, Tuple

# Mean Earth radius used for every distance in this service
EARTH_RADIUS_KM = 6371.0


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    """True for finite numeric coordinates inside the WGS84 ranges."""
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def _coordinates(point: Any) -> Tuple[float, float]:
    if isinstance(point, (tuple, list)):
        return float(point[0]), float(point[1])
    return float(point.latitude), float(point.longitude)


def haversine_km(a: Any, b: Any) -> float:
    """
    Great-circle distance between two points on a sphere of radius 6371 km.

    Points may be (lat, lon) pairs or any object exposing ``latitude`` and
    ``longitude``. The result does not depend on argument order.
    """
    lat1, lon1 = _coordinates(a)
    lat2, lon2 = _coordinates(b)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h just outside [0, 1] for antipodal points
    h = min(1.0, max(0.0, h))
    c =2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def total_distance_km(points: Iterable[Any]) -> float:
    """Sum of haversine distances between consecutive points; 0 for fewer than two."""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous, point)
        previous = point
    return total
