"""Great-circle distance helpers.

All distances are in statute miles.  Callers passing a search radius must
pass it in miles as well; there is no unit conversion anywhere else.
"""

from __future__ import annotations

import math

from quvo._constants import EARTH_RADIUS_MILES


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in miles between two ``(lat, lon)`` points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def within_radius(
    center: tuple[float, float],
    point: tuple[float, float] | None,
    radius_miles: float,
) -> bool:
    """``True`` when *point* lies within *radius_miles* of *center*.

    A missing point never matches.
    """
    if point is None:
        return False
    return haversine_miles(center[0], center[1], point[0], point[1]) <= radius_miles
