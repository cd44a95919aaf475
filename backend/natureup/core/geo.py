from __future__ import annotations

import math
from typing import List

from .types import Coordinates

EARTH_RADIUS_M = 6371e3
WAYPOINT_SEGMENTS = 8


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def interpolate_waypoints(start: Coordinates, destination: Coordinates) -> List[Coordinates]:
    """Nine evenly spaced points from start to destination, both ends included."""
    points = [start.model_copy()]
    for i in range(1, WAYPOINT_SEGMENTS):
        progress = i / WAYPOINT_SEGMENTS
        points.append(
            Coordinates(
                lat=start.lat + (destination.lat - start.lat) * progress,
                lng=start.lng + (destination.lng - start.lng) * progress,
            )
        )
    # Endpoints are copied, not computed, so they match exactly.
    points.append(destination.model_copy())
    return points
