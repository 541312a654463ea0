# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects; only depends on the point type.

import math
from typing import Sequence

import numpy as np

from .errors import EmptyRoute
from .models import GeoPoint


EARTH_RADIUS_M = 6371.0 * 1000.0


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        a: Origin.
        b: Destination.

    Returns:
        Distance in metres. Symmetric, and zero when a == b.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_many(origin: GeoPoint, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Vectorised haversine from one origin to many points, in metres."""
    rlat0 = np.radians(origin.lat)
    rlats = np.radians(lats)
    d_lat = rlats - rlat0
    d_lon = np.radians(lons - origin.lon)
    h = np.sin(d_lat / 2) ** 2 + np.cos(rlat0) * np.cos(rlats) * np.sin(d_lon / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def segment_lengths(polyline: Sequence[GeoPoint]) -> np.ndarray:
    """Lengths in metres of the n - 1 segments of a polyline."""
    if len(polyline) < 2:
        return np.zeros(0, dtype=float)
    lats = np.fromiter((p.lat for p in polyline), dtype=float, count=len(polyline))
    lons = np.fromiter((p.lon for p in polyline), dtype=float, count=len(polyline))
    rlats = np.radians(lats)
    d_lat = np.diff(rlats)
    d_lon = np.radians(np.diff(lons))
    h = (
        np.sin(d_lat / 2) ** 2
        + np.cos(rlats[:-1]) * np.cos(rlats[1:]) * np.sin(d_lon / 2) ** 2
    )
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def calculate_bearing(a: GeoPoint, b: GeoPoint) -> float:
    """
    Initial compass bearing from a to b in degrees [0, 360).

    Returns 0 when the points coincide.
    """
    if a == b:
        return 0.0
    rlat1, rlon1 = math.radians(a.lat), math.radians(a.lon)
    rlat2, rlon2 = math.radians(b.lat), math.radians(b.lon)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    bearing = (math.degrees(math.atan2(y, x)) + 360) % 360
    # (-tiny + 360) % 360 can round up to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing


def nearest_point_index(
    position: GeoPoint,
    polyline: Sequence[GeoPoint],
    search_from: int = 0,
) -> int:
    """
    Index of the polyline vertex closest to position.

    Scans polyline[search_from:] linearly; on ties the earliest index wins.

    Raises:
        EmptyRoute: If the polyline has no points.
    """
    if not polyline:
        raise EmptyRoute("Cannot match a position against an empty polyline.")
    start = min(max(search_from, 0), len(polyline) - 1)
    tail = polyline[start:]
    lats = np.fromiter((p.lat for p in tail), dtype=float, count=len(tail))
    lons = np.fromiter((p.lon for p in tail), dtype=float, count=len(tail))
    return start + int(np.argmin(haversine_many(position, lats, lons)))
