# route_builder.py
# Normalises a Directions provider response into a Route.
# Only the first candidate route is used.

import logging
from typing import Any, Dict, List, Mapping, Optional

from shapely.geometry import LineString

from .errors import NoRouteFound
from .models import Bounds, GeoPoint, Route, RouteStep
from .polyline import decode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _require(data: Mapping[str, Any], key: str, context: str) -> Any:
    try:
        return data[key]
    except (KeyError, TypeError):
        raise NoRouteFound(f"Provider response is missing '{key}' in {context}.") from None


def _location(data: Mapping[str, Any], key: str, context: str) -> GeoPoint:
    loc = _require(data, key, context)
    lat = _require(loc, "lat", f"{context}.{key}")
    lon = loc.get("lng", loc.get("lon"))
    if lon is None:
        raise NoRouteFound(f"Provider response is missing 'lng' in {context}.{key}.")
    return GeoPoint(float(lat), float(lon))


def _value(data: Mapping[str, Any], key: str, context: str) -> float:
    """Provider quantities come as {"text": ..., "value": ...} or a bare number."""
    raw = _require(data, key, context)
    if isinstance(raw, Mapping):
        raw = _require(raw, "value", f"{context}.{key}")
    return float(raw)


def _build_step(raw: Mapping[str, Any], index: int) -> RouteStep:
    context = f"step {index}"
    instruction = raw.get("html_instructions", raw.get("instruction", ""))
    return RouteStep(
        start=_location(raw, "start_location", context),
        end=_location(raw, "end_location", context),
        instruction=instruction,
        distance_m=_value(raw, "distance", context),
        duration_s=_value(raw, "duration", context),
        maneuver=raw.get("maneuver") or None,
    )


def _parse_bounds(raw: Optional[Mapping[str, Any]]) -> Optional[Bounds]:
    if not raw:
        return None
    try:
        ne, sw = raw["northeast"], raw["southwest"]
        return Bounds(
            south=float(sw["lat"]),
            west=float(sw["lng"]),
            north=float(ne["lat"]),
            east=float(ne["lng"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Ignoring unreadable route bounds: {raw!r}")
        return None


def polyline_bounds(points: List[GeoPoint]) -> Bounds:
    """Bounding box of a polyline (shapely works in x=lon, y=lat)."""
    if len(points) == 1:
        p = points[0]
        return Bounds(south=p.lat, west=p.lon, north=p.lat, east=p.lon)
    min_x, min_y, max_x, max_y = LineString([(p.lon, p.lat) for p in points]).bounds
    return Bounds(south=min_y, west=min_x, north=max_y, east=max_x)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_route(response: Mapping[str, Any]) -> Route:
    """
    Build a Route from a Directions response.

    Args:
        response: Parsed JSON with a "routes" list; each route carries an
                  "overview_polyline", "legs" with "steps", and optional "bounds".

    Returns:
        Route built from the first candidate.

    Raises:
        NoRouteFound:      No candidate routes, empty geometry, or missing keys.
        MalformedPolyline: The overview polyline cannot be decoded.
    """
    routes = response.get("routes") or []
    if not routes:
        status = response.get("status", "unknown")
        raise NoRouteFound(f"Provider returned no routes (status: {status}).")

    candidate: Dict[str, Any] = routes[0]
    overview = _require(candidate, "overview_polyline", "route")
    encoded = overview.get("points", "") if isinstance(overview, Mapping) else overview
    polyline = decode(encoded or "")
    if not polyline:
        raise NoRouteFound("Provider route has an empty polyline.")

    steps: List[RouteStep] = []
    total_distance = 0.0
    total_duration = 0.0
    for leg_index, leg in enumerate(candidate.get("legs") or []):
        total_distance += _value(leg, "distance", f"leg {leg_index}")
        total_duration += _value(leg, "duration", f"leg {leg_index}")
        for raw_step in leg.get("steps") or []:
            steps.append(_build_step(raw_step, len(steps)))

    bounds = _parse_bounds(candidate.get("bounds")) or polyline_bounds(polyline)

    route = Route(
        polyline=tuple(polyline),
        steps=tuple(steps),
        total_distance_m=total_distance,
        total_duration_s=total_duration,
        bounds=bounds,
    )
    logger.info(
        f"Route built: {len(polyline)} points, {len(steps)} steps, "
        f"{int(total_distance)} m / {int(total_duration)} s"
    )
    return route
