import math
from datetime import datetime, timedelta

import pytest

from fleetnav.engine.models import GeoPoint, Route, RouteStep
from fleetnav.engine.polyline import encode

# One polyline index step along a meridian, in degrees (~111 m).
STEP_DEG = 0.001


class FakeClock:
    """Datetime source the tests move by hand."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 8, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_route(points, total_distance_m=None, total_duration_s=60.0, steps=None) -> Route:
    polyline = tuple(GeoPoint(lat, lon) for lat, lon in points)
    if steps is None:
        steps = [
            RouteStep(
                start=polyline[i],
                end=polyline[i + 1],
                instruction=f"Step {i}",
                distance_m=0.0,
                duration_s=0.0,
            )
            for i in range(len(polyline) - 1)
        ]
    route = Route(polyline=polyline, steps=tuple(steps), total_distance_m=0.0, total_duration_s=0.0)
    return Route(
        polyline=polyline,
        steps=tuple(steps),
        total_distance_m=route.polyline_length_m if total_distance_m is None else total_distance_m,
        total_duration_s=total_duration_s,
    )


def straight_points(count: int, lat0: float = 10.0, lon0: float = 106.0):
    return [(lat0 + i * STEP_DEG, lon0) for i in range(count)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def diagonal_route():
    """Three points, two steps: the short diagonal route used by the playback scenario."""
    return make_route([(10.0, 106.0), (10.001, 106.001), (10.002, 106.002)])


@pytest.fixture
def straight_route():
    """Six points heading due north, ~111 m apart, five steps."""
    return make_route(straight_points(6), total_duration_s=300.0)


@pytest.fixture
def half_km_route():
    """Two points exactly 500 m apart; route metadata claims 1000 m / 600 s."""
    d_lat = math.degrees(500.0 / 6371000.0)
    return make_route([(10.0, 106.0), (10.0 + d_lat, 106.0)], total_distance_m=1000.0, total_duration_s=600.0)


@pytest.fixture
def directions_response():
    """Provider response in the Directions JSON shape with two legs."""
    points = [GeoPoint(10.7620, 106.6600), GeoPoint(10.7650, 106.6650),
              GeoPoint(10.7700, 106.6700), GeoPoint(10.7760, 106.7000)]

    def loc(p):
        return {"lat": p.lat, "lng": p.lon}

    def step(a, b, text, dist, dur, maneuver=""):
        return {
            "start_location": loc(a),
            "end_location": loc(b),
            "html_instructions": text,
            "distance": {"text": f"{dist} m", "value": dist},
            "duration": {"text": f"{dur} s", "value": dur},
            "polyline": {"points": encode([a, b])},
            "travel_mode": "DRIVING",
            "maneuver": maneuver,
        }

    return {
        "status": "OK",
        "routes": [
            {
                "summary": "Main road",
                "bounds": {
                    "northeast": {"lat": 10.7760, "lng": 106.7000},
                    "southwest": {"lat": 10.7620, "lng": 106.6600},
                },
                "overview_polyline": {"points": encode(points)},
                "legs": [
                    {
                        "distance": {"text": "1.4 km", "value": 1400},
                        "duration": {"text": "3 min", "value": 180},
                        "steps": [
                            step(points[0], points[1], "Head <b>northeast</b>", 640, 80),
                            step(points[1], points[2], "Turn <b>left</b>", 760, 100, "turn-left"),
                        ],
                    },
                    {
                        "distance": {"text": "3.3 km", "value": 3300},
                        "duration": {"text": "6 min", "value": 360},
                        "steps": [
                            step(points[2], points[3], "Continue to destination", 3300, 360),
                        ],
                    },
                ],
            },
            {
                "summary": "Alternative",
                "overview_polyline": {"points": encode(points[:2])},
                "legs": [],
            },
        ],
    }
