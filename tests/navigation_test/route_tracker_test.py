import pytest

from conftest import make_route, straight_points
from fleetnav.engine.geo_utils import calculate_bearing, haversine_distance
from fleetnav.engine.models import GeoPoint, RouteStep
from fleetnav.engine.nav_config import NavConfig
from fleetnav.engine.route_tracker import ProgressTracker, nearest_step_index


@pytest.fixture
def tracker():
    return ProgressTracker(NavConfig())


def test_half_way_leaves_half_the_duration(tracker, half_km_route):
    result = tracker.compute(half_km_route, 0, half_km_route.polyline[0])

    assert result.remaining_distance_m == pytest.approx(500.0, abs=1e-6)
    assert result.progress_fraction == pytest.approx(0.5, abs=1e-9)
    assert result.remaining_time_s == pytest.approx(300.0, abs=1e-6)


def test_remaining_distance_adds_offset_to_matched_vertex(tracker, straight_route):
    position = GeoPoint(10.002, 106.0002)
    result = tracker.compute(straight_route, 0, position)

    assert result.matched_index == 2
    expected = haversine_distance(position, straight_route.polyline[2]) + straight_route.distance_from_index(2)
    assert result.remaining_distance_m == pytest.approx(expected)


def test_progress_is_monotonic_walking_vertices(tracker, straight_route):
    last_index = 0
    remaining = []
    for point in straight_route.polyline:
        result = tracker.compute(straight_route, last_index, point)
        last_index = result.matched_index
        remaining.append(result.remaining_distance_m)

    assert remaining == sorted(remaining, reverse=True)
    assert remaining[-1] == 0.0


def test_progress_is_monotonic_walking_between_vertices(tracker, straight_route):
    last_index = 0
    remaining = []
    for point in straight_route.polyline[:-1]:
        position = GeoPoint(point.lat + 0.0002, point.lon)
        result = tracker.compute(straight_route, last_index, position)
        last_index = result.matched_index
        remaining.append(result.remaining_distance_m)

    assert all(a > b for a, b in zip(remaining, remaining[1:]))


def test_match_never_moves_backward(tracker, straight_route):
    result = tracker.compute(straight_route, 3, straight_route.polyline[1])
    assert result.matched_index == 3


def test_remaining_values_are_never_negative(tracker, half_km_route):
    # position beyond the destination
    result = tracker.compute(half_km_route, 1, GeoPoint(10.1, 106.0))

    assert result.remaining_distance_m >= 0
    assert result.remaining_time_s >= 0
    assert 0.0 <= result.progress_fraction <= 1.0


def test_zero_length_route_counts_as_complete(tracker):
    route = make_route(straight_points(3), total_distance_m=0.0, total_duration_s=120.0)
    result = tracker.compute(route, 0, route.polyline[0])

    assert result.progress_fraction == 1.0
    assert result.remaining_time_s == 0.0


def test_step_matched_by_nearest_start(tracker, straight_route):
    result = tracker.compute(straight_route, 0, straight_route.polyline[3])
    assert result.current_step_index == 3
    assert nearest_step_index(straight_route, GeoPoint(10.0011, 106.0)) == 1


def test_distance_to_next_turn_targets_next_step_start(tracker, straight_route):
    position = GeoPoint(10.0012, 106.0)
    result = tracker.compute(straight_route, 0, position)

    assert result.current_step_index == 1
    assert result.distance_to_next_turn_m == pytest.approx(
        haversine_distance(position, straight_route.steps[2].start)
    )


def test_distance_to_next_turn_on_last_step_is_remaining(tracker, straight_route):
    result = tracker.compute(straight_route, 0, straight_route.polyline[4])

    assert result.current_step_index == len(straight_route.steps) - 1
    assert result.distance_to_next_turn_m == result.remaining_distance_m


def test_heading_points_at_next_vertex(tracker, diagonal_route):
    position = GeoPoint(10.0, 106.0)
    result = tracker.compute(diagonal_route, 0, position)

    assert result.heading_deg == pytest.approx(calculate_bearing(position, diagonal_route.polyline[1]))


def test_heading_unchanged_at_final_vertex(tracker, diagonal_route):
    result = tracker.compute(diagonal_route, 2, diagonal_route.polyline[2], heading_deg=123.0)
    assert result.heading_deg == 123.0


def test_arrival_below_threshold(tracker, straight_route):
    near_end = GeoPoint(10.0049, 106.0)   # ~11 m short of the last vertex
    assert tracker.compute(straight_route, 0, near_end).arrived
    assert not tracker.compute(straight_route, 0, straight_route.polyline[4]).arrived


def test_arrival_threshold_comes_from_config(straight_route):
    tracker = ProgressTracker(NavConfig(arrival_threshold_m=200.0))
    assert tracker.compute(straight_route, 0, straight_route.polyline[4]).arrived


def test_single_step_route_uses_remaining_for_next_turn(tracker):
    points = straight_points(3)
    route = make_route(points, steps=[
        RouteStep(GeoPoint(*points[0]), GeoPoint(*points[-1]), "Go north", 222.0, 30.0),
    ])
    result = tracker.compute(route, 0, route.polyline[1])

    assert result.current_step_index == 0
    assert result.distance_to_next_turn_m == result.remaining_distance_m
