import copy
import json

import pytest

from fleetnav.engine.errors import DirectionsError, NoRouteFound
from fleetnav.engine.models import GeoPoint, PositionSample, SessionStatus
from fleetnav.engine.nav_config import NavConfig
from fleetnav.engine.navigator import NavigationSystem
from fleetnav.engine.position_stream import PushPositionStream


class FakeDirections:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def directions(self, origin, destination, travel_mode="car"):
        self.calls.append((origin, destination, travel_mode))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def nav(clock):
    return NavigationSystem(NavConfig(), clock=clock)


def test_load_route(nav, directions_response):
    ok, msg = nav.load_route(directions_response)

    assert ok
    assert msg == "Route ready. 3 steps."
    assert len(nav.route.polyline) == 4


@pytest.mark.parametrize("points", ["", "_p~iF~ps|U_"])
def test_load_route_failures_collapse_to_one_message(nav, directions_response, points):
    response = copy.deepcopy(directions_response)
    response["routes"][0]["overview_polyline"]["points"] = points

    ok, msg = nav.load_route(response)

    assert not ok
    assert msg == "Route finding failed."
    assert nav.route is None


def test_find_route_uses_provider(clock, directions_response):
    provider = FakeDirections(response=directions_response)
    nav = NavigationSystem(NavConfig(travel_mode="motorcycle"), directions=provider, clock=clock)
    origin, destination = GeoPoint(10.762, 106.66), GeoPoint(10.776, 106.7)

    ok, _ = nav.find_route(origin, destination)

    assert ok
    assert provider.calls == [(origin, destination, "motorcycle")]


def test_find_route_transport_failure(clock):
    provider = FakeDirections(error=DirectionsError("timeout"))
    nav = NavigationSystem(NavConfig(), directions=provider, clock=clock)

    ok, msg = nav.find_route(GeoPoint(0, 0), GeoPoint(1, 1))

    assert not ok
    assert msg == "Route finding failed."


def test_find_route_without_provider(nav):
    with pytest.raises(RuntimeError):
        nav.find_route(GeoPoint(0, 0), GeoPoint(1, 1))


def test_start_without_route(nav):
    with pytest.raises(NoRouteFound):
        nav.start_simulation()


def test_new_route_stops_active_session(nav, directions_response):
    nav.load_route(directions_response)
    nav.start_simulation()

    nav.load_route(directions_response)

    assert nav.status is SessionStatus.IDLE
    assert nav.last_summary is not None


def test_simulation_runs_to_completion(nav, directions_response, clock):
    nav.load_route(directions_response)
    nav.start_simulation(multiplier=2)
    assert nav.playback_multiplier == 2

    nav.scheduler.advance(2.0)
    assert nav.status is SessionStatus.COMPLETED

    clock.advance(120)
    summary = nav.stop_navigation()
    assert summary.total_distance_m == 4700
    assert nav.last_summary is summary


def test_real_navigation_with_pause(nav, directions_response):
    nav.load_route(directions_response)
    stream = PushPositionStream()
    nav.start_navigation(stream)

    stream.push(PositionSample(lat=10.765, lon=106.665))
    assert nav.snapshot().current_step_index == 1

    nav.pause()
    assert nav.status is SessionStatus.PAUSED
    nav.resume()
    result = nav.update(PositionSample(lat=10.776, lon=106.7))
    assert result.arrived
    assert nav.status is SessionStatus.COMPLETED


def test_event_log_written(tmp_path, clock, directions_response):
    nav = NavigationSystem(NavConfig(log_dir=str(tmp_path)), clock=clock)
    nav.load_route(directions_response)
    nav.start_simulation()
    nav.scheduler.advance(5.0)
    nav.stop_navigation()

    lines = (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]

    assert [e["event"] for e in events[:-1]] == ["progress"] * (len(events) - 1)
    assert events[0]["position"] == {"lat": 10.762, "lon": 106.66}
    assert events[-1]["event"] == "trip_summary"
    assert events[-1]["total_distance_m"] == 4700


def test_no_event_log_by_default(tmp_path, nav, directions_response):
    nav.load_route(directions_response)
    nav.start_simulation()
    nav.stop_navigation()

    assert list(tmp_path.iterdir()) == []


def test_stop_restores_default_playback(nav, directions_response):
    nav.load_route(directions_response)
    nav.start_simulation()
    nav.set_playback_multiplier(5)
    assert nav.playback_multiplier == 5

    nav.stop_navigation()
    assert nav.playback_multiplier == 1

    nav.start_simulation()
    nav.scheduler.advance(0.5)
    assert nav.session.current_position == nav.route.polyline[0]
    nav.scheduler.advance(0.5)
    assert nav.session.current_position == nav.route.polyline[1]


def test_restart_keeps_requested_playback(nav, directions_response):
    nav.load_route(directions_response)
    nav.start_simulation()

    nav.start_simulation(multiplier=10)

    assert nav.playback_multiplier == 10
    assert nav.last_summary is not None
