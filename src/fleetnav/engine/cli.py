# cli.py
# Interactive console for driving the engine by hand.
#
# Commands:
#   load <directions.json>                 load a saved provider response
#   route <lat> <lon> <lat> <lon> [mode]   ask the provider for a route
#   nav                                    start real-mode navigation
#   gps <lat> <lon>                        push a position fix
#   sim [multiplier]                       start a simulated run
#   run <seconds>                          advance simulation time
#   speed <multiplier>                     change playback rate
#   pause | resume | stop | status | quit

import argparse
import json
import logging
import traceback
from typing import List, Optional

from .directions import DirectionsClient
from .errors import NavigationError
from .formatting import format_distance, format_duration
from .models import GeoPoint, MarkerUpdate, PositionSample, SessionStatus, TripSummary
from .nav_config import NavConfig
from .navigator import NavigationSystem
from .position_stream import PushPositionStream


def parse_floats(parts: List[str], count: int) -> List[float]:
    if len(parts) != count:
        raise ValueError(f"Expected {count} numbers, got {len(parts)}")
    return [float(x) for x in parts]


def print_status(nav: NavigationSystem) -> None:
    session = nav.session
    print(f"[NAV] {session.status.value}", end="")
    if session.status is SessionStatus.IDLE:
        print()
        return
    step = session.route.steps[session.current_step_index]
    print(
        f" | left {format_distance(session.remaining_distance_m)}"
        f" / {format_duration(session.remaining_time_s)}"
        f" | next turn {format_distance(session.distance_to_next_turn_m)}"
        f" | step {session.current_step_index}: {step.instruction}"
    )


def print_summary(summary: TripSummary) -> None:
    print(
        f"[TRIP] {format_distance(summary.total_distance_m)} in "
        f"{format_duration(summary.elapsed_s)}, avg {summary.average_speed_kmh:.1f} km/h"
    )


def print_marker(update: MarkerUpdate) -> None:
    print(f"  → {update.position.lat:.5f}, {update.position.lon:.5f} heading {update.heading_deg:.0f}°")


def handle(nav: NavigationSystem, stream: PushPositionStream, cmd: str, args: List[str]) -> None:
    if cmd == "load":
        with open(args[0], "r", encoding="utf-8") as f:
            ok, msg = nav.load_route(json.load(f))
        print("[NAV]", msg)

    elif cmd == "route":
        o_lat, o_lon, d_lat, d_lon = parse_floats(args[:4], 4)
        mode = args[4] if len(args) > 4 else None
        ok, msg = nav.find_route(GeoPoint(o_lat, o_lon), GeoPoint(d_lat, d_lon), mode)
        print("[NAV]", msg)

    elif cmd == "nav":
        nav.start_navigation(stream)
        print_status(nav)

    elif cmd == "gps":
        lat, lon = parse_floats(args, 2)
        if not stream.push(PositionSample(lat=lat, lon=lon)):
            print("[NAV] No active navigation; fix ignored.")
        print_status(nav)

    elif cmd == "sim":
        multiplier = int(args[0]) if args else None
        nav.start_simulation(multiplier)
        print_status(nav)

    elif cmd == "run":
        seconds = float(args[0]) if args else 1.0
        nav.scheduler.advance(seconds)
        print_status(nav)

    elif cmd == "speed":
        nav.set_playback_multiplier(int(args[0]))
        print(f"[NAV] Playback {nav.playback_multiplier}x")

    elif cmd == "pause":
        nav.pause()
        print_status(nav)

    elif cmd == "resume":
        nav.resume()
        print_status(nav)

    elif cmd == "stop":
        nav.stop_navigation()

    elif cmd == "status":
        print_status(nav)

    else:
        print("[NAV] Unknown command.")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Route navigation and simulation console.")
    parser.add_argument("--log-dir", default=None, help="write nav_session.jsonl here")
    parser.add_argument("--no-provider", action="store_true", help="do not create a directions client")
    parser.add_argument("-v", "--verbose", action="store_true")
    opts = parser.parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup: configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if opts.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = NavConfig(log_dir=opts.log_dir)
    directions = None
    if not opts.no_provider:
        try:
            directions = DirectionsClient(timeout=config.directions_timeout_s)
        except ValueError as e:
            print(f"[NAV] {e} 'route' is disabled.")

    nav = NavigationSystem(config, directions=directions)
    nav.session.marker_listeners.append(print_marker)
    nav.session.summary_listeners.append(print_summary)
    stream = PushPositionStream()

    print("Commands: load, route, nav, gps, sim, run, speed, pause, resume, stop, status, quit")
    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            break
        if not line:
            continue
        if line.lower() in ("q", "quit", "exit"):
            break

        parts = line.split()
        try:
            handle(nav, stream, parts[0].lower(), parts[1:])
        except (NavigationError, RuntimeError, ValueError, IndexError, OSError) as e:
            logging.getLogger(__name__).debug(traceback.format_exc())
            print("[ERR]", e)

    if nav.status is not SessionStatus.IDLE:
        nav.stop_navigation()


if __name__ == "__main__":
    main()
