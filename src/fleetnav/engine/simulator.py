# simulator.py
# Synthetic position source: walks the route polyline one vertex per tick and
# feeds each vertex into the session like a real position fix.

import logging
from typing import Optional

from .errors import InvalidStateTransition
from .geo_utils import calculate_bearing, haversine_distance
from .models import NavigationMode, PositionSample, SessionStatus, SimulationConfig
from .scheduler import Scheduler, TimerHandle
from .session import NavigationSession

logger = logging.getLogger(__name__)


class SimulationDriver:
    """
    Drives a SIMULATED session at 1000 ms / playback_multiplier per vertex.

    Usage:
        session.start(route, NavigationMode.SIMULATED)
        driver = SimulationDriver(scheduler, SimulationConfig(playback_multiplier=2))
        driver.start(session)

    Args:
        scheduler: Tick source (LogicalScheduler or ThreadingScheduler).
        config:    Initial SimulationConfig.
    """

    def __init__(self, scheduler: Scheduler, config: Optional[SimulationConfig] = None) -> None:
        self._scheduler = scheduler
        self.config = config or SimulationConfig()
        self._session: Optional[NavigationSession] = None
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self.cursor = 0
        self.heading_deg = 0.0

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    def start(self, session: NavigationSession) -> None:
        """
        Place the vehicle on the first vertex and start ticking.
        Starting again replaces the running timer and rewinds to vertex 0.
        """
        with session.lock:
            if session.status is not SessionStatus.ACTIVE or session.mode is not NavigationMode.SIMULATED:
                raise InvalidStateTransition("simulate", session.status, session.mode)

            # Detaches whatever drove the session before, this driver included.
            session.bind_source(self._halt)
            self._session = session
            self.cursor = 0
            polyline = session.route.polyline
            self.heading_deg = calculate_bearing(polyline[0], polyline[1])

            self._schedule()
            logger.info(
                f"Simulation started: {len(polyline)} vertices at "
                f"{self.config.playback_multiplier}x."
            )
            session.on_position_sample(
                PositionSample.at(polyline[0], speed_mps=0.0),
                marker_heading_deg=self.heading_deg,
            )

    def set_playback_multiplier(self, multiplier: int) -> None:
        """Change playback rate; the vertex cursor is left untouched."""
        config = SimulationConfig(playback_multiplier=multiplier)
        session = self._session
        if session is None:
            self.config = config
        else:
            with session.lock:
                self.config = config
                if self._timer is not None:
                    self._timer.cancel()
                    self._schedule()
        logger.info(f"Playback multiplier set to {multiplier}x.")

    def tick(self) -> None:
        """Advance exactly one polyline vertex."""
        session = self._session
        if session is None or session.status is not SessionStatus.ACTIVE:
            self._halt()
            return

        polyline = session.route.polyline
        previous = self.cursor
        self.cursor += 1

        if self.cursor >= len(polyline):
            logger.info("Simulation walked past the last vertex: forcing arrival.")
            session.complete()
            self._halt()
            return

        prev_point, point = polyline[previous], polyline[self.cursor]
        self.heading_deg = calculate_bearing(prev_point, point)
        speed_mps = haversine_distance(prev_point, point) / self.config.tick_interval_s
        session.on_position_sample(
            PositionSample.at(point, speed_mps=speed_mps),
            marker_heading_deg=self.heading_deg,
        )

    def _schedule(self) -> None:
        self._generation += 1
        generation = self._generation
        self._timer = self._scheduler.call_every(
            self.config.tick_interval_s, lambda: self._on_timer(generation)
        )

    def _on_timer(self, generation: int) -> None:
        session = self._session
        if session is None:
            return
        with session.lock:
            # a threaded timer can fire once more after being cancelled
            if generation != self._generation or self._session is not session:
                return
            self.tick()

    def _halt(self) -> None:
        self._generation += 1
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self._session = None
