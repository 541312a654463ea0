# navigator.py
# Public entry point for the navigation engine.
# Owns no business logic; delegates everything to specialist modules.

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Tuple

from .directions import DirectionsClient
from .errors import DirectionsError, MalformedPolyline, NoRouteFound
from .models import (
    GeoPoint,
    NavigationMode,
    PositionSample,
    ProgressResult,
    ProgressSnapshot,
    Route,
    SessionStatus,
    SimulationConfig,
    TripSummary,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .position_stream import PositionStream
from .route_builder import build_route
from .scheduler import LogicalScheduler, Scheduler
from .session import NavigationSession
from .simulator import SimulationDriver

logger = logging.getLogger(__name__)


class NavigationSystem:
    """
    High-level navigation facade for the map page.

    Typical lifecycle:
        nav = NavigationSystem(config, directions=DirectionsClient())
        nav.find_route(GeoPoint(10.762, 106.660), GeoPoint(10.776, 106.700))

        nav.start_navigation(gps_stream)    # real position fixes
        # or
        nav.start_simulation(multiplier=5)  # synthetic playback

        summary = nav.stop_navigation()

    Args:
        config:     Optional NavConfig; defaults to NavConfig().
        directions: Directions provider client, needed only for find_route().
        scheduler:  Tick source for simulations; defaults to a LogicalScheduler.
        clock:      Datetime source for trip summaries.
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        directions: Optional[DirectionsClient] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._directions = directions
        self.scheduler = scheduler or LogicalScheduler()

        # Specialist modules
        self.session = NavigationSession(self.config, clock=clock)
        self._driver = SimulationDriver(self.scheduler, self._default_simulation_config())
        self._logger = NavLogger(self.config)

        self._route: Optional[Route] = None
        self.last_summary: Optional[TripSummary] = None

        self.session.summary_listeners.append(self._on_summary)
        if self._logger.enabled:
            self.session.progress_listeners.append(self._log_progress)

    # ------------------------------------------------------------------
    # Route acquisition
    # ------------------------------------------------------------------

    def find_route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        travel_mode: Optional[str] = None,
    ) -> Tuple[bool, str]:
        """
        Ask the provider for a route and load it.

        Returns:
            (success, message)
        """
        if self._directions is None:
            raise RuntimeError("No directions client configured.")
        mode = travel_mode or self.config.travel_mode
        logger.info(f"Requesting route: {origin} → {destination} ({mode})")
        try:
            response = self._directions.directions(origin, destination, mode)
        except DirectionsError as e:
            logger.warning(f"Directions request failed: {e}")
            return False, "Route finding failed."
        return self.load_route(response)

    def load_route(self, response: Mapping[str, Any]) -> Tuple[bool, str]:
        """
        Build a route from a provider response. Any active session is stopped,
        since it refers to the previous route.

        Returns:
            (success, message)
        """
        if self.session.status is not SessionStatus.IDLE:
            self.stop_navigation()
        self._route = None

        try:
            route = build_route(response)
        except MalformedPolyline as e:
            logger.warning(f"Route finding failed, malformed polyline: {e}")
            return False, "Route finding failed."
        except NoRouteFound as e:
            logger.warning(f"Route finding failed, no route: {e}")
            return False, "Route finding failed."

        self._route = route
        return True, f"Route ready. {len(route.steps)} steps."

    def clear_route(self) -> None:
        if self.session.status is not SessionStatus.IDLE:
            self.stop_navigation()
        self._route = None

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self, stream: PositionStream) -> None:
        """Start tracking real position fixes from stream."""
        self.session.start(self._require_route(), NavigationMode.REAL, stream=stream)

    def start_simulation(self, multiplier: Optional[int] = None) -> None:
        """Start a simulated run over the loaded route."""
        route = self._require_route()
        if self.session.status is not SessionStatus.IDLE:
            self.stop_navigation()
        if multiplier is not None:
            self._driver.config = SimulationConfig(playback_multiplier=multiplier)
        self.session.start(route, NavigationMode.SIMULATED)
        self._driver.start(self.session)

    def set_playback_multiplier(self, multiplier: int) -> None:
        self._driver.set_playback_multiplier(multiplier)

    def pause(self) -> None:
        self.session.pause()

    def resume(self) -> None:
        self.session.resume()

    def stop_navigation(self) -> TripSummary:
        """Forcibly end the current navigation session."""
        summary = self.session.stop()
        logger.info("Navigation stopped by user.")
        return summary

    # ------------------------------------------------------------------
    # Position update: call this on every position fix
    # ------------------------------------------------------------------

    def update(self, sample: PositionSample) -> ProgressResult:
        """Feed one position fix directly into the active session."""
        return self.session.on_position_sample(sample)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def playback_multiplier(self) -> int:
        return self._driver.config.playback_multiplier

    def snapshot(self) -> ProgressSnapshot:
        return self.session.snapshot()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_route(self) -> Route:
        if self._route is None:
            raise NoRouteFound("No route loaded.")
        return self._route

    def _default_simulation_config(self) -> SimulationConfig:
        return SimulationConfig(playback_multiplier=self.config.default_playback_multiplier)

    def _on_summary(self, summary: TripSummary) -> None:
        self.last_summary = summary
        # every run starts at the configured playback rate
        self._driver.config = self._default_simulation_config()
        self._logger.log_trip(summary)

    def _log_progress(self, snapshot: ProgressSnapshot) -> None:
        self._logger.log_progress(snapshot, self.session.current_position, self.session.status.value)
