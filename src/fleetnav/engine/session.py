# session.py
# Navigation session state machine.
#
#   IDLE -> ACTIVE -> PAUSED (real mode only) -> ACTIVE
#                  -> COMPLETED
#   any non-idle state -> stop() -> IDLE

import functools
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Union

from .errors import InsufficientRoute, InvalidStateTransition
from .geo_utils import calculate_bearing
from .models import (
    GeoPoint,
    MarkerUpdate,
    NavigationMode,
    PositionSample,
    ProgressResult,
    ProgressSnapshot,
    Route,
    SessionStatus,
    TripSummary,
)
from .nav_config import NavConfig
from .position_stream import PositionStream
from .route_tracker import ProgressTracker
from .trip_summary import TripSummaryAccountant

logger = logging.getLogger(__name__)


def _locked(method):
    """Run a session method while holding the session lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class NavigationSession:
    """
    Owns the live navigation state for one run at a time.

    The session is advanced only by on_position_sample(), called either by a
    subscribed PositionStream (real mode) or by a SimulationDriver. Exactly one
    source is attached at a time; stop() and pause() detach it before returning.
    Every state change holds `lock`, so a sample being processed on a worker
    thread finishes before a concurrent stop() takes effect.

    Usage:
        session = NavigationSession(config)
        session.progress_listeners.append(hud.render)
        session.start(route, NavigationMode.REAL, stream=gps)
        ...
        summary = session.stop()

    Args:
        config: NavConfig instance.
        clock:  Callable returning the current datetime (trip timestamps).
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._clock = clock or datetime.now
        self._tracker = ProgressTracker(self.config)
        self._accountant = TripSummaryAccountant(self.config)
        self.lock = threading.RLock()

        self.marker_listeners: List[Callable[[MarkerUpdate], None]] = []
        self.progress_listeners: List[Callable[[ProgressSnapshot], None]] = []
        self.summary_listeners: List[Callable[[TripSummary], None]] = []
        self.status_listeners: List[Callable[[SessionStatus], None]] = []

        self._stream: Optional[PositionStream] = None
        self._detach: Optional[Callable[[], None]] = None
        self.status = SessionStatus.IDLE
        self._reset()

    def _reset(self) -> None:
        self.mode: Optional[NavigationMode] = None
        self.route: Optional[Route] = None
        self.current_position: Optional[GeoPoint] = None
        self.last_matched_index = 0
        self.current_step_index = 0
        self.remaining_distance_m = 0.0
        self.remaining_time_s = 0.0
        self.distance_to_next_turn_m = 0.0
        self.heading_deg = 0.0
        self.progress_fraction = 0.0
        self.current_speed_kmh = 0.0
        self._stream = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def trip_summary(self) -> Optional[TripSummary]:
        return self._accountant.current

    @property
    def has_source(self) -> bool:
        return self._detach is not None

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            remaining_distance_m=self.remaining_distance_m,
            remaining_time_s=self.remaining_time_s,
            current_step_index=self.current_step_index,
            distance_to_next_turn_m=self.distance_to_next_turn_m,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @_locked
    def start(
        self,
        route: Route,
        mode: NavigationMode,
        stream: Optional[PositionStream] = None,
    ) -> None:
        """
        Begin a new run. A run already in progress is stopped first.

        Args:
            route:  Route to follow; needs at least 2 points and 1 step.
            mode:   REAL or SIMULATED.
            stream: Position source, required in REAL mode. Simulated runs
                    get their source from SimulationDriver.start().

        Raises:
            InsufficientRoute: Route cannot be navigated.
            ValueError:        REAL mode without a stream.

        If the stream refuses the subscription its error propagates and the
        session is left IDLE.
        """
        if len(route.polyline) < 2 or len(route.steps) < 1:
            raise InsufficientRoute(
                f"Route needs >= 2 points and >= 1 step "
                f"(got {len(route.polyline)} points, {len(route.steps)} steps)."
            )
        if mode is NavigationMode.REAL and stream is None:
            raise ValueError("Real navigation requires a position stream.")

        if self.status is not SessionStatus.IDLE:
            logger.info("Restart requested: stopping the current session first.")
            self.stop()

        self._reset()
        if mode is NavigationMode.REAL:
            self._stream = stream
            try:
                self._attach_stream()
            except Exception:
                self._reset()
                raise

        self.mode = mode
        self.route = route
        self.remaining_distance_m = route.total_distance_m
        self.remaining_time_s = route.total_duration_s
        self.distance_to_next_turn_m = route.steps[0].distance_m
        self.heading_deg = calculate_bearing(route.polyline[0], route.polyline[1])
        self._accountant.open(route, self._clock())
        self._set_status(SessionStatus.ACTIVE)
        logger.info(
            f"Navigation started ({mode.value}): {len(route.polyline)} points, "
            f"{len(route.steps)} steps."
        )

    @_locked
    def pause(self) -> None:
        """Detach the position stream; computed fields are kept. Real mode only."""
        if self.status is not SessionStatus.ACTIVE or self.mode is not NavigationMode.REAL:
            raise InvalidStateTransition("pause", self.status, self.mode)
        self._detach_source()
        self._set_status(SessionStatus.PAUSED)
        logger.info("Navigation paused.")

    @_locked
    def resume(self) -> None:
        """Reattach the position stream of a paused real-mode run."""
        if self.status is not SessionStatus.PAUSED:
            raise InvalidStateTransition("resume", self.status, self.mode)
        self._set_status(SessionStatus.ACTIVE)
        self._attach_stream()
        logger.info("Navigation resumed.")

    @_locked
    def complete(self) -> None:
        """Forced arrival, used when a simulated run walks past the last vertex."""
        if self.status is not SessionStatus.ACTIVE:
            raise InvalidStateTransition("complete", self.status, self.mode)
        self.remaining_distance_m = 0.0
        self.remaining_time_s = 0.0
        self.distance_to_next_turn_m = 0.0
        self.progress_fraction = 1.0
        self._emit_progress()
        self._finish()

    @_locked
    def stop(self) -> TripSummary:
        """
        End the run from any non-idle state and return the finalised summary.

        Raises:
            InvalidStateTransition: If the session is already idle.
        """
        if self.status is SessionStatus.IDLE:
            raise InvalidStateTransition("stop", self.status, self.mode)
        self._detach_source()
        summary = self._accountant.finalize(self._clock())
        self._reset()
        self._set_status(SessionStatus.IDLE)
        logger.info("Navigation stopped.")
        for listener in list(self.summary_listeners):
            listener(summary)
        return summary

    @_locked
    def bind_source(self, cancel: Callable[[], None]) -> None:
        """
        Register the cancel callable of an external driver (simulation timer).
        Any previously attached source is detached first.
        """
        if self.status is not SessionStatus.ACTIVE:
            raise InvalidStateTransition("bind_source", self.status, self.mode)
        self._detach_source()
        self._detach = cancel

    # ------------------------------------------------------------------
    # Core method: call on every position sample
    # ------------------------------------------------------------------

    @_locked
    def on_position_sample(
        self,
        sample: Union[PositionSample, GeoPoint],
        marker_heading_deg: Optional[float] = None,
    ) -> ProgressResult:
        """
        Recompute progress for a new position.

        Args:
            sample:             Position fix (a bare GeoPoint is accepted).
            marker_heading_deg: Rotation for the marker payload; defaults to
                                the recomputed route heading.

        Returns:
            The ProgressResult that was applied.

        Raises:
            InvalidStateTransition: Session is not ACTIVE. Nothing is changed.
        """
        if self.status is not SessionStatus.ACTIVE:
            raise InvalidStateTransition("on_position_sample", self.status, self.mode)

        if isinstance(sample, GeoPoint):
            position, speed_mps = sample, None
        else:
            position, speed_mps = sample.point, sample.speed_mps

        result = self._tracker.compute(
            self.route, self.last_matched_index, position, self.heading_deg
        )
        self.current_position = position
        self.last_matched_index = result.matched_index
        self.current_step_index = result.current_step_index
        self.remaining_distance_m = result.remaining_distance_m
        self.remaining_time_s = result.remaining_time_s
        self.distance_to_next_turn_m = result.distance_to_next_turn_m
        self.heading_deg = result.heading_deg
        self.progress_fraction = result.progress_fraction
        if speed_mps is not None:
            self._update_speed(speed_mps * 3.6)

        heading = self.heading_deg if marker_heading_deg is None else marker_heading_deg
        self._emit_marker(MarkerUpdate(position, heading, self.config.camera_follow))
        self._emit_progress()

        if result.arrived:
            logger.info(
                f"Arrived: {result.remaining_distance_m:.1f} m remaining "
                f"(threshold {self.config.arrival_threshold_m} m)."
            )
            self._finish()
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _update_speed(self, speed_kmh: float) -> None:
        a = self.config.speed_smoothing
        smoothed = self.current_speed_kmh * (1 - a) + speed_kmh * a
        self.current_speed_kmh = min(max(smoothed, 0.0), self.config.max_speed_kmh)

    def _finish(self) -> None:
        self._detach_source()
        self._set_status(SessionStatus.COMPLETED)

    def _attach_stream(self) -> None:
        self._detach_source()
        self._detach = self._stream.subscribe(self.on_position_sample)

    def _detach_source(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()

    def _set_status(self, status: SessionStatus) -> None:
        if status is self.status:
            return
        logger.debug(f"Session {self.status.value} -> {status.value}")
        self.status = status
        for listener in list(self.status_listeners):
            listener(status)

    def _emit_marker(self, update: MarkerUpdate) -> None:
        for listener in list(self.marker_listeners):
            listener(update)

    def _emit_progress(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self.progress_listeners):
            listener(snapshot)
