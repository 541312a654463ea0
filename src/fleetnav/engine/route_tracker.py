# route_tracker.py
# Progress estimation against an active route.
# Pure: the result depends only on (route, last matched index, position, heading).

from typing import Optional

from .geo_utils import calculate_bearing, haversine_distance, nearest_point_index
from .models import GeoPoint, ProgressResult, Route
from .nav_config import NavConfig


def nearest_step_index(route: Route, point: GeoPoint) -> int:
    """Index of the step whose start point is nearest to point."""
    best_index = 0
    min_dist = float("inf")
    for i, step in enumerate(route.steps):
        d = haversine_distance(point, step.start)
        if d < min_dist:
            min_dist = d
            best_index = i
    return best_index


class ProgressTracker:
    """
    Recomputes navigation progress for one position sample.

    Usage:
        tracker = ProgressTracker(config)

        # Inside the position loop:
        result = tracker.compute(route, session.last_matched_index, position, session.heading_deg)
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()

    def compute(
        self,
        route: Route,
        last_matched_index: int,
        position: GeoPoint,
        heading_deg: float = 0.0,
    ) -> ProgressResult:
        """
        Match position against the route and derive remaining distance/time.

        Args:
            route:              Active route.
            last_matched_index: Previous match; the search starts here and the
                                result never moves below it.
            position:           Current position.
            heading_deg:        Current heading, kept when no next vertex exists.

        Returns:
            ProgressResult for the caller to apply to its session.
        """
        polyline = route.polyline
        found = nearest_point_index(position, polyline, last_matched_index)
        matched = max(found, last_matched_index)
        matched_point = polyline[matched]

        remaining = haversine_distance(position, matched_point) + route.distance_from_index(matched)
        remaining = max(0.0, remaining)

        if route.total_distance_m > 0:
            progress = min(1.0, max(0.0, 1.0 - remaining / route.total_distance_m))
        else:
            progress = 1.0
        remaining_time = max(0.0, route.total_duration_s * (1.0 - progress))

        step_index = nearest_step_index(route, matched_point)
        if step_index >= len(route.steps) - 1:
            to_next_turn = remaining
        else:
            to_next_turn = haversine_distance(position, route.steps[step_index + 1].start)

        if matched + 1 < len(polyline):
            heading_deg = calculate_bearing(position, polyline[matched + 1])

        return ProgressResult(
            matched_index=matched,
            remaining_distance_m=remaining,
            progress_fraction=progress,
            remaining_time_s=remaining_time,
            current_step_index=step_index,
            distance_to_next_turn_m=to_next_turn,
            heading_deg=heading_deg,
            arrived=remaining < self.config.arrival_threshold_m,
        )
