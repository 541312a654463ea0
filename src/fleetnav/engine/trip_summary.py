# trip_summary.py
# Start/stop accounting for a navigation run.

import logging
from datetime import datetime
from typing import Optional

from .models import Route, TripSummary
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class TripSummaryAccountant:
    """
    Opens a TripSummary when a session starts and finalises it on stop.

    Args:
        config: NavConfig; max_average_speed_kmh caps the reported average.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._current: Optional[TripSummary] = None

    @property
    def current(self) -> Optional[TripSummary]:
        return self._current

    def open(self, route: Route, now: datetime) -> TripSummary:
        """Start a new summary; replaces whatever the previous run left behind."""
        self._current = TripSummary(
            started_at=now,
            total_distance_m=route.total_distance_m,
            total_duration_s=route.total_duration_s,
        )
        return self._current

    def finalize(self, now: datetime) -> TripSummary:
        """
        Stamp the end time and derive the average speed.

        Raises:
            RuntimeError: If no summary is open.
        """
        summary = self._current
        if summary is None:
            raise RuntimeError("No trip summary is open.")
        if summary.is_final:
            return summary

        summary.ended_at = now
        elapsed_hours = summary.elapsed_s / 3600.0
        if elapsed_hours > 0:
            speed = (summary.total_distance_m / 1000.0) / elapsed_hours
            cap = self.config.max_average_speed_kmh
            summary.average_speed_kmh = min(speed, cap) if cap is not None else speed
        else:
            summary.average_speed_kmh = 0.0

        logger.info(
            f"Trip finished: {summary.total_distance_m:.0f} m in "
            f"{summary.elapsed_s:.0f} s ({summary.average_speed_kmh:.1f} km/h)"
        )
        return summary
