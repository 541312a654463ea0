# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

import numpy as np


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    """Immutable geographic coordinate in decimal degrees."""
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box of a route."""
    south: float
    west: float
    north: float
    east: float


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteStep:
    """One maneuver-to-maneuver segment of a route."""
    start: GeoPoint
    end: GeoPoint
    instruction: str             # may contain markup, kept verbatim
    distance_m: float
    duration_s: float
    maneuver: Optional[str] = None


@dataclass(frozen=True)
class Route:
    """
    Normalised provider route. Immutable for the lifetime of a session.

    Segment lengths are precomputed so that the distance from any polyline
    vertex to the end of the route is a lookup.
    """
    polyline: Tuple[GeoPoint, ...]
    steps: Tuple[RouteStep, ...]
    total_distance_m: float
    total_duration_s: float
    bounds: Optional[Bounds] = None
    _suffix_m: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "polyline", tuple(self.polyline))
        object.__setattr__(self, "steps", tuple(self.steps))

        # Imported here: geo_utils depends on GeoPoint from this module.
        from .geo_utils import segment_lengths

        lengths = segment_lengths(self.polyline)
        # suffix[i] = sum of segment lengths from vertex i to the last vertex
        suffix = np.zeros(len(self.polyline), dtype=float)
        if len(lengths):
            suffix[:-1] = np.cumsum(lengths[::-1])[::-1]
        object.__setattr__(self, "_suffix_m", suffix)

    def distance_from_index(self, index: int) -> float:
        """Along-route distance from polyline[index] to the final vertex."""
        if not len(self._suffix_m):
            return 0.0
        return float(self._suffix_m[index])

    @property
    def polyline_length_m(self) -> float:
        return self.distance_from_index(0)


# ---------------------------------------------------------------------------
# Session enums
# ---------------------------------------------------------------------------

class NavigationMode(Enum):
    REAL      = "real"
    SIMULATED = "simulated"


class SessionStatus(Enum):
    IDLE      = "idle"
    ACTIVE    = "active"
    PAUSED    = "paused"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionSample:
    """A single fix from a position stream. accuracy_m is not used."""
    lat: float
    lon: float
    accuracy_m: Optional[float] = None
    timestamp: Optional[float] = None
    speed_mps: Optional[float] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lon)

    @staticmethod
    def at(point: GeoPoint, **kwargs) -> "PositionSample":
        return PositionSample(lat=point.lat, lon=point.lon, **kwargs)


ALLOWED_PLAYBACK_MULTIPLIERS: Tuple[int, ...] = (1, 2, 5, 10)


@dataclass
class SimulationConfig:
    playback_multiplier: int = 1

    def __post_init__(self) -> None:
        if self.playback_multiplier not in ALLOWED_PLAYBACK_MULTIPLIERS:
            raise ValueError(
                f"playback_multiplier must be one of {ALLOWED_PLAYBACK_MULTIPLIERS}, "
                f"got {self.playback_multiplier}"
            )

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / self.playback_multiplier


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass
class ProgressResult:
    """Returned by ProgressTracker.compute() for every position sample."""
    matched_index: int
    remaining_distance_m: float
    progress_fraction: float
    remaining_time_s: float
    current_step_index: int
    distance_to_next_turn_m: float
    heading_deg: float
    arrived: bool


@dataclass(frozen=True)
class MarkerUpdate:
    """Marker / camera payload for the rendering layer."""
    position: GeoPoint
    heading_deg: float
    camera_follow: bool


@dataclass(frozen=True)
class ProgressSnapshot:
    """HUD payload emitted after every recomputation."""
    remaining_distance_m: float
    remaining_time_s: float
    current_step_index: int
    distance_to_next_turn_m: float

    def to_dict(self) -> dict:
        return {
            "remaining_distance_m": self.remaining_distance_m,
            "remaining_time_s": self.remaining_time_s,
            "current_step_index": self.current_step_index,
            "distance_to_next_turn_m": self.distance_to_next_turn_m,
        }


@dataclass
class TripSummary:
    """Post-hoc record of a navigation run."""
    started_at: datetime
    total_distance_m: float
    total_duration_s: float
    ended_at: Optional[datetime] = None
    average_speed_kmh: float = 0.0

    @property
    def is_final(self) -> bool:
        return self.ended_at is not None

    @property
    def elapsed_s(self) -> float:
        if self.ended_at is None:
            return 0.0
        return max(0.0, (self.ended_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "total_distance_m": self.total_distance_m,
            "total_duration_s": self.total_duration_s,
            "average_speed_kmh": self.average_speed_kmh,
        }
