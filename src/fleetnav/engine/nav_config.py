# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass
from typing import Optional


ARRIVAL_THRESHOLD_M: float = 50.0
MAX_SPEED_KMH: float = 120.0


@dataclass
class NavConfig:
    # Progress tracking
    arrival_threshold_m: float = ARRIVAL_THRESHOLD_M   # remaining distance that counts as arrived
    camera_follow: bool = True

    # Speed estimation
    speed_smoothing: float = 0.3             # weight of the newest sample
    max_speed_kmh: float = MAX_SPEED_KMH
    max_average_speed_kmh: Optional[float] = None

    # Simulation
    default_playback_multiplier: int = 1

    # Directions provider
    directions_timeout_s: float = 5.0
    travel_mode: str = "car"

    # Logging
    log_dir: Optional[str] = None            # None disables the JSONL event log
    event_filename: str = "nav_session.jsonl"

    @property
    def event_filepath(self) -> Optional[str]:
        if self.log_dir is None:
            return None
        return os.path.join(self.log_dir, self.event_filename)
