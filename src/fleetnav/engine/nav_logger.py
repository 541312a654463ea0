# nav_logger.py
# Appends navigation events and trip summaries to a JSON-lines file.
# Disabled when NavConfig.log_dir is None.

import json
import logging
import os
from datetime import datetime
from typing import Optional

from .models import GeoPoint, ProgressSnapshot, TripSummary
from .nav_config import NavConfig

# Standard Python logger; configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists navigation events to a JSONL file.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        if self.config.log_dir is not None:
            os.makedirs(self.config.log_dir, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.config.event_filepath is not None

    def _append(self, entry: dict) -> None:
        path = self.config.event_filepath
        if path is None:
            return
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log {path}: {e}")

    def log_progress(self, snapshot: ProgressSnapshot, position: Optional[GeoPoint], status: str) -> None:
        """
        Append a single progress event.

        Args:
            snapshot: HUD payload produced by the session.
            position: Position the snapshot was computed for, if any.
            status:   Session status value at the time of the event.
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "event": "progress",
            "status": status,
            "position": position.to_dict() if position else None,
        }
        entry.update(snapshot.to_dict())
        self._append(entry)

    def log_trip(self, summary: TripSummary) -> None:
        """Append the finalised trip summary."""
        if not self.enabled:
            return
        entry = {"timestamp": datetime.now().isoformat(), "event": "trip_summary"}
        entry.update(summary.to_dict())
        self._append(entry)
        logger.info(f"Trip summary logged ({summary.average_speed_kmh:.1f} km/h).")
