# directions.py
# HTTP client for the Directions provider.
# Sole responsibility: send the request and hand back the parsed JSON.
# Interpreting the response is route_builder's job.

import logging
import os
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from .errors import DirectionsError
from .models import GeoPoint

logger = logging.getLogger(__name__)

# Example in .env:
# DIRECTIONS_BASE_URL=https://maps.track-asia.com/route/v1
# DIRECTIONS_API_KEY=...
load_dotenv()


class DirectionsClient:
    """
    Directions provider adapter.

    Args:
        base_url: Provider base URL; defaults to $DIRECTIONS_BASE_URL.
        api_key:  API key; defaults to $DIRECTIONS_API_KEY.
        timeout:  Seconds to wait for a response before giving up.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("DIRECTIONS_BASE_URL") or "").rstrip("/")
        self.api_key = api_key or os.getenv("DIRECTIONS_API_KEY")
        self.timeout = timeout
        self._http = session or requests.Session()

        if not self.base_url:
            raise ValueError("Directions base URL not set. Please set DIRECTIONS_BASE_URL.")

    @staticmethod
    def format_point(point: GeoPoint) -> str:
        """Provider expects 'lat,lng'."""
        return f"{point.lat},{point.lon}"

    def directions(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        travel_mode: str = "car",
    ) -> Dict[str, Any]:
        """
        Request directions between two points.

        Returns:
            Parsed JSON body ({"status": ..., "routes": [...]}).

        Raises:
            DirectionsError: Network failure, HTTP error status, or a body
                that is not JSON.
        """
        params = {
            "origin": self.format_point(origin),
            "destination": self.format_point(destination),
            "mode": travel_mode,
        }
        if self.api_key:
            params["key"] = self.api_key

        url = f"{self.base_url}/directions/json"
        logger.debug(f"GET {url} {origin} -> {destination} ({travel_mode})")
        try:
            response = self._http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise DirectionsError(f"Directions request failed: {e}") from e
        except ValueError as e:
            raise DirectionsError(f"Directions response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise DirectionsError("Directions response has an unexpected shape.")
        return data
