"""
Client for the Google Maps Geocoding and Distance Matrix APIs.
Returns the decoded JSON bodies; interpretation (status checks, fallbacks)
belongs to the location service.
"""

from typing import Dict, Any, Optional
from urllib.parse import quote_plus

import httpx

from config.settings import settings


GEOCODE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_API_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

# Modes supported by the Distance Matrix API
TRAVEL_MODES = ["driving", "walking", "bicycling", "transit"]


class GoogleMapsClient:
    """Client for geocoding places and measuring routes via Google Maps API."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.GOOGLE_MAPS_API_KEY
        self.timeout = timeout if timeout is not None else settings.ROUTING_TIMEOUT
        if not self.api_key:
            raise ValueError(
                "GOOGLE_MAPS_API_KEY is required. "
                "Get one at https://console.cloud.google.com/apis/credentials"
            )

    def geocode(
        self,
        address: str,
        region: Optional[str] = None,
        country_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Geocode a free-text address.

        Args:
            address: Place name or address.
            region: ccTLD region bias (e.g. "my").
            country_code: ISO country restriction (e.g. "MY").

        Returns:
            The raw Geocoding API response body.
        """
        params: Dict[str, Any] = {"address": address, "key": self.api_key}
        if region:
            params["region"] = region.lower()
        if country_code:
            params["components"] = f"country:{country_code.upper()}"

        resp = httpx.get(GEOCODE_API_URL, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def distance_matrix(
        self,
        origin: str,
        destination: str,
        mode: str = "driving",
    ) -> Dict[str, Any]:
        """
        Fetch distance and duration for a single origin/destination pair.

        Args:
            origin: ``lat,lng`` string or address.
            destination: ``lat,lng`` string or address.
            mode: One of "driving", "walking", "bicycling", "transit".

        Returns:
            The raw Distance Matrix response body.
        """
        if mode not in TRAVEL_MODES:
            raise ValueError(f"mode must be one of {TRAVEL_MODES}, got '{mode}'")

        params = {
            "origins": origin,
            "destinations": destination,
            "mode": mode,
            "language": "en",
            "units": "metric",
            "key": self.api_key,
        }

        resp = httpx.get(DISTANCE_MATRIX_API_URL, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def build_maps_link(origin: str, destination: str, mode: str) -> str:
        """Build a shareable Google Maps directions URL."""
        return (
            "https://www.google.com/maps/dir/?api=1"
            f"&origin={quote_plus(origin)}"
            f"&destination={quote_plus(destination)}"
            f"&travelmode={mode}"
        )
