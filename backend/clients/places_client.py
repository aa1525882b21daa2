"""
Client for the Google Places (legacy) web service: nearby search, text
search, place details and photo media.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from config.settings import settings

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DETAIL_FIELDS = (
    "formatted_address",
    "rating",
    "user_ratings_total",
    "reviews",
    "photos",
    "website",
    "formatted_phone_number",
)


class GooglePlacesClient:
    """Thin wrapper around the Places JSON endpoints."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.GOOGLE_PLACES_API_KEY
        self.timeout = timeout if timeout is not None else settings.PLACES_TIMEOUT
        if not self.api_key:
            raise ValueError("GOOGLE_PLACES_API_KEY (or GOOGLE_MAPS_API_KEY) is required")

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        resp = httpx.get(
            f"{PLACES_BASE_URL}/{path}",
            params={**params, "key": self.api_key},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def nearby_search(
        self,
        location: str,
        keyword: str,
        radius: int = 200,
    ) -> List[Dict[str, Any]]:
        """Return raw candidates around a ``lat,lng`` location matching keyword."""
        data = self._get(
            "nearbysearch/json",
            {"location": location, "radius": radius, "keyword": keyword},
        )
        results = data.get("results")
        return results if isinstance(results, list) else []

    def text_search(self, query: str) -> List[Dict[str, Any]]:
        """Return raw candidates for a free-text query."""
        data = self._get("textsearch/json", {"query": query})
        results = data.get("results")
        return results if isinstance(results, list) else []

    def place_details(
        self,
        place_id: str,
        fields: Sequence[str] = DETAIL_FIELDS,
    ) -> Optional[Dict[str, Any]]:
        """Return the ``result`` object for a place id, or None."""
        data = self._get("details/json", {"place_id": place_id, "fields": ",".join(fields)})
        result = data.get("result")
        return result if isinstance(result, dict) else None

    def fetch_photo(self, photo_reference: str, max_width: int = 400) -> Tuple[bytes, str]:
        """Download a place photo. Returns (content, content_type)."""
        resp = httpx.get(
            f"{PLACES_BASE_URL}/photo",
            params={
                "photoreference": photo_reference,
                "maxwidth": max_width,
                "key": self.api_key,
            },
            timeout=self.timeout,
            follow_redirects=True,
        )
        resp.raise_for_status()
        return resp.content, resp.headers.get("content-type", "image/jpeg")
