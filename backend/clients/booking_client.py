"""
Client for the Booking.com RapidAPI endpoints (hotel and activity search).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

RESULT_LIST_KEYS = ("result", "data", "hotels", "results")


class ProviderDegraded(Exception):
    """Raised when the provider refuses service (rate limit, missing key)."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} degraded: {reason}")


def extract_result_list(data: Any) -> List[Any]:
    """Pull the record list out of whichever envelope the API used."""
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    for key in RESULT_LIST_KEYS:
        value = data.get(key)
        if isinstance(value, list):
            return value
    return []


class BookingClient:
    """Client for Booking.com search via RapidAPI."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        host: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.RAPIDAPI_BOOKING_KEY
        self.host = host or settings.RAPIDAPI_BOOKING_HOST
        self.timeout = timeout if timeout is not None else settings.BOOKING_TIMEOUT
        if not self.api_key:
            raise ValueError("RAPIDAPI_BOOKING_KEY is required")

    def _get(self, path: str, params: Dict[str, Any]) -> List[Any]:
        resp = httpx.get(
            f"https://{self.host}{path}",
            params=params,
            headers={"x-rapidapi-key": self.api_key, "x-rapidapi-host": self.host},
            timeout=self.timeout,
        )
        if resp.status_code == 429:
            logger.warning("Booking.com rate limited", extra={"path": path})
            raise ProviderDegraded("booking", "rate_limited")
        resp.raise_for_status()
        return extract_result_list(resp.json())

    def search_lodging(
        self,
        lat: float,
        lng: float,
        checkin_date: str,
        checkout_date: str,
        adults: int = 2,
        rows: Optional[int] = None,
    ) -> List[Any]:
        """
        Search hotels around a coordinate.

        Args:
            lat, lng: Search centre.
            checkin_date, checkout_date: YYYY-MM-DD.
            adults: Number of adult guests.
            rows: Maximum results (defaults to settings.BOOKING_MAX_RESULTS).

        Returns:
            Raw hotel records, untouched.
        """
        return self._get(
            "/v1/hotels/search",
            {
                "latitude": lat,
                "longitude": lng,
                "checkin_date": checkin_date,
                "checkout_date": checkout_date,
                "adults_number": adults,
                "rows": rows or settings.BOOKING_MAX_RESULTS,
                "units": "metric",
                "locale": "en-gb",
                "filter_by_currency": settings.DEFAULT_CURRENCY,
            },
        )

    def search_activities(
        self,
        lat: float,
        lng: float,
        query: str,
        adults: int = 2,
        rows: Optional[int] = None,
    ) -> List[Any]:
        """Search bookable activities around a coordinate for a theme query."""
        return self._get(
            "/v1/activities/search",
            {
                "latitude": lat,
                "longitude": lng,
                "adults_number": adults,
                "query": query,
                "rows": rows or settings.BOOKING_MAX_RESULTS,
            },
        )
