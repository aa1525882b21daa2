"""
Location Resolver: canonical coordinates for places and door-to-door travel
estimates between them.

Resolution order is coordinates, gazetteer, then Google Geocoding. Travel
estimates never raise; any Distance Matrix trouble degrades to a haversine
estimate at a fixed average speed.

Usage:
    from services.location_service import LocationResolver

    resolver = LocationResolver(Gazetteer())
    penang = resolver.resolve("Penang")
    estimate = resolver.estimate_travel(resolver.default_origin(), penang)
"""

import logging
import math
import re
from typing import Any, Dict, Optional, Union

from clients.google_maps_client import GoogleMapsClient
from config.settings import settings
from models.geo import (
    EstimateSource,
    GeoPoint,
    LocationSource,
    ResolvedLocation,
    TravelEstimate,
)
from services.gazetteer import Gazetteer

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371e3

COORDINATE_PATTERN = re.compile(r"^\s*(-?\d{1,3}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")

LocationInput = Union[str, GeoPoint, ResolvedLocation, Dict[str, Any]]


class GeocodeError(Exception):
    """Raised when neither the provider nor the gazetteer can place an input."""

    def __init__(self, query: str, reason: str = ""):
        self.query = query
        self.reason = reason
        message = f'Could not geocode "{query}". Try a major Malaysian city or landmark.'
        super().__init__(message)


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, h)))


def normalize_mode(mode: Optional[str]) -> str:
    mode = (mode or "").strip().lower()
    return mode if mode in settings.VALID_TRAVEL_MODES else "driving"


class LocationResolver:
    """Resolves places to coordinates and estimates travel between them."""

    def __init__(
        self,
        gazetteer: Gazetteer,
        client: Optional[GoogleMapsClient] = None,
        avg_speed_kmh: Optional[float] = None,
    ):
        """
        Args:
            gazetteer: Fallback lookup table, owned by the caller.
            client: Optional GoogleMapsClient instance for dependency injection.
            avg_speed_kmh: Speed assumed by the haversine estimate.
        """
        self.gazetteer = gazetteer
        self.avg_speed_kmh = avg_speed_kmh or settings.HAVERSINE_AVG_SPEED_KMH
        try:
            self.client = client or GoogleMapsClient()
            self._available = True
        except ValueError as e:
            logger.warning(f"Google Maps client unavailable: {e}")
            self._available = False
            self.client = None

    def is_available(self) -> bool:
        """Check if Google Maps API is configured and available."""
        return self._available

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def default_origin(self) -> ResolvedLocation:
        return self.gazetteer.country_centroid

    def resolve(self, value: LocationInput) -> ResolvedLocation:
        """
        Resolve free text or a coordinate pair to a ResolvedLocation.

        Raises:
            GeocodeError: when the input is empty, or when both the provider
                and the gazetteer fail to match it.
        """
        if isinstance(value, ResolvedLocation):
            return value
        point = self._as_point(value)
        if point is not None:
            return ResolvedLocation(point, f"{point.lat:.5f}, {point.lng:.5f}", LocationSource.PROVIDER)

        text = str(value or "").strip()
        if not text:
            raise GeocodeError(text, "empty input")

        known = self.gazetteer.match(text)
        if known is not None:
            logger.debug("Gazetteer match", extra={"query": text, "match": known.formatted_name})
            return known

        return self._geocode(text)

    def _as_point(self, value: Any) -> Optional[GeoPoint]:
        try:
            if isinstance(value, GeoPoint):
                return value
            if isinstance(value, dict) and "lat" in value and "lng" in value:
                return GeoPoint(float(value["lat"]), float(value["lng"]))
            if isinstance(value, str):
                m = COORDINATE_PATTERN.match(value)
                if m:
                    return GeoPoint(float(m.group(1)), float(m.group(2)))
        except (TypeError, ValueError) as e:
            raise GeocodeError(str(value), f"invalid coordinates: {e}") from e
        return None

    def _geocode(self, text: str) -> ResolvedLocation:
        if not self._available:
            raise GeocodeError(text, "geocoding provider not configured")

        country = settings.DEFAULT_COUNTRY
        query = text if country.lower() in text.lower() else f"{text}, {country}"
        try:
            data = self.client.geocode(
                query,
                region=settings.DEFAULT_REGION_CODE,
                country_code=settings.DEFAULT_REGION_CODE,
            )
        except Exception as e:
            logger.warning(f"Geocoding failed for {text!r}: {e}")
            raise GeocodeError(text, str(e)) from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results[0], dict):
            status = data.get("status") if isinstance(data, dict) else None
            raise GeocodeError(text, f"no results (status={status})")

        top = results[0]
        location = (top.get("geometry") or {}).get("location") or {}
        try:
            point = GeoPoint(float(location["lat"]), float(location["lng"]))
        except (KeyError, TypeError, ValueError):
            raise GeocodeError(text, "result without coordinates")

        formatted = top.get("formatted_address") or text
        if not self._in_country(top):
            # the gazetteer was already consulted, so the provider result stands
            logger.warning(
                "Geocoding result outside %s kept",
                country,
                extra={"query": text, "formatted_address": formatted},
            )
        return ResolvedLocation(point, formatted, LocationSource.PROVIDER)

    @staticmethod
    def _in_country(result: Dict[str, Any]) -> bool:
        code = settings.DEFAULT_REGION_CODE.upper()
        name = settings.DEFAULT_COUNTRY.lower()
        for component in result.get("address_components") or []:
            if not isinstance(component, dict) or "country" not in (component.get("types") or []):
                continue
            if str(component.get("short_name", "")).upper() == code:
                return True
            if name in str(component.get("long_name", "")).lower():
                return True
        return False

    # ------------------------------------------------------------------
    # Travel estimates
    # ------------------------------------------------------------------

    def estimate_travel(
        self,
        origin: Optional[Union[ResolvedLocation, GeoPoint]],
        destination: Union[ResolvedLocation, GeoPoint],
        mode: str = "driving",
    ) -> TravelEstimate:
        """
        Distance and duration between two points. Never raises.

        A missing origin means the country centroid.
        """
        mode = normalize_mode(mode)
        start = self._point_of(origin) if origin is not None else self.default_origin().point
        end = self._point_of(destination)
        link = GoogleMapsClient.build_maps_link(start.as_param(), end.as_param(), mode)

        if not self._available:
            return self._haversine_estimate(start, end, mode, link)

        try:
            data = self.client.distance_matrix(start.as_param(), end.as_param(), mode=mode)
        except Exception as e:
            logger.warning(f"Distance Matrix failed, using haversine estimate: {e}")
            return self._haversine_estimate(start, end, mode, link)

        element = self._first_element(data)
        if element is None or element.get("status", "OK") != "OK":
            logger.info(
                "Distance Matrix element not OK, using haversine estimate",
                extra={"element_status": (element or {}).get("status")},
            )
            return self._haversine_estimate(start, end, mode, link)

        distance = element.get("distance") or {}
        duration = element.get("duration") or {}
        try:
            meters = float(distance.get("value", 0))
            seconds = float(duration.get("value", 0))
        except (TypeError, ValueError):
            return self._haversine_estimate(start, end, mode, link)
        if meters > 0 and seconds <= 0:
            return self._haversine_estimate(start, end, mode, link)

        return TravelEstimate(
            distance_meters=meters,
            distance_text=distance.get("text") or f"{meters / 1000:.1f} km",
            duration_seconds=seconds,
            duration_text=duration.get("text") or f"{round(seconds / 60)} mins",
            source=EstimateSource.PROVIDER,
            mode=mode,
            maps_link=link,
        )

    @staticmethod
    def _point_of(value: Union[ResolvedLocation, GeoPoint]) -> GeoPoint:
        return value.point if isinstance(value, ResolvedLocation) else value

    @staticmethod
    def _first_element(data: Any) -> Optional[Dict[str, Any]]:
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            return None
        return element if isinstance(element, dict) else None

    def _haversine_estimate(
        self, start: GeoPoint, end: GeoPoint, mode: str, link: Optional[str]
    ) -> TravelEstimate:
        meters = haversine_meters(start, end)
        km = meters / 1000
        hours = km / self.avg_speed_kmh
        return TravelEstimate(
            distance_meters=meters,
            distance_text=f"{km:.1f} km (approx)",
            duration_seconds=hours * 3600,
            duration_text=f"{round(hours * 60)} mins (approx)",
            source=EstimateSource.HAVERSINE_ESTIMATE,
            mode=mode,
            maps_link=link,
        )
