"""
Geographic data models — resolved coordinates and travel estimates.

GeoPoint and ResolvedLocation are immutable once created; TravelEstimate is
produced once per (origin, destination, mode) request and never cached.

Usage:
    point = GeoPoint(lat=5.4141, lng=100.3288)
    loc = ResolvedLocation(point, "Penang, Malaysia", LocationSource.GAZETTEER)
    loc.to_dict()
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LocationSource(str, Enum):
    """Who supplied a resolved coordinate."""

    PROVIDER = "PROVIDER"
    GAZETTEER = "GAZETTEER"


class EstimateSource(str, Enum):
    """Who supplied a travel distance/duration."""

    PROVIDER = "PROVIDER"
    HAVERSINE_ESTIMATE = "HAVERSINE_ESTIMATE"


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"lat must be within [-90, 90], got {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"lng must be within [-180, 180], got {self.lng}")

    def as_param(self) -> str:
        """Format as the ``lat,lng`` string Google endpoints expect."""
        return f"{self.lat:.7f},{self.lng:.7f}"

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class ResolvedLocation:
    """Canonical location produced by the Location Resolver."""

    point: GeoPoint
    formatted_name: str
    source: LocationSource

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.point.lat,
            "lng": self.point.lng,
            "formattedName": self.formatted_name,
            "source": self.source.value,
        }


@dataclass
class TravelEstimate:
    """Door-to-door distance and duration between two points."""

    distance_meters: float
    distance_text: str
    duration_seconds: float
    duration_text: str
    source: EstimateSource
    mode: str = "driving"
    maps_link: Optional[str] = None

    @property
    def is_estimated(self) -> bool:
        return self.source is EstimateSource.HAVERSINE_ESTIMATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distanceMeters": self.distance_meters,
            "distanceText": self.distance_text,
            "durationSeconds": self.duration_seconds,
            "durationText": self.duration_text,
            "source": self.source.value,
            "mode": self.mode,
            "mapsLink": self.maps_link,
        }
