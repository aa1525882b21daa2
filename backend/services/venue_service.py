"""
Venue service: searches lodging and activities around a resolved
destination and normalizes every record.

Booking.com (RapidAPI) is the primary inventory provider; activity searches
that come back empty or degraded fall back to Google Places Nearby Search.
Provider failures never raise: they are logged, recorded on the result and
the pipeline continues with whatever was found.

Usage:
    from services.venue_service import VenueService

    svc = VenueService()
    result = svc.collect(destination, trip_request)
    result.venues, result.degraded_providers
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

from clients.booking_client import BookingClient, ProviderDegraded
from clients.places_client import GooglePlacesClient
from config.settings import settings
from models.geo import ResolvedLocation
from models.trip_request import TripRequest
from models.venue import NormalizedVenue, ProviderKind
from services.venue_normalizer import UNKNOWN_NAME, normalize

logger = logging.getLogger(__name__)

# Interest tag -> search keywords that work better than the bare tag
THEME_QUERIES = {
    "food": "best local food",
    "culture": "museum cultural centre",
    "relax": "spa cafe relaxing",
    "nature": "nature park waterfall",
    "adventure": "outdoor adventure activities",
}

MAX_ACTIVITY_THEMES = 3
MAX_PLACES_RESULTS = 30


@dataclass
class VenueCollection:
    """Normalized venues plus the providers that degraded while collecting."""

    venues: List[NormalizedVenue] = field(default_factory=list)
    degraded_providers: List[str] = field(default_factory=list)

    def mark_degraded(self, provider: str) -> None:
        if provider not in self.degraded_providers:
            self.degraded_providers.append(provider)


def theme_query(theme: str) -> str:
    return THEME_QUERIES.get(theme.strip().lower(), theme.strip())


def stay_dates(request: TripRequest) -> Optional[Tuple[str, str]]:
    """Check-in/check-out pair; check-out is at least one night after check-in."""
    try:
        checkin = date.fromisoformat(request.start_date)
    except (TypeError, ValueError):
        return None
    try:
        checkout = date.fromisoformat(request.end_date)
    except (TypeError, ValueError):
        checkout = checkin + timedelta(days=request.resolved_duration())
    if checkout <= checkin:
        checkout = checkin + timedelta(days=1)
    return checkin.isoformat(), checkout.isoformat()


class VenueService:
    """Collects lodging and activity venues for a destination."""

    def __init__(
        self,
        booking_client: Optional[BookingClient] = None,
        places_client: Optional[GooglePlacesClient] = None,
    ):
        try:
            self.booking = booking_client or BookingClient()
        except ValueError as e:
            logger.warning(f"Booking.com client unavailable: {e}")
            self.booking = None
        try:
            self.places = places_client or GooglePlacesClient()
        except ValueError as e:
            logger.warning(f"Google Places client unavailable: {e}")
            self.places = None

    def collect(self, destination: ResolvedLocation, request: TripRequest) -> VenueCollection:
        """Search lodging and activities; always returns a VenueCollection."""
        result = VenueCollection()
        result.venues.extend(self.search_lodging(destination, request, result))

        seen = set()
        themes = [t for t in request.interests if isinstance(t, str) and t.strip()] or ["culture"]
        for theme in themes[:MAX_ACTIVITY_THEMES]:
            for venue in self.search_activities(destination, theme, request, result):
                key = venue.id or (venue.name if venue.name != UNKNOWN_NAME else None)
                if key is not None:
                    if key in seen:
                        continue
                    seen.add(key)
                result.venues.append(venue)

        logger.info(
            "Venues collected",
            extra={
                "destination": destination.formatted_name,
                "count": len(result.venues),
                "degraded": result.degraded_providers,
            },
        )
        return result

    def search_lodging(
        self,
        destination: ResolvedLocation,
        request: TripRequest,
        result: VenueCollection,
    ) -> List[NormalizedVenue]:
        if self.booking is None:
            result.mark_degraded("booking")
            return []
        dates = stay_dates(request)
        if dates is None:
            logger.warning("Lodging search skipped: no valid start date")
            return []

        try:
            records = self.booking.search_lodging(
                destination.point.lat,
                destination.point.lng,
                checkin_date=dates[0],
                checkout_date=dates[1],
                adults=request.group_size or settings.DEFAULT_GROUP_SIZE,
            )
        except ProviderDegraded as e:
            logger.warning(str(e))
            result.mark_degraded(e.provider)
            return []
        except Exception as e:
            logger.warning(f"Booking.com lodging search failed: {e}")
            result.mark_degraded("booking")
            return []

        return [normalize(r, ProviderKind.BOOKING_LODGING) for r in records[: settings.BOOKING_MAX_RESULTS]]

    def search_activities(
        self,
        destination: ResolvedLocation,
        theme: str,
        request: TripRequest,
        result: VenueCollection,
    ) -> List[NormalizedVenue]:
        query = theme_query(theme)
        point = destination.point

        if self.booking is not None:
            try:
                records = self.booking.search_activities(
                    point.lat,
                    point.lng,
                    query,
                    adults=request.group_size or settings.DEFAULT_GROUP_SIZE,
                )
                if records:
                    return [normalize(r, ProviderKind.BOOKING_ACTIVITY) for r in records]
            except ProviderDegraded as e:
                logger.warning(str(e))
                result.mark_degraded(e.provider)
            except Exception as e:
                logger.warning(f"Booking.com activity search failed, using Places: {e}")
                result.mark_degraded("booking")

        if self.places is None:
            result.mark_degraded("places")
            return []
        try:
            records = self.places.nearby_search(
                point.as_param(),
                keyword=query,
                radius=settings.ACTIVITY_SEARCH_RADIUS_METERS,
            )
        except Exception as e:
            logger.warning(f"Google Places activity search failed: {e}")
            result.mark_degraded("places")
            return []
        return [normalize(r, ProviderKind.PLACES_ACTIVITY) for r in records[:MAX_PLACES_RESULTS]]
