"""
Secondary Enrichment Resolver.

Backfills address, rating, reviews and photo for venues the inventory
provider left incomplete, using Google Places. Lookups are best-effort: any
failure yields None and the venue is left untouched.

Usage:
    resolver = EnrichmentResolver()
    enriched = await resolver.enrich_all(venues, request_id="req-123")
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from clients.places_client import GooglePlacesClient
from config.settings import settings
from models.venue import NormalizedVenue
from services.venue_normalizer import photo_proxy_url

logger = logging.getLogger(__name__)


def needs_enrichment(venue: NormalizedVenue) -> bool:
    """True when address, rating or thumbnail is missing and no patch was applied yet."""
    return not venue.enriched and bool(venue.missing_fields)


def _first_photo_reference(candidate: Dict[str, Any]) -> Optional[str]:
    photos = candidate.get("photos")
    if isinstance(photos, list) and photos and isinstance(photos[0], dict):
        ref = photos[0].get("photo_reference")
        if isinstance(ref, str) and ref:
            return ref
    return None


class EnrichmentResolver:
    """Fills missing venue fields from Google Places, politely rate-limited."""

    def __init__(
        self,
        client: Optional[GooglePlacesClient] = None,
        delay_seconds: Optional[float] = None,
        budget: Optional[int] = None,
    ):
        self.delay_seconds = settings.ENRICHMENT_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.budget = settings.ENRICHMENT_BUDGET if budget is None else budget
        try:
            self.client = client or GooglePlacesClient()
            self._available = True
        except ValueError as e:
            logger.warning(f"Google Places client unavailable, enrichment disabled: {e}")
            self._available = False
            self.client = None

    def is_available(self) -> bool:
        return self._available

    def _find_candidate(self, venue: NormalizedVenue) -> Optional[Dict[str, Any]]:
        if venue.point is not None:
            results = self.client.nearby_search(
                venue.point.as_param(),
                keyword=venue.name,
                radius=settings.ENRICHMENT_RADIUS_METERS,
            )
            if results and isinstance(results[0], dict) and results[0].get("place_id"):
                return results[0]

        query = " ".join(
            part for part in (venue.name, venue.address or "", settings.DEFAULT_COUNTRY) if part
        )
        results = self.client.text_search(query)
        if results and isinstance(results[0], dict) and results[0].get("place_id"):
            return results[0]
        return None

    def enrich(self, venue: NormalizedVenue) -> Optional[Dict[str, Any]]:
        """
        Look the venue up and return a patch, or None.

        The patch has the keys ``address``, ``rating``, ``review_count``,
        ``reviews`` (top three) and ``thumbnail_url``. The venue itself is
        not modified.
        """
        if not self._available:
            return None
        try:
            candidate = self._find_candidate(venue)
            if candidate is None:
                return None
            details = self.client.place_details(candidate["place_id"])
        except Exception as e:
            logger.warning(f"Place enrichment failed for {venue.name!r}: {e}")
            return None
        if not isinstance(details, dict) or not details:
            return None

        raw_reviews = details.get("reviews")
        reviews = []
        for review in (raw_reviews if isinstance(raw_reviews, list) else [])[:3]:
            if isinstance(review, dict):
                reviews.append({
                    "author": review.get("author_name"),
                    "rating": review.get("rating"),
                    "text": review.get("text"),
                })

        photo_ref = _first_photo_reference(details) or _first_photo_reference(candidate)
        address = details.get("formatted_address")
        rating = details.get("rating")
        if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not math.isfinite(rating):
            rating = None
        review_count = details.get("user_ratings_total")
        return {
            "address": address if isinstance(address, str) and address else None,
            "rating": float(rating) if rating is not None else None,
            "review_count": review_count if isinstance(review_count, int) and not isinstance(review_count, bool) else None,
            "reviews": reviews,
            "thumbnail_url": photo_proxy_url(photo_ref) if photo_ref else None,
        }

    async def enrich_all(
        self,
        venues: List[NormalizedVenue],
        request_id: Optional[str] = None,
    ) -> int:
        """
        Enrich incomplete venues one at a time with a fixed delay between
        lookups, up to the per-request budget. Returns how many venues
        received a patch.
        """
        if not self._available:
            return 0

        loop = asyncio.get_event_loop()
        calls = 0
        patched = 0
        for venue in venues:
            if calls >= self.budget:
                logger.info(
                    "Enrichment budget exhausted",
                    extra={"request_id": request_id, "budget": self.budget},
                )
                break
            if not needs_enrichment(venue):
                continue
            if calls:
                await asyncio.sleep(self.delay_seconds)
            calls += 1
            try:
                patch = await loop.run_in_executor(None, self.enrich, venue)
                if patch and venue.apply_enrichment(patch):
                    patched += 1
            except Exception as e:
                logger.warning(
                    "Enrichment skipped for venue",
                    extra={"request_id": request_id, "venue": venue.name, "error": str(e)},
                )

        logger.debug(
            "Enrichment finished",
            extra={"request_id": request_id, "calls": calls, "patched": patched},
        )
        return patched
