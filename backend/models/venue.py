"""
Normalized venue record — the canonical shape every hotel/activity search
result is converted into, whatever provider it came from.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.geo import GeoPoint

PRICE_UNAVAILABLE = "Price unavailable"


class VenueCategory(str, Enum):
    LODGING = "LODGING"
    ACTIVITY = "ACTIVITY"


class ProviderKind(str, Enum):
    """Which provider shape a raw record came from."""

    BOOKING_LODGING = "booking_lodging"
    BOOKING_ACTIVITY = "booking_activity"
    PLACES_ACTIVITY = "places_activity"

    @property
    def category(self) -> VenueCategory:
        if self is ProviderKind.BOOKING_LODGING:
            return VenueCategory.LODGING
        return VenueCategory.ACTIVITY


@dataclass
class NormalizedVenue:
    """Single hotel or activity after normalization (and optional enrichment)."""

    name: str
    category: VenueCategory
    id: Optional[str] = None
    address: Optional[str] = None
    price: Optional[float] = None
    currency: str = "MYR"
    price_display: str = PRICE_UNAVAILABLE
    rating: Optional[float] = None
    review_count: Optional[int] = None
    review_summary: Optional[str] = None
    thumbnail_url: Optional[str] = None
    point: Optional[GeoPoint] = None
    provider: Optional[ProviderKind] = None
    reviews: List[Dict[str, Any]] = field(default_factory=list)
    enriched: bool = False
    raw: Any = None

    def __post_init__(self):
        if not self.price_display:
            self.price_display = PRICE_UNAVAILABLE

    @property
    def missing_fields(self) -> List[str]:
        """Fields a secondary places lookup could fill in."""
        missing = []
        if not self.address:
            missing.append("address")
        if self.rating is None:
            missing.append("rating")
        if not self.thumbnail_url:
            missing.append("thumbnail_url")
        return missing

    def apply_enrichment(self, patch: Dict[str, Any]) -> bool:
        """
        Fill empty fields from an enrichment patch.

        Provider values always win over enrichment values. A venue accepts
        at most one patch; later calls are ignored and return False.
        """
        if self.enriched:
            return False
        self.enriched = True

        if not self.address and patch.get("address"):
            self.address = patch["address"]
        if self.rating is None and patch.get("rating") is not None:
            self.rating = patch["rating"]
        if self.review_count is None and patch.get("review_count") is not None:
            self.review_count = patch["review_count"]
        if not self.thumbnail_url and patch.get("thumbnail_url"):
            self.thumbnail_url = patch["thumbnail_url"]
        if patch.get("reviews"):
            self.reviews = list(patch["reviews"])
        return True

    def to_dict(self, include_raw: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "address": self.address,
            "price": self.price,
            "currency": self.currency,
            "priceDisplay": self.price_display,
            "rating": self.rating,
            "reviewCount": self.review_count,
            "reviewSummary": self.review_summary,
            "reviews": self.reviews or None,
            "thumbnailUrl": self.thumbnail_url,
            "location": self.point.to_dict() if self.point else None,
            "provider": self.provider.value if self.provider else None,
            "enriched": self.enriched,
        }
        if include_raw:
            data["raw"] = self.raw
        return data
