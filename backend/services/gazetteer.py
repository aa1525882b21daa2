"""
Static table of well-known Malaysian locations.

Checked before the geocoding provider so short, ambiguous names ("Penang",
"Johor") never resolve to a same-named place abroad. The composition root
builds one instance and hands it to the resolver.
"""

from typing import Dict, Iterable, Optional, Tuple

from models.geo import GeoPoint, LocationSource, ResolvedLocation

# key -> (lat, lng, formatted name); matching is substring, first entry wins
MALAYSIA_LOCATIONS: Tuple[Tuple[str, float, float, str], ...] = (
    ("kuala lumpur", 3.1390, 101.6869, "Kuala Lumpur, Malaysia"),
    ("penang", 5.4141, 100.3288, "Penang, Malaysia"),
    ("melaka", 2.1896, 102.2501, "Melaka, Malaysia"),
    ("malacca", 2.1896, 102.2501, "Malacca, Malaysia"),
    ("johor", 1.4927, 103.7414, "Johor Bahru, Malaysia"),
    ("ipoh", 4.5975, 101.0901, "Ipoh, Malaysia"),
    ("langkawi", 6.3500, 99.8000, "Langkawi, Malaysia"),
)

COUNTRY_CENTROID = ("malaysia", 4.2105, 101.9758, "Malaysia")


class Gazetteer:
    """Case-insensitive substring lookup over a fixed location table."""

    def __init__(
        self,
        entries: Iterable[Tuple[str, float, float, str]] = MALAYSIA_LOCATIONS,
        country: Tuple[str, float, float, str] = COUNTRY_CENTROID,
    ):
        self._entries: Dict[str, ResolvedLocation] = {
            key.lower(): self._location(lat, lng, name) for key, lat, lng, name in entries
        }
        key, lat, lng, name = country
        self._country_key = key.lower()
        self._country = self._location(lat, lng, name)

    @staticmethod
    def _location(lat: float, lng: float, name: str) -> ResolvedLocation:
        return ResolvedLocation(GeoPoint(lat, lng), name, LocationSource.GAZETTEER)

    def match(self, text: Optional[str]) -> Optional[ResolvedLocation]:
        """
        Return the first entry whose key occurs in ``text``.

        The country centroid only matches the bare country name, otherwise
        every "<town>, Malaysia" string would collapse onto it.
        """
        if not text:
            return None
        cleaned = str(text).lower().strip()
        for key, location in self._entries.items():
            if key in cleaned:
                return location
        if cleaned == self._country_key:
            return self._country
        return None

    @property
    def country_centroid(self) -> ResolvedLocation:
        return self._country

    def __len__(self) -> int:
        return len(self._entries)
