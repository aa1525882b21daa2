"""
Provider Record Normalizer.

Converts raw Booking.com hotel/activity records and Google Places results
into NormalizedVenue objects. Every field is read from an ordered list of
candidate paths (first usable value wins); price additionally falls back to
a bounded depth-first search over the record. All helpers are total over
arbitrary JSON-like input: odd shapes become missing fields, never errors.

Usage:
    from services.venue_normalizer import normalize

    venue = normalize(raw_hotel, ProviderKind.BOOKING_LODGING)
    venue.price_display   # "RM 245.00"
"""

import logging
import math
import re
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from config.settings import settings
from models.geo import GeoPoint
from models.venue import PRICE_UNAVAILABLE, NormalizedVenue, ProviderKind

logger = logging.getLogger(__name__)

Path = Tuple[Union[str, int], ...]

# ----------------------------------------------------------------------
# Candidate paths, in priority order
# ----------------------------------------------------------------------

FORMATTED_PRICE_PATHS: Sequence[Path] = (
    ("display_price",),
    ("price_string",),
    ("formatted_price",),
    ("price_formatted",),
    ("price_display",),
    ("offers", 0, "display_price"),
    ("offers", 0, "price_string"),
)

PRICE_PATHS: Sequence[Path] = (
    ("min_price",),
    ("min_total_price",),
    ("min_rate",),
    ("price",),
    ("price", "value"),
    ("price_breakdown", "gross_price"),
    ("price_breakdown", "all_inclusive_amount"),
    ("price_breakdown", "total"),
    ("composite_price_breakdown", "all_inclusive_amount"),
    ("composite_price_breakdown", "gross_amount"),
    ("offers", 0, "price"),
    ("rate", "amount"),
    ("price_breakdown", "min_price"),
)

UNKNOWN_NAME = "Unknown"

PRICE_KEY_PATTERNS = ("price", "amount", "total", "gross", "rate", "cost", "min_price", "min_total", "offer")

CURRENCY_PATHS: Sequence[Path] = (
    ("currency",),
    ("price", "currency"),
    ("price_breakdown", "currency"),
    ("offers", 0, "currency"),
    ("offers", 0, "price", "currency"),
    ("currency_code",),
)

ADDRESS_PATHS: Sequence[Path] = (
    ("address",),
    ("hotel_address",),
    ("location", "address"),
    ("hotel", "address"),
    ("address_line",),
    ("address1",),
    ("address_full",),
    ("formatted_address",),
    ("vicinity",),
)

RATING_PATHS: Sequence[Path] = (
    ("review_score",),
    ("review_score_avg",),
    ("review_score_value",),
    ("review", "score"),
    ("review", "average"),
    ("rating",),
)

REVIEW_COUNT_PATHS: Sequence[Path] = (
    ("review_nr",),
    ("review_count",),
    ("reviews_count",),
    ("num_reviews",),
    ("review", "count"),
    ("review", "total"),
    ("user_ratings_total",),
)

REVIEW_SUMMARY_PATHS: Sequence[Path] = (
    ("review_score_word",),
    ("review_summary",),
    ("review", "summary"),
)

ID_PATHS: Sequence[Path] = (("hotel_id",), ("id",), ("hotel", "id"), ("activity_id",), ("place_id",))

NAME_PATHS: Sequence[Path] = (("hotel_name",), ("name",), ("hotel", "name"), ("title",))

LAT_PATHS: Sequence[Path] = (
    ("lat",),
    ("latitude",),
    ("location", "lat"),
    ("location", "latitude"),
    ("latitude_value",),
    ("geometry", "location", "lat"),
)

LNG_PATHS: Sequence[Path] = (
    ("lng",),
    ("longitude",),
    ("location", "lng"),
    ("location", "longitude"),
    ("longitude_value",),
    ("geometry", "location", "lng"),
)

THUMBNAIL_PATHS = {
    ProviderKind.BOOKING_LODGING: (
        ("main_photo",),
        ("main_photo", "url"),
        ("main_photo_url",),
        ("max_photo_url",),
        ("photo", 0, "url"),
        ("thumbnail",),
    ),
    ProviderKind.BOOKING_ACTIVITY: (
        ("photo",),
        ("photos", 0),
        ("photos", 0, "url"),
        ("thumbnail",),
    ),
    ProviderKind.PLACES_ACTIVITY: (),
}

PRICE_LEVEL_LABELS = {
    0: "Free / Low",
    1: "Low",
    2: "Moderate",
    3: "Expensive",
    4: "Very expensive",
}

_NUMBER_IN_TEXT = re.compile(r"\d+(?:\.\d+)?|\.\d+")


# ----------------------------------------------------------------------
# Total helpers
# ----------------------------------------------------------------------

def get_path(record: Any, path: Path) -> Any:
    """Follow ``path`` through dicts and lists; None when any step is absent."""
    current = record
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def first_match(record: Any, paths: Iterable[Path], parser: Callable[[Any], Any]) -> Any:
    """Return the first candidate that ``parser`` accepts (non-None)."""
    for path in paths:
        value = parser(get_path(record, path))
        if value is not None:
            return value
    return None


def parse_number(value: Any) -> Optional[float]:
    """
    Read a number from a number, a money string ("RM 1,234.50") or a money
    object (``value``/``amount``/``gross_amount``/``price``).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        match = _NUMBER_IN_TEXT.search(re.sub(r"[^0-9.]", "", value))
        if not match:
            return None
        number = float(match.group(0))
        return number if math.isfinite(number) else None
    if isinstance(value, dict):
        inner = value.get("value")
        if isinstance(inner, (int, float)) and not isinstance(inner, bool):
            return parse_number(inner)
        for key in ("amount", "gross_amount", "price"):
            if key in value:
                return parse_number(value[key])
    return None


def parse_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_identifier(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)) and str(value).strip():
        return str(value).strip()
    return None


def parse_count(value: Any) -> Optional[int]:
    if isinstance(value, str):
        digits = re.sub(r"[^0-9]", "", value)
        return int(digits) if digits else None
    number = parse_number(value) if not isinstance(value, dict) else None
    return int(number) if number is not None else None


def parse_coordinate(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return parse_number(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def deep_find_price(record: Any, max_depth: Optional[int] = None) -> Optional[float]:
    """
    Depth-first search for a price-like number.

    At each level, keys matching PRICE_KEY_PATTERNS are checked before any
    recursion. Containers are visited once (by identity) and the search
    stops ``max_depth`` levels below the record.
    """
    limit = settings.PRICE_SEARCH_MAX_DEPTH if max_depth is None else max_depth
    visited = set()

    def search(node: Any, depth: int) -> Optional[float]:
        if not isinstance(node, (dict, list)) or depth > limit or id(node) in visited:
            return None
        visited.add(id(node))

        if isinstance(node, dict):
            for key, value in node.items():
                lower = str(key).lower()
                if any(p in lower for p in PRICE_KEY_PATTERNS):
                    number = parse_number(value)
                    if number is not None:
                        return number
            children = node.values()
        else:
            children = node

        for child in children:
            number = search(child, depth + 1)
            if number is not None:
                return number
        return None

    return search(record, 0)


def format_price_display(
    price: Optional[float],
    currency: str,
    formatted: Optional[str] = None,
) -> str:
    """Human-readable price; the provider's own string wins when present."""
    if formatted:
        return formatted
    if price is None:
        return PRICE_UNAVAILABLE
    currency = (currency or settings.DEFAULT_CURRENCY).upper()
    if currency in ("MYR", "RM"):
        return f"RM {price:.2f}"
    return f"{currency} {price:,.2f}"


def photo_proxy_url(photo_reference: str, max_width: int = 400) -> str:
    """Thumbnail URL served by this API's Places photo proxy."""
    return f"{settings.SERVER_URL}/api/photo?ref={quote(photo_reference, safe='')}&maxwidth={max_width}"


# ----------------------------------------------------------------------
# Field extractors
# ----------------------------------------------------------------------

def extract_price(record: Any) -> Tuple[Optional[float], str, str]:
    """Return (price, currency, price_display)."""
    formatted = first_match(record, FORMATTED_PRICE_PATHS, parse_text)
    price = first_match(record, PRICE_PATHS, parse_number)
    if price is None:
        price = deep_find_price(record)

    currency = first_match(record, CURRENCY_PATHS, parse_text)
    currency = currency.upper() if currency else settings.DEFAULT_CURRENCY
    return price, currency, format_price_display(price, currency, formatted)


def extract_address(record: Any) -> Optional[str]:
    address = first_match(record, ADDRESS_PATHS, parse_text)
    if address:
        return address
    city = parse_text(get_path(record, ("city",)))
    if city:
        return city
    location = get_path(record, ("location",))
    if isinstance(location, dict):
        parts = [parse_text(location.get(k)) for k in ("address", "city", "country_name")]
        parts = [p for p in parts if p]
        if parts:
            return ", ".join(parts)
    return None


def extract_point(record: Any) -> Optional[GeoPoint]:
    lat = first_match(record, LAT_PATHS, parse_coordinate)
    lng = first_match(record, LNG_PATHS, parse_coordinate)
    if lat is None or lng is None:
        return None
    try:
        return GeoPoint(lat, lng)
    except ValueError:
        return None


def extract_thumbnail(record: Any, kind: ProviderKind) -> Optional[str]:
    url = first_match(record, THUMBNAIL_PATHS.get(kind, ()), parse_text)
    if url:
        return url
    reference = parse_text(get_path(record, ("photos", 0, "photo_reference")))
    if reference:
        return photo_proxy_url(reference)
    return parse_text(get_path(record, ("icon",)))


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def normalize(raw: Any, provider_kind: Union[ProviderKind, str]) -> NormalizedVenue:
    """
    Convert one raw provider record into a NormalizedVenue. Never raises.

    Non-dict input is treated as an empty record; ``raw`` always keeps the
    original object.
    """
    kind = ProviderKind(provider_kind)
    record = raw if isinstance(raw, dict) else {}

    if kind is ProviderKind.PLACES_ACTIVITY:
        price = None
        currency = settings.DEFAULT_CURRENCY
        level = get_path(record, ("price_level",))
        price_display = PRICE_LEVEL_LABELS.get(level, PRICE_UNAVAILABLE) \
            if isinstance(level, int) and not isinstance(level, bool) else PRICE_UNAVAILABLE
    else:
        price, currency, price_display = extract_price(record)

    rating = first_match(record, RATING_PATHS, parse_number)
    venue = NormalizedVenue(
        name=first_match(record, NAME_PATHS, parse_text) or UNKNOWN_NAME,
        category=kind.category,
        id=first_match(record, ID_PATHS, parse_identifier),
        address=extract_address(record),
        price=price,
        currency=currency,
        price_display=price_display,
        rating=rating,
        review_count=first_match(record, REVIEW_COUNT_PATHS, parse_count),
        review_summary=first_match(record, REVIEW_SUMMARY_PATHS, parse_text),
        thumbnail_url=extract_thumbnail(record, kind),
        point=extract_point(record),
        provider=kind,
        raw=raw,
    )

    if venue.price is None and kind is not ProviderKind.PLACES_ACTIVITY:
        logger.debug(
            "Venue price not found",
            extra={"venue": venue.name, "sample_keys": [str(k) for k in list(record)[:20]]},
        )
    return venue
