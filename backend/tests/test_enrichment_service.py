"""Secondary enrichment: Places lookups, patch shape, budget and pacing."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from models.geo import GeoPoint
from models.venue import NormalizedVenue, VenueCategory
from services.enrichment_service import EnrichmentResolver, needs_enrichment


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

DETAILS = {
    "formatted_address": "Jalan Kek Lok Si, 11500 Air Itam, Penang, Malaysia",
    "rating": 4.6,
    "user_ratings_total": 15230,
    "reviews": [
        {"author_name": f"Reviewer {i}", "rating": 5, "text": f"Review {i}"} for i in range(5)
    ],
    "photos": [{"photo_reference": "details-photo"}],
}


def _venue(name="Kek Lok Si Temple", **kwargs):
    return NormalizedVenue(name=name, category=VenueCategory.ACTIVITY, **kwargs)


def _places_client(details=DETAILS):
    client = MagicMock()
    client.nearby_search.return_value = [{"place_id": "nearby-1", "photos": [{"photo_reference": "nearby-photo"}]}]
    client.text_search.return_value = [{"place_id": "text-1"}]
    client.place_details.return_value = details
    return client


def _resolver(client=None, budget=10):
    return EnrichmentResolver(client=client or _places_client(), delay_seconds=0, budget=budget)


# ---------------------------------------------------------------------------
# Single lookups
# ---------------------------------------------------------------------------

def test_needs_enrichment():
    assert needs_enrichment(_venue()) is True
    complete = _venue(address="Somewhere", rating=4.0, thumbnail_url="https://img/1.jpg")
    assert needs_enrichment(complete) is False
    only_thumbnail_missing = _venue(address="Somewhere", rating=4.0)
    assert needs_enrichment(only_thumbnail_missing) is True


def test_enrich_uses_nearby_search_when_point_known():
    client = _places_client()
    venue = _venue(point=GeoPoint(5.3997, 100.2739))

    patch_data = _resolver(client).enrich(venue)

    client.nearby_search.assert_called_once()
    assert client.nearby_search.call_args.kwargs["radius"] == 200
    client.text_search.assert_not_called()
    client.place_details.assert_called_once_with("nearby-1")
    assert patch_data["address"] == DETAILS["formatted_address"]
    assert patch_data["rating"] == 4.6
    assert patch_data["review_count"] == 15230
    assert len(patch_data["reviews"]) == 3
    assert patch_data["reviews"][0] == {"author": "Reviewer 0", "rating": 5, "text": "Review 0"}
    assert "ref=details-photo" in patch_data["thumbnail_url"]
    assert venue.address is None


def test_enrich_uses_text_search_without_point():
    client = _places_client()
    venue = _venue(address="Air Itam")

    _resolver(client).enrich(venue)

    client.nearby_search.assert_not_called()
    client.text_search.assert_called_once_with("Kek Lok Si Temple Air Itam Malaysia")
    client.place_details.assert_called_once_with("text-1")


def test_enrich_falls_back_to_candidate_photo():
    details = {k: v for k, v in DETAILS.items() if k != "photos"}
    venue = _venue(point=GeoPoint(5.3997, 100.2739))

    patch_data = _resolver(_places_client(details)).enrich(venue)

    assert "ref=nearby-photo" in patch_data["thumbnail_url"]


def test_enrich_returns_none_on_failure():
    client = _places_client()
    client.text_search.side_effect = httpx.ReadTimeout("timed out")
    assert _resolver(client).enrich(_venue()) is None


def test_enrich_returns_none_without_candidates():
    client = _places_client()
    client.text_search.return_value = []
    assert _resolver(client).enrich(_venue()) is None
    client.place_details.assert_not_called()


def test_provider_values_win_over_patch():
    venue = _venue(rating=3.9)
    applied = venue.apply_enrichment({"rating": 4.6, "address": "Penang"})

    assert applied is True
    assert venue.rating == 3.9
    assert venue.address == "Penang"
    assert venue.apply_enrichment({"address": "Elsewhere"}) is False
    assert venue.address == "Penang"


@pytest.mark.parametrize("reviews", [{"a": 1}, 5, "great place"])
def test_enrich_ignores_malformed_reviews(reviews):
    details = dict(DETAILS, reviews=reviews)

    patch_data = _resolver(_places_client(details)).enrich(_venue())

    assert patch_data["reviews"] == []
    assert patch_data["address"] == DETAILS["formatted_address"]


def test_enrich_drops_odd_typed_detail_fields():
    details = {"formatted_address": {"street": "x"}, "rating": float("nan"), "user_ratings_total": "many"}

    patch_data = _resolver(_places_client(details)).enrich(_venue())

    assert patch_data["address"] is None
    assert patch_data["rating"] is None
    assert patch_data["review_count"] is None


def test_enrich_returns_none_for_non_object_details():
    assert _resolver(_places_client(["not", "a", "dict"])).enrich(_venue()) is None


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_enrich_all_skips_complete_venues_and_respects_budget():
    client = _places_client()
    venues = [
        _venue("A"),
        _venue("Complete", address="x", rating=4.0, thumbnail_url="https://img"),
        _venue("B"),
        _venue("C"),
    ]

    patched = await _resolver(client, budget=2).enrich_all(venues, request_id="req-1")

    assert patched == 2
    assert client.place_details.call_count == 2
    assert [v.enriched for v in venues] == [True, False, True, False]


@pytest.mark.asyncio
async def test_enrich_all_sleeps_between_calls():
    resolver = EnrichmentResolver(client=_places_client(), delay_seconds=0.12, budget=10)
    venues = [_venue("A"), _venue("B"), _venue("C")]

    with patch("services.enrichment_service.asyncio.sleep", new=AsyncMock()) as sleep:
        patched = await resolver.enrich_all(venues)

    assert patched == 3
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.12)


@pytest.mark.asyncio
async def test_enrich_all_failures_leave_venues_untouched():
    client = _places_client()
    client.place_details.side_effect = RuntimeError("quota")
    venues = [_venue("A"), _venue("B")]

    patched = await _resolver(client).enrich_all(venues)

    assert patched == 0
    assert all(not v.enriched for v in venues)
    assert all(v.address is None for v in venues)


@pytest.mark.asyncio
async def test_enrich_all_is_noop_when_unavailable():
    with patch(
        "services.enrichment_service.GooglePlacesClient",
        side_effect=ValueError("GOOGLE_PLACES_API_KEY (or GOOGLE_MAPS_API_KEY) is required"),
    ):
        resolver = EnrichmentResolver(delay_seconds=0)

    assert resolver.is_available() is False
    assert await resolver.enrich_all([_venue()]) == 0


@pytest.mark.asyncio
async def test_enrich_all_continues_after_unexpected_error():
    resolver = _resolver()
    venues = [_venue("A"), _venue("B")]

    with patch.object(resolver, "enrich", side_effect=[TypeError("unhashable type: 'slice'"), {"address": "Penang"}]):
        patched = await resolver.enrich_all(venues, request_id="req-2")

    assert patched == 1
    assert venues[0].address is None
    assert venues[1].address == "Penang"
