"""Venue collection across Booking.com and Google Places, with degradation."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock

import httpx

from clients.booking_client import ProviderDegraded, extract_result_list
from models.geo import GeoPoint, LocationSource, ResolvedLocation
from models.trip_request import TripRequest
from models.venue import ProviderKind, VenueCategory
from services.venue_service import VenueService, stay_dates, theme_query

PENANG = ResolvedLocation(GeoPoint(5.4141, 100.3288), "Penang, Malaysia", LocationSource.GAZETTEER)

HOTEL = {"hotel_id": 11, "hotel_name": "Seven Terraces", "min_total_price": 640}
BOOKING_ACTIVITY = {"id": "act-1", "name": "Street Food Walk", "price": {"amount": 120}}
PLACES_ACTIVITY = {"place_id": "pl-1", "name": "Pinang Peranakan Mansion", "price_level": 1}


def _request(**overrides):
    data = {"destination": "Penang", "start_date": "2025-03-15", "end_date": "2025-03-17",
            "interests": ["food"], "group_size": 3}
    data.update(overrides)
    return TripRequest(**data)


def _service(booking=None, places=None):
    booking = booking or MagicMock()
    places = places or MagicMock()
    return VenueService(booking_client=booking, places_client=places)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_stay_dates():
    assert stay_dates(_request()) == ("2025-03-15", "2025-03-17")
    assert stay_dates(_request(end_date="2025-03-15")) == ("2025-03-15", "2025-03-16")
    assert stay_dates(_request(end_date="", duration_days=4)) == ("2025-03-15", "2025-03-19")
    assert stay_dates(_request(start_date="soon")) is None


def test_theme_query():
    assert theme_query("Food") == "best local food"
    assert theme_query(" street art ") == "street art"


def test_extract_result_list_envelopes():
    assert extract_result_list({"result": [1]}) == [1]
    assert extract_result_list({"data": [2]}) == [2]
    assert extract_result_list([3]) == [3]
    assert extract_result_list({"message": "error"}) == []
    assert extract_result_list("oops") == []


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

def test_collect_lodging_and_booking_activities():
    booking = MagicMock()
    booking.search_lodging.return_value = [HOTEL]
    booking.search_activities.return_value = [BOOKING_ACTIVITY]
    places = MagicMock()

    result = _service(booking, places).collect(PENANG, _request())

    lodging = [v for v in result.venues if v.category is VenueCategory.LODGING]
    activities = [v for v in result.venues if v.category is VenueCategory.ACTIVITY]
    assert [v.name for v in lodging] == ["Seven Terraces"]
    assert [v.price for v in activities] == [120]
    assert result.degraded_providers == []
    booking.search_lodging.assert_called_once_with(
        5.4141, 100.3288, checkin_date="2025-03-15", checkout_date="2025-03-17", adults=3
    )
    assert booking.search_activities.call_args.args[2] == "best local food"
    places.nearby_search.assert_not_called()


def test_empty_booking_activities_fall_back_to_places():
    booking = MagicMock()
    booking.search_lodging.return_value = []
    booking.search_activities.return_value = []
    places = MagicMock()
    places.nearby_search.return_value = [PLACES_ACTIVITY]

    result = _service(booking, places).collect(PENANG, _request(interests=[]))

    assert [v.provider for v in result.venues] == [ProviderKind.PLACES_ACTIVITY]
    assert result.venues[0].price_display == "Low"
    kwargs = places.nearby_search.call_args.kwargs
    assert kwargs["keyword"] == "museum cultural centre"
    assert kwargs["radius"] == 10000


def test_rate_limited_booking_is_recorded_and_pipeline_continues():
    booking = MagicMock()
    booking.search_lodging.side_effect = ProviderDegraded("booking", "rate_limited")
    booking.search_activities.side_effect = ProviderDegraded("booking", "rate_limited")
    places = MagicMock()
    places.nearby_search.return_value = [PLACES_ACTIVITY]

    result = _service(booking, places).collect(PENANG, _request())

    assert result.degraded_providers == ["booking"]
    assert [v.name for v in result.venues] == ["Pinang Peranakan Mansion"]


def test_all_providers_failing_yields_empty_collection():
    booking = MagicMock()
    booking.search_lodging.side_effect = httpx.ConnectError("down")
    booking.search_activities.side_effect = httpx.ConnectError("down")
    places = MagicMock()
    places.nearby_search.side_effect = httpx.ReadTimeout("slow")

    result = _service(booking, places).collect(PENANG, _request())

    assert result.venues == []
    assert result.degraded_providers == ["booking", "places"]


def test_missing_clients_mark_providers_degraded():
    service = _service()
    service.booking = None
    service.places = None

    result = service.collect(PENANG, _request())

    assert result.venues == []
    assert result.degraded_providers == ["booking", "places"]


def test_activities_are_deduplicated_and_themes_capped():
    booking = MagicMock()
    booking.search_lodging.return_value = []
    booking.search_activities.return_value = [BOOKING_ACTIVITY, BOOKING_ACTIVITY]

    result = _service(booking).collect(
        PENANG, _request(interests=["food", "culture", "nature", "adventure"])
    )

    assert len(result.venues) == 1
    assert booking.search_activities.call_count == 3


def test_unnamed_activities_without_ids_are_kept():
    booking = MagicMock()
    booking.search_lodging.return_value = []
    booking.search_activities.return_value = [{"price": 10}, {"price": 20}, BOOKING_ACTIVITY]

    result = _service(booking).collect(PENANG, _request())

    assert [v.name for v in result.venues] == ["Unknown", "Unknown", "Street Food Walk"]
    assert [v.price for v in result.venues] == [10, 20, 120]


def test_booking_activity_error_is_recorded_before_places_fallback():
    booking = MagicMock()
    booking.search_lodging.return_value = [HOTEL]
    booking.search_activities.side_effect = httpx.ReadTimeout("slow")
    places = MagicMock()
    places.nearby_search.return_value = [PLACES_ACTIVITY]

    result = _service(booking, places).collect(PENANG, _request())

    assert result.degraded_providers == ["booking"]
    assert [v.name for v in result.venues] == ["Seven Terraces", "Pinang Peranakan Mansion"]
