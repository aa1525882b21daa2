"""Location resolver: gazetteer-first resolution, geocoding and travel estimates."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock, patch

import httpx
import pytest

from models.geo import EstimateSource, GeoPoint, LocationSource, ResolvedLocation
from services.gazetteer import Gazetteer
from services.location_service import (
    GeocodeError,
    LocationResolver,
    haversine_meters,
    normalize_mode,
)

KL = GeoPoint(3.1390, 101.6869)
PENANG = GeoPoint(5.4141, 100.3288)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolver(client=None):
    return LocationResolver(Gazetteer(), client=client or MagicMock())


def _offline_resolver():
    with patch(
        "services.location_service.GoogleMapsClient.__init__",
        side_effect=ValueError("GOOGLE_MAPS_API_KEY is required"),
    ):
        return LocationResolver(Gazetteer())


def _geocode_body(lat, lng, formatted, country="MY"):
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": formatted,
                "geometry": {"location": {"lat": lat, "lng": lng}},
                "address_components": [
                    {"long_name": "Somewhere", "short_name": country, "types": ["country", "political"]},
                ],
            }
        ],
    }


def _matrix_body(meters, seconds, status="OK"):
    element = {"status": status}
    if status == "OK":
        element["distance"] = {"value": meters, "text": f"{meters // 1000} km"}
        element["duration"] = {"value": seconds, "text": f"{seconds // 60} mins"}
    return {"status": "OK", "rows": [{"elements": [element]}]}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def test_gazetteer_is_consulted_before_geocoding():
    client = MagicMock()
    resolver = _resolver(client)

    location = resolver.resolve("Penang")

    assert location.source is LocationSource.GAZETTEER
    assert location.formatted_name == "Penang, Malaysia"
    client.geocode.assert_not_called()


def test_unknown_place_is_geocoded_within_country():
    client = MagicMock()
    client.geocode.return_value = _geocode_body(4.4721, 101.3801, "Cameron Highlands, Pahang, Malaysia")
    resolver = _resolver(client)

    location = resolver.resolve("Cameron Highlands")

    assert location.source is LocationSource.PROVIDER
    assert location.point == GeoPoint(4.4721, 101.3801)
    assert location.formatted_name == "Cameron Highlands, Pahang, Malaysia"
    query = client.geocode.call_args.args[0]
    assert query == "Cameron Highlands, Malaysia"
    assert client.geocode.call_args.kwargs["country_code"] == "MY"


def test_country_suffix_not_appended_twice():
    client = MagicMock()
    client.geocode.return_value = _geocode_body(4.47, 101.38, "Cameron Highlands, Malaysia")
    _resolver(client).resolve("Cameron Highlands, Malaysia")
    assert client.geocode.call_args.args[0] == "Cameron Highlands, Malaysia"


def test_out_of_country_result_is_kept():
    client = MagicMock()
    client.geocode.return_value = _geocode_body(1.29, 103.85, "Marina Bay, Singapore", country="SG")

    location = _resolver(client).resolve("Marina Bay")

    assert location.source is LocationSource.PROVIDER
    assert location.formatted_name == "Marina Bay, Singapore"


def test_zero_results_raises_geocode_error():
    client = MagicMock()
    client.geocode.return_value = {"status": "ZERO_RESULTS", "results": []}

    with pytest.raises(GeocodeError) as exc_info:
        _resolver(client).resolve("Zzqxv9")

    assert exc_info.value.query == "Zzqxv9"
    assert 'Could not geocode "Zzqxv9"' in str(exc_info.value)
    assert "ZERO_RESULTS" in exc_info.value.reason


def test_provider_exception_raises_geocode_error():
    client = MagicMock()
    client.geocode.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(GeocodeError):
        _resolver(client).resolve("Zzqxv9")


def test_result_without_coordinates_raises_geocode_error():
    client = MagicMock()
    client.geocode.return_value = {"status": "OK", "results": [{"formatted_address": "Nowhere"}]}

    with pytest.raises(GeocodeError):
        _resolver(client).resolve("Nowhere")


def test_offline_resolver_still_uses_gazetteer():
    resolver = _offline_resolver()

    assert resolver.is_available() is False
    assert resolver.resolve("ipoh").formatted_name == "Ipoh, Malaysia"
    with pytest.raises(GeocodeError):
        resolver.resolve("Cameron Highlands")


@pytest.mark.parametrize("value", ["", "   ", None])
def test_empty_input_raises(value):
    with pytest.raises(GeocodeError):
        _resolver().resolve(value)


@pytest.mark.parametrize(
    "value",
    ["3.1390, 101.6869", "3.1390,101.6869", {"lat": "3.1390", "lng": 101.6869}, GeoPoint(3.139, 101.6869)],
)
def test_coordinate_inputs_skip_lookup(value):
    client = MagicMock()
    location = _resolver(client).resolve(value)

    assert location.source is LocationSource.PROVIDER
    assert location.point.lat == pytest.approx(3.139)
    assert location.point.lng == pytest.approx(101.6869)
    client.geocode.assert_not_called()


def test_out_of_range_coordinates_raise():
    with pytest.raises(GeocodeError):
        _resolver().resolve("95.0, 200.0")


def test_resolved_location_passes_through():
    loc = ResolvedLocation(PENANG, "Penang", LocationSource.GAZETTEER)
    assert _resolver().resolve(loc) is loc


def test_default_origin_is_country_centroid():
    origin = _resolver().default_origin()
    assert origin.formatted_name == "Malaysia"
    assert origin.source is LocationSource.GAZETTEER


# ---------------------------------------------------------------------------
# Travel estimates
# ---------------------------------------------------------------------------

def test_provider_estimate_is_used_when_ok():
    client = MagicMock()
    client.distance_matrix.return_value = _matrix_body(355000, 14400)

    estimate = _resolver(client).estimate_travel(KL, PENANG)

    assert estimate.source is EstimateSource.PROVIDER
    assert estimate.distance_meters == 355000
    assert estimate.duration_seconds == 14400
    assert estimate.distance_text == "355 km"
    assert estimate.is_estimated is False
    assert estimate.maps_link.startswith("https://www.google.com/maps/dir/?api=1")


def test_timeout_falls_back_to_haversine():
    client = MagicMock()
    client.distance_matrix.side_effect = httpx.ReadTimeout("timed out")

    estimate = _resolver(client).estimate_travel(KL, PENANG)

    assert estimate.source is EstimateSource.HAVERSINE_ESTIMATE
    assert estimate.is_estimated is True
    assert estimate.duration_seconds == pytest.approx(estimate.distance_meters / (70000 / 3600))
    assert estimate.distance_text.endswith("km (approx)")
    assert estimate.duration_text.endswith("mins (approx)")
    assert estimate.maps_link is not None


@pytest.mark.parametrize("status", ["NOT_FOUND", "ZERO_RESULTS"])
def test_element_not_ok_falls_back_to_haversine(status):
    client = MagicMock()
    client.distance_matrix.return_value = _matrix_body(0, 0, status=status)

    estimate = _resolver(client).estimate_travel(KL, PENANG)

    assert estimate.source is EstimateSource.HAVERSINE_ESTIMATE


def test_zero_duration_with_distance_falls_back():
    client = MagicMock()
    client.distance_matrix.return_value = _matrix_body(355000, 0)

    estimate = _resolver(client).estimate_travel(KL, PENANG)

    assert estimate.source is EstimateSource.HAVERSINE_ESTIMATE


def test_malformed_matrix_body_falls_back():
    client = MagicMock()
    client.distance_matrix.return_value = {"rows": []}

    estimate = _resolver(client).estimate_travel(KL, PENANG)

    assert estimate.source is EstimateSource.HAVERSINE_ESTIMATE


def test_offline_estimate_and_missing_origin():
    resolver = _offline_resolver()
    penang = resolver.resolve("Penang")

    estimate = resolver.estimate_travel(None, penang, mode="teleport")

    assert estimate.source is EstimateSource.HAVERSINE_ESTIMATE
    assert estimate.mode == "driving"
    assert estimate.distance_meters > 0


def test_haversine_distance():
    assert haversine_meters(KL, KL) == 0
    assert 280_000 < haversine_meters(KL, PENANG) < 310_000
    assert haversine_meters(KL, PENANG) == pytest.approx(haversine_meters(PENANG, KL))


def test_normalize_mode():
    assert normalize_mode("WALKING") == "walking"
    assert normalize_mode(" transit ") == "transit"
    assert normalize_mode("teleport") == "driving"
    assert normalize_mode(None) == "driving"
