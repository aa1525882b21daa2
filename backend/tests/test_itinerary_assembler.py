"""Assembling the final itinerary payload and its provenance."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models.geo import EstimateSource, GeoPoint, LocationSource, ResolvedLocation, TravelEstimate
from models.itinerary import PlanDay, PlanSummary, StructuredItineraryPlan
from models.venue import NormalizedVenue, ProviderKind, VenueCategory
from services.itinerary_assembler import (
    FEWER_DAYS_THAN_REQUESTED,
    PLAN_UNRECOVERED,
    TRAVEL_ESTIMATE_APPROXIMATE,
    VENUES_MISSING_PRICE,
    assemble,
)

PENANG = ResolvedLocation(GeoPoint(5.4141, 100.3288), "Penang, Malaysia", LocationSource.GAZETTEER)
KL = ResolvedLocation(GeoPoint(3.139, 101.6869), "Kuala Lumpur, Malaysia", LocationSource.PROVIDER)


def _estimate(source=EstimateSource.PROVIDER):
    return TravelEstimate(355000, "355 km", 14400, "4 hours", source, maps_link="https://maps")


def _plan(days):
    return StructuredItineraryPlan(
        summary=PlanSummary(title="Penang"),
        days=[PlanDay(day=i + 1) for i in range(days)],
    )


def _venues():
    return [
        NormalizedVenue(name="E&O", category=VenueCategory.LODGING, price=812.4,
                        provider=ProviderKind.BOOKING_LODGING, raw={"hotel_id": 1}),
        NormalizedVenue(name="Penang Hill", category=VenueCategory.ACTIVITY, enriched=True,
                        provider=ProviderKind.PLACES_ACTIVITY),
    ]


def test_complete_payload():
    payload = assemble(
        _plan(3),
        _estimate(),
        _venues()[:1],
        destination=PENANG,
        origin=KL,
        requested_days=3,
        start_date="2025-03-15",
        end_date="2025-03-17",
        repair_stage="structured_call",
        plan_id="plan_1",
        created_at="2025-03-01T00:00:00+00:00",
    )
    data = payload.to_dict()

    assert payload.degraded is False
    assert data["planId"] == "plan_1"
    assert data["destination"]["source"] == "GAZETTEER"
    assert data["origin"]["formattedName"] == "Kuala Lumpur, Malaysia"
    assert data["travelEstimate"]["source"] == "PROVIDER"
    assert len(data["plan"]["days"]) == 3
    assert data["lodging"][0]["name"] == "E&O"
    assert data["lodging"][0]["raw"] == {"hotel_id": 1}
    assert data["activities"] == []
    assert data["provenance"] == {
        "destinationSource": "GAZETTEER",
        "originSource": "PROVIDER",
        "travelEstimateSource": "PROVIDER",
        "repairStage": "structured_call",
        "requestedDays": 3,
        "recoveredDays": 3,
        "venuesMissingPrice": 0,
        "venuesEnriched": 0,
        "degradedProviders": [],
        "degradationReasons": [],
    }


def test_degradation_reasons_are_collected():
    payload = assemble(
        _plan(2),
        _estimate(EstimateSource.HAVERSINE_ESTIMATE),
        _venues(),
        destination=PENANG,
        requested_days=3,
        degraded_providers=["places", "booking", "booking"],
    )
    provenance = payload.provenance

    assert payload.degraded is True
    assert provenance["degradationReasons"] == [
        FEWER_DAYS_THAN_REQUESTED,
        TRAVEL_ESTIMATE_APPROXIMATE,
        VENUES_MISSING_PRICE,
        "provider_degraded:booking",
        "provider_degraded:places",
    ]
    assert provenance["degradedProviders"] == ["booking", "places"]
    assert provenance["venuesMissingPrice"] == 1
    assert provenance["venuesEnriched"] == 1
    assert provenance["originSource"] is None
    assert [a["name"] for a in payload.to_dict()["activities"]] == ["Penang Hill"]


def test_unrecovered_plan_still_produces_payload():
    payload = assemble(None, None, [], destination=PENANG, requested_days=2)
    data = payload.to_dict()

    assert data["plan"] is None
    assert data["travelEstimate"] is None
    assert data["provenance"]["degradationReasons"] == [PLAN_UNRECOVERED]
    assert data["provenance"]["recoveredDays"] == 0
    assert data["degraded"] is True
