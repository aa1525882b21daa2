"""
Itinerary Assembler: merges the recovered plan, the travel estimate and the
venue shortlist into the ItineraryPayload handed to persistence. Pure: no
I/O, no fallbacks of its own.
"""

from typing import Iterable, List, Optional

from models.geo import ResolvedLocation, TravelEstimate
from models.itinerary import ItineraryPayload, StructuredItineraryPlan
from models.venue import NormalizedVenue, VenueCategory

# Degradation reasons surfaced in provenance
PLAN_UNRECOVERED = "plan_unrecovered"
FEWER_DAYS_THAN_REQUESTED = "fewer_days_than_requested"
TRAVEL_ESTIMATE_APPROXIMATE = "travel_estimate_approximate"
VENUES_MISSING_PRICE = "venues_missing_price"
PROVIDER_DEGRADED = "provider_degraded"


def assemble(
    plan: Optional[StructuredItineraryPlan],
    travel_estimate: Optional[TravelEstimate],
    venues: Iterable[NormalizedVenue],
    *,
    destination: Optional[ResolvedLocation] = None,
    origin: Optional[ResolvedLocation] = None,
    requested_days: int = 0,
    start_date: str = "",
    end_date: str = "",
    repair_stage: Optional[str] = None,
    degraded_providers: Optional[List[str]] = None,
    plan_id: str = "",
    created_at: str = "",
) -> ItineraryPayload:
    """
    Compose the final payload.

    Source tags of the destination, origin and travel estimate are copied
    into ``provenance`` so clients can badge estimated values directly.
    """
    venues = list(venues)
    lodging = [v for v in venues if v.category is VenueCategory.LODGING]
    activities = [v for v in venues if v.category is VenueCategory.ACTIVITY]
    recovered_days = len(plan.days) if plan else 0
    missing_price = sum(1 for v in venues if v.price is None)
    providers = sorted(set(degraded_providers or []))

    reasons = []
    if plan is None:
        reasons.append(PLAN_UNRECOVERED)
    elif requested_days and recovered_days < requested_days:
        reasons.append(FEWER_DAYS_THAN_REQUESTED)
    if travel_estimate is not None and travel_estimate.is_estimated:
        reasons.append(TRAVEL_ESTIMATE_APPROXIMATE)
    if missing_price:
        reasons.append(VENUES_MISSING_PRICE)
    reasons.extend(f"{PROVIDER_DEGRADED}:{name}" for name in providers)

    provenance = {
        "destinationSource": destination.source.value if destination else None,
        "originSource": origin.source.value if origin else None,
        "travelEstimateSource": travel_estimate.source.value if travel_estimate else None,
        "repairStage": repair_stage,
        "requestedDays": requested_days,
        "recoveredDays": recovered_days,
        "venuesMissingPrice": missing_price,
        "venuesEnriched": sum(1 for v in venues if v.enriched),
        "degradedProviders": providers,
        "degradationReasons": reasons,
    }

    return ItineraryPayload(
        plan_id=plan_id,
        created_at=created_at,
        destination=destination.to_dict() if destination else None,
        origin=origin.to_dict() if origin else None,
        start_date=start_date,
        end_date=end_date,
        requested_days=requested_days,
        plan=plan,
        travel_estimate=travel_estimate.to_dict() if travel_estimate else None,
        lodging=[v.to_dict() for v in lodging],
        activities=[v.to_dict() for v in activities],
        provenance=provenance,
    )
