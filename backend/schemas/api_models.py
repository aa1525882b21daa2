"""
Pydantic models for FastAPI request/response validation.

These are API-boundary schemas only.  Internal business logic uses the
dataclasses in models/trip_request.py, models/geo.py and models/itinerary.py.
Request bodies are camelCase on the wire; required-field checks happen in
TripRequest so a missing field is a 400, not a schema error.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Request Models ─────────────────────────────────────────────


class PickModel(BaseModel):
    """A caller-curated experience or stay."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: Optional[str] = None
    subtitle: Optional[str] = None
    price_text: Optional[str] = Field(default=None, alias="priceText")
    metadata: Optional[Dict[str, Any]] = None


class ExperienceGroup(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: Optional[str] = None
    theme: Optional[str] = None
    picks: List[PickModel] = []


class PlanRequest(BaseModel):
    """POST /api/plan — plan a trip."""

    model_config = ConfigDict(populate_by_name=True)

    destination: Optional[str] = Field(
        default=None,
        description="Place name or 'lat,lng'",
        json_schema_extra={"examples": ["Penang"]},
    )
    origin: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate", description="YYYY-MM-DD")
    end_date: Optional[str] = Field(default=None, alias="endDate", description="YYYY-MM-DD")
    duration_days: Optional[int] = Field(default=None, alias="durationDays", ge=1)
    interests: List[str] = []
    travel_styles: List[str] = Field(default_factory=list, alias="travelStyles")
    accommodation_style: Optional[str] = Field(default=None, alias="accommodationStyle")
    group_size: Optional[int] = Field(default=None, alias="groupSize", ge=1)
    budget: Optional[float] = None
    budget_min: Optional[float] = Field(default=None, alias="budgetMin")
    budget_max: Optional[float] = Field(default=None, alias="budgetMax")
    budget_range: Optional[List[float]] = Field(default=None, alias="budgetRange")
    travel_stats: Optional[Dict[str, Any]] = Field(default=None, alias="travelStats")
    selected_experiences: List[ExperienceGroup] = Field(default_factory=list, alias="selectedExperiences")
    selected_stays: List[PickModel] = Field(default_factory=list, alias="selectedStays")
    mode: str = "driving"


class SavePlanRequest(BaseModel):
    """POST /api/plans — store a composed itinerary payload."""

    itinerary: Dict[str, Any] = Field(..., description="Payload returned by /api/plan")


# ── Response Models ────────────────────────────────────────────


class PlanResponse(BaseModel):
    """POST /api/plan response. ``plan`` is null when recovery failed."""

    ok: bool
    plan: Optional[Dict[str, Any]] = None
    raw: Any = None
    itinerary: Optional[Dict[str, Any]] = None


class TravelEstimateResponse(BaseModel):
    """GET /api/travel-estimate response."""

    success: bool
    origin: Dict[str, Any]
    destination: Dict[str, Any]
    estimate: Dict[str, Any]


class SavePlanResponse(BaseModel):
    success: bool
    plan_id: str = Field(..., serialization_alias="planId")


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: str
    service: str
    model: str
    maps_available: bool
    places_available: bool
    gemini_ready: bool
    groq_ready: bool
    config_errors: List[str] = []


class ErrorResponse(BaseModel):
    """Generic error envelope returned on failure."""

    success: bool = False
    error: str
