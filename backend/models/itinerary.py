"""
Itinerary data models — the structured plan recovered from the language
model and the composed payload handed to persistence.

Defines PlanMeal, PlanSegment, PlanDay, PlanSummary, StructuredItineraryPlan
and ItineraryPayload dataclasses. ``from_dict`` is tolerant: the model's
JSON is never trusted to match the declared schema, so missing or oddly
typed fields become empty values instead of errors.

Usage:
    plan = StructuredItineraryPlan.from_dict(function_call_args)
    json_data = plan.to_dict()
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _number(value: Any) -> Optional[float]:
    """Finite float or None; inf and nan are treated as missing."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _items(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


@dataclass
class PlanMeal:
    """Meal suggestion for a day."""

    name: str = ""
    place: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanMeal":
        return cls(
            name=_text(data.get("name")),
            place=_text(data.get("place")),
            notes=_text(data.get("notes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "place": self.place, "notes": self.notes}


@dataclass
class PlanSegment:
    """Time-ordered block within a day (activity, meal, lodging...)."""

    time: str = ""
    title: str = ""
    description: str = ""
    address: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    category: str = ""                  # morning|meal|afternoon|evening|nightlife|lodging
    estimated_cost: Optional[float] = None  # MYR
    tips: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanSegment":
        lat = _number(data.get("lat", data.get("latitude")))
        lng = _number(data.get("lng", data.get("longitude")))
        # Drop coordinates the model invented outside the valid range
        if lat is not None and not -90 <= lat <= 90:
            lat = None
        if lng is not None and not -180 <= lng <= 180:
            lng = None
        return cls(
            time=_text(data.get("time")),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            address=_text(data.get("address")),
            lat=lat,
            lng=lng,
            category=_text(data.get("category")).lower(),
            estimated_cost=_number(data.get("estimatedCost", data.get("estimated_cost"))),
            tips=_text(data.get("tips")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "title": self.title,
            "description": self.description,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "category": self.category,
            "estimatedCost": self.estimated_cost,
            "tips": self.tips,
        }


@dataclass
class PlanDay:
    """Single day in the plan."""

    day: int = 0
    date: str = ""                      # YYYY-MM-DD
    theme: str = ""
    meals: List[PlanMeal] = field(default_factory=list)
    segments: List[PlanSegment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: int) -> "PlanDay":
        number = _number(data.get("day"))
        return cls(
            day=int(number) if number is not None else position,
            date=_text(data.get("date")),
            theme=_text(data.get("theme")),
            meals=[PlanMeal.from_dict(m) for m in _items(data.get("meals"))],
            segments=[PlanSegment.from_dict(s) for s in _items(data.get("segments"))],
        )

    @property
    def estimated_cost(self) -> float:
        return sum(s.estimated_cost or 0.0 for s in self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.date,
            "theme": self.theme,
            "meals": [m.to_dict() for m in self.meals],
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass
class PlanSummary:
    title: str = ""
    tagline: str = ""
    daily_highlights: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "PlanSummary":
        if not isinstance(data, dict):
            # Some responses put a plain sentence where the summary object goes
            return cls(title=_text(data))
        highlights = data.get("dailyHighlights", data.get("daily_highlights"))
        return cls(
            title=_text(data.get("title")),
            tagline=_text(data.get("tagline")),
            daily_highlights=[
                _text(h) for h in highlights if _text(h)
            ] if isinstance(highlights, list) else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "tagline": self.tagline,
            "dailyHighlights": list(self.daily_highlights),
        }


@dataclass
class StructuredItineraryPlan:
    """Complete day-by-day plan as delivered by the model."""

    summary: PlanSummary = field(default_factory=PlanSummary)
    days: List[PlanDay] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuredItineraryPlan":
        # Tolerate a wrapper key around the plan
        if "days" not in data and isinstance(data.get("itinerary"), dict):
            data = data["itinerary"]
        days = [
            PlanDay.from_dict(d, position=i + 1)
            for i, d in enumerate(_items(data.get("days")))
        ]
        return cls(summary=PlanSummary.from_dict(data.get("summary")), days=days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "days": [d.to_dict() for d in self.days],
        }


@dataclass
class ItineraryPayload:
    """Final composed itinerary handed to the persistence collaborator."""

    plan_id: str = ""
    created_at: str = ""
    destination: Optional[Dict[str, Any]] = None
    origin: Optional[Dict[str, Any]] = None
    start_date: str = ""
    end_date: str = ""
    requested_days: int = 0
    plan: Optional[StructuredItineraryPlan] = None
    travel_estimate: Optional[Dict[str, Any]] = None
    lodging: List[Dict[str, Any]] = field(default_factory=list)
    activities: List[Dict[str, Any]] = field(default_factory=list)
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.provenance.get("degradationReasons"))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "planId": self.plan_id,
            "createdAt": self.created_at,
            "destination": self.destination,
            "origin": self.origin,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "requestedDays": self.requested_days,
            "plan": self.plan.to_dict() if self.plan else None,
            "travelEstimate": self.travel_estimate,
            "lodging": self.lodging,
            "activities": self.activities,
            "provenance": self.provenance,
            "degraded": self.degraded,
        }
