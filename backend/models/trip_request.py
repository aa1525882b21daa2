"""
Data model for a single planning request (the trip context fed to the
prompt builder and the planner).
"""
from dataclasses import dataclass, asdict, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass
class TripRequest:
    """Trip constraints as received from the planning endpoint."""

    destination: str = ""
    origin: str = ""
    start_date: str = ""              # Format: YYYY-MM-DD
    end_date: str = ""                # Format: YYYY-MM-DD
    duration_days: Optional[int] = None

    interests: List[str] = field(default_factory=list)
    travel_styles: List[str] = field(default_factory=list)
    accommodation_style: str = ""
    group_size: Optional[int] = None

    # Budget (MYR): a point estimate or a min/max range
    budget: Optional[float] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None

    # Caller-supplied door-to-door stats, e.g. {"distanceText": ..., "durationText": ...}
    travel_stats: Optional[Dict[str, Any]] = None

    # Caller-curated picks: experience groups {label, theme, picks:[...]} and stays
    selected_experiences: List[Dict[str, Any]] = field(default_factory=list)
    selected_stays: List[Dict[str, Any]] = field(default_factory=list)

    mode: str = "driving"

    def __post_init__(self):
        # Derive a point budget from the range when only the range was given
        if (not self.budget or self.budget <= 0) and self.budget_min is not None \
                and self.budget_max is not None:
            self.budget = (self.budget_min + self.budget_max) / 2

    def resolved_duration(self) -> int:
        """Trip length in days; dates are inclusive (Mar 15–17 is 3 days)."""
        if self.duration_days and self.duration_days > 0:
            return self.duration_days
        try:
            start = date.fromisoformat(self.start_date)
            end = date.fromisoformat(self.end_date)
        except (TypeError, ValueError):
            return 1
        return max(1, (end - start).days + 1)

    def missing_required(self) -> List[str]:
        required = {
            "destination": self.destination,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }
        return [name for name, value in required.items() if not value]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripRequest":
        """Build from the camelCase request body, tolerating a budgetRange pair."""
        budget_range = data.get("budgetRange") if isinstance(data.get("budgetRange"), list) else []
        budget_min = data.get("budgetMin")
        budget_max = data.get("budgetMax")
        if budget_min is None and len(budget_range) > 0:
            budget_min = budget_range[0]
        if budget_max is None and len(budget_range) > 1:
            budget_max = budget_range[1]

        def _float(value: Any) -> Optional[float]:
            try:
                return float(value) if value is not None else None
            except (TypeError, ValueError):
                return None

        def _int(value: Any) -> Optional[int]:
            try:
                return int(value) if value is not None else None
            except (TypeError, ValueError):
                return None

        def _list(value: Any) -> list:
            return list(value) if isinstance(value, list) else []

        return cls(
            destination=str(data.get("destination") or "").strip(),
            origin=str(data.get("origin") or "").strip(),
            start_date=str(data.get("startDate") or "").strip(),
            end_date=str(data.get("endDate") or "").strip(),
            duration_days=_int(data.get("durationDays")),
            interests=_list(data.get("interests")),
            travel_styles=_list(data.get("travelStyles")),
            accommodation_style=str(
                data.get("accommodationStyle") or data.get("accommodation") or ""
            ).strip(),
            group_size=_int(data.get("groupSize")),
            budget=_float(data.get("budget")),
            budget_min=_float(budget_min),
            budget_max=_float(budget_max),
            travel_stats=data.get("travelStats") if isinstance(data.get("travelStats"), dict) else None,
            selected_experiences=[g for g in _list(data.get("selectedExperiences")) if isinstance(g, dict)],
            selected_stays=[s for s in _list(data.get("selectedStays")) if isinstance(s, dict)],
            mode=str(data.get("mode") or "driving"),
        )
