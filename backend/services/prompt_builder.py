"""
Itinerary Prompt Builder.

Turns a TripRequest into the instruction text sent to the language model,
together with the ``deliver_itinerary`` function declaration the model is
forced to call. Output is a pure function of the request: the same request
always produces the same string.
"""

from typing import Any, Dict, List, Optional

from config.settings import settings
from models.trip_request import TripRequest

DELIVER_ITINERARY = "deliver_itinerary"

_STRING = {"type": "STRING"}
_NUMBER = {"type": "NUMBER"}

ITINERARY_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "OBJECT",
            "properties": {
                "title": _STRING,
                "tagline": _STRING,
                "dailyHighlights": {"type": "ARRAY", "items": _STRING},
            },
        },
        "days": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "day": {"type": "INTEGER"},
                    "date": _STRING,
                    "theme": _STRING,
                    "meals": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {
                                "name": _STRING,
                                "place": _STRING,
                                "notes": _STRING,
                            },
                        },
                    },
                    "segments": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {
                                "time": _STRING,
                                "title": _STRING,
                                "description": _STRING,
                                "address": _STRING,
                                "latitude": _NUMBER,
                                "longitude": _NUMBER,
                                "category": _STRING,
                                "estimatedCost": _NUMBER,
                                "tips": _STRING,
                            },
                        },
                    },
                },
            },
        },
    },
    "required": ["summary", "days"],
}

DELIVER_ITINERARY_FUNCTION: Dict[str, Any] = {
    "name": DELIVER_ITINERARY,
    "description": "Return the generated itinerary in the agreed JSON schema.",
    "parameters": ITINERARY_SCHEMA,
}

SEGMENT_RULES = [
    "Every day must include four time-ordered segments (morning activity, lunch/meal, "
    "afternoon highlight, evening experience) plus one lodging/stay segment.",
    'Encode stay ideas as segments with category set to "lodging" and mention the '
    "nightly rate that fits the traveler's budget.",
    "Set segment.category to values such as 'morning', 'meal', 'afternoon', 'evening', "
    "'nightlife', or 'lodging' so the UI can label them.",
    "Each segment must include an estimatedCost in MYR and keep the combined daily spend "
    "within the traveler's stated budget range (use low-cost or free options when needed).",
    "Limit segment descriptions to a single concise sentence (16 words or fewer).",
    "Whenever practical, include approximate latitude/longitude inside segments to help "
    "map plotting.",
]

FINAL_INSTRUCTION = (
    f"Call the {DELIVER_ITINERARY} function exactly once with the finished itinerary JSON. "
    "Do not return free-form text."
)


def format_budget_line(request: TripRequest) -> str:
    """One budget line: the min/max range when it is usable, else a point budget."""
    low, high = request.budget_min, request.budget_max
    if low and high and high > low:
        return f"Budget range (MYR): RM{low:,.0f} - RM{high:,.0f}."
    budget = request.budget if request.budget and request.budget > 0 else settings.DEFAULT_BUDGET
    return f"Budget (MYR): RM{budget:,.0f}."


def format_travel_stats_line(stats: Optional[Dict[str, Any]], origin: str, destination: str) -> str:
    if not stats:
        return ""
    parts = [str(stats.get(k) or "").strip() for k in ("distanceText", "durationText")]
    parts = [p for p in parts if p]
    if not parts:
        return ""
    return f"Door-to-door estimate {origin or 'origin'} → {destination or 'destination'}: {' / '.join(parts)}."


def _pick_entry(pick: Dict[str, Any], default_title: str) -> str:
    entry = str(pick.get("title") or default_title)
    metadata = pick.get("metadata") if isinstance(pick.get("metadata"), dict) else {}
    subtitle = pick.get("subtitle") or metadata.get("address") or ""
    if subtitle:
        entry += f" @ {subtitle}"
    if pick.get("priceText"):
        entry += f" ({pick['priceText']})"
    return entry


def format_experience_lines(groups: List[Dict[str, Any]]) -> List[str]:
    lines = []
    for group in groups:
        picks = [
            _pick_entry(p, "Experience")
            for p in group.get("picks") or []
            if isinstance(p, dict)
        ]
        if picks:
            theme = str(group.get("theme") or "Experience")
            label = group.get("label") or theme[:1].upper() + theme[1:]
            lines.append(f"- {label}: {'; '.join(picks)}")
    if not lines:
        lines.append("- Use AI-curated experiences if no manual picks were supplied.")
    return lines


def format_stay_lines(stays: List[Dict[str, Any]]) -> List[str]:
    lines = [f"- {_pick_entry(stay, 'Stay')}" for stay in stays]
    if not lines:
        lines.append("- If no stay was selected, choose one that matches the comfort band.")
    return lines


def build_prompt(request: TripRequest) -> str:
    """Render the itinerary instruction text for ``request``."""
    interests = request.interests or ["culture", "nature"]
    styles = request.travel_styles or ["balanced"]
    accommodation = request.accommodation_style or "comfort"
    group_size = request.group_size or settings.DEFAULT_GROUP_SIZE

    departure = f" departing from {request.origin}" if request.origin else ""
    lines = [
        "You are an eco-conscious Malaysian trip planner.",
        f"Generate a {request.resolved_duration()}-day itinerary for {request.destination}"
        f"{departure} between {request.start_date} and {request.end_date}.",
        f"Group size: {group_size}.",
        f"Preferred accommodation style: {accommodation}. Tailor recommendations to match this comfort level.",
        format_budget_line(request),
        f"Interests: {', '.join(str(i) for i in interests)}.",
        f"Preferred travel styles: {', '.join(str(s) for s in styles)}.",
        *SEGMENT_RULES,
    ]

    travel_line = format_travel_stats_line(request.travel_stats, request.origin, request.destination)
    if travel_line:
        lines.append(travel_line)

    if request.selected_experiences:
        lines.append(
            "Prioritise these traveler-approved experience picks "
            "(keep day order flexible while ensuring they appear somewhere):"
        )
        lines.extend(format_experience_lines(request.selected_experiences))

    if request.selected_stays:
        lines.append("Prioritise these Booking.com stays for lodging segments when the budget allows:")
        lines.extend(format_stay_lines(request.selected_stays))

    lines.append(FINAL_INSTRUCTION)
    return "\n".join(lines)
