"""
Leg record transformation and in-memory filters.

A leg inherits requirements from its journey: skills are the union of both,
while risk level and minimum experience come from the leg when set and fall
back to the journey otherwise.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

RISK_LEVELS = ("Coastal sailing", "Offshore sailing", "Extreme sailing")

BOAT_TYPES = (
    "Daysailers",
    "Coastal cruisers",
    "Traditional offshore cruisers",
    "Performance cruisers",
    "Multihulls",
    "Expedition sailboats",
)

# 1=Beginner, 2=Competent Crew, 3=Coastal Skipper, 4=Offshore Skipper
EXPERIENCE_LEVELS = {
    1: "Beginner",
    2: "Competent Crew",
    3: "Coastal Skipper",
    4: "Offshore Skipper",
}


@dataclass(frozen=True)
class EffectiveFields:
    """Requirements of a leg after merging with its journey."""
    combined_skills: List[str]
    risk_levels: List[str]
    min_experience_level: Optional[int]


@dataclass
class FormattedLeg:
    """Presentation record for a search hit."""
    id: str
    name: str
    description: Optional[str] = None
    journey_id: Optional[str] = None
    journey_name: Optional[str] = None
    boat_name: Optional[str] = None
    boat_type: Optional[str] = None
    boat_make_model: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    crew_needed: Optional[int] = None
    risk_level: Optional[str] = None
    departure_location: Optional[str] = None
    arrival_location: Optional[str] = None
    journey_images: List[str] = field(default_factory=list)
    boat_images: List[str] = field(default_factory=list)
    combined_skills: List[str] = field(default_factory=list)
    effective_risk_levels: List[str] = field(default_factory=list)
    effective_min_experience_level: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


def split_csv(value: Union[str, Sequence[str], None]) -> List[str]:
    """Accept "a, b" or ["a", "b"]; drop blanks."""
    if not value:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [v for v in value if v]


def merge_effective_fields(
    leg_fields: Mapping[str, Any],
    journey_fields: Optional[Mapping[str, Any]],
) -> EffectiveFields:
    """
    Merge leg-level requirements with the parent journey's.

    - combined_skills: journey skills then leg skills, de-duplicated, blanks dropped
    - risk_levels: [leg risk_level] when set, else the journey's levels
    - min_experience_level: leg value when set, else the journey's
    """
    journey_fields = journey_fields or {}

    combined: List[str] = []
    for skill in _as_list(journey_fields.get("skills")) + _as_list(leg_fields.get("skills")):
        skill = skill.strip()
        if skill and skill not in combined:
            combined.append(skill)

    leg_risk = leg_fields.get("risk_level")
    if leg_risk:
        risk_levels = _as_list(leg_risk)
    else:
        risk_levels = _as_list(journey_fields.get("risk_level"))

    min_experience = leg_fields.get("min_experience_level")
    if min_experience is None:
        min_experience = journey_fields.get("min_experience_level")

    return EffectiveFields(
        combined_skills=combined,
        risk_levels=risk_levels,
        min_experience_level=min_experience,
    )


def _endpoints(waypoints: Iterable[Mapping[str, Any]]):
    """(start, end) waypoints: index 0 and the highest index. Unindexed waypoints are ignored."""
    ordered = sorted(
        (w for w in waypoints or [] if w.get("index") is not None),
        key=lambda w: w["index"],
    )
    start = next((w for w in ordered if w.get("index") == 0), None)
    end = ordered[-1] if ordered else None
    return start, end


def transform_leg(row: Mapping[str, Any]) -> dict:
    """Copy of a store row with effective fields and endpoint names attached."""
    effective = merge_effective_fields(row, row.get("journey"))
    start, end = _endpoints(row.get("waypoints"))

    transformed = dict(row)
    transformed["combined_skills"] = effective.combined_skills
    transformed["effective_risk_levels"] = effective.risk_levels
    transformed["effective_min_experience_level"] = effective.min_experience_level
    transformed["start_location"] = start.get("name") if start else None
    transformed["end_location"] = end.get("name") if end else None
    return transformed


def format_leg(row: Mapping[str, Any]) -> FormattedLeg:
    """Turn a joined store row into a FormattedLeg with effective fields."""
    leg = transform_leg(row)
    journey = leg.get("journey") or {}
    boat = journey.get("boat") or {}
    risk_levels = leg["effective_risk_levels"]

    return FormattedLeg(
        id=row["id"],
        name=row.get("name"),
        description=row.get("description"),
        journey_id=journey.get("id"),
        journey_name=journey.get("name"),
        boat_name=boat.get("name"),
        boat_type=boat.get("type"),
        boat_make_model=boat.get("make_model"),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        crew_needed=row.get("crew_needed"),
        risk_level=risk_levels[0] if risk_levels else None,
        departure_location=leg["start_location"],
        arrival_location=leg["end_location"],
        journey_images=_as_list(journey.get("images")),
        boat_images=_as_list(boat.get("images")),
        combined_skills=leg["combined_skills"],
        effective_risk_levels=risk_levels,
        effective_min_experience_level=leg["effective_min_experience_level"],
    )


# =============================================================================
# In-memory filters
# =============================================================================


def filter_needs_crew(legs: List[FormattedLeg]) -> List[FormattedLeg]:
    return [leg for leg in legs if (leg.crew_needed or 0) > 0]


def filter_by_skills(legs: List[FormattedLeg], required: Sequence[str]) -> List[FormattedLeg]:
    """Keep legs whose combined skills include every required skill (case-insensitive)."""
    wanted = [s.lower() for s in required]
    if not wanted:
        return legs
    kept = []
    for leg in legs:
        have = {s.lower() for s in leg.combined_skills}
        if all(skill in have for skill in wanted):
            kept.append(leg)
    return kept


def filter_by_risk_level(legs: List[FormattedLeg], risk_level: str) -> List[FormattedLeg]:
    """Exact match: the leg's effective levels must include ``risk_level``."""
    return [leg for leg in legs if risk_level in leg.effective_risk_levels]


def filter_by_risk_levels(legs: List[FormattedLeg], allowed: Sequence[str]) -> List[FormattedLeg]:
    """Allowed-set match. Legs without any risk level are kept."""
    if not allowed:
        return legs
    allowed_set = set(allowed)
    return [
        leg for leg in legs
        if not leg.effective_risk_levels
        or any(level in allowed_set for level in leg.effective_risk_levels)
    ]


def filter_by_experience(legs: List[FormattedLeg], experience_level: int) -> List[FormattedLeg]:
    """Keep legs the user qualifies for. Legs without a minimum are kept."""
    return [
        leg for leg in legs
        if leg.effective_min_experience_level is None
        or leg.effective_min_experience_level <= experience_level
    ]


def filter_legs_by_location_text(legs: List[FormattedLeg], query: str) -> List[FormattedLeg]:
    """Substring match on departure, arrival, journey and leg names."""
    needle = query.lower()
    return [
        leg for leg in legs
        if any(
            needle in (text or "").lower()
            for text in (leg.departure_location, leg.arrival_location, leg.journey_name, leg.name)
        )
    ]


def sort_legs_by_start_date(legs: List[FormattedLeg]) -> List[FormattedLeg]:
    """Ascending by start date; legs without one go last. Stable."""
    return sorted(legs, key=lambda leg: (leg.start_date is None, leg.start_date or ""))
