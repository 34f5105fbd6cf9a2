"""
Leg search service.

Two entry points share one filter pipeline:

- search_published_legs: tabular search over all published legs
- search_legs_by_bbox: geographic search, spatial match first, then the
  same filters over the matched ids

When a geographic search matches legs that the date range then removes
entirely, the result carries a date-availability message explaining when
those legs actually sail.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from .config import SearchConfig, get_settings
from .errors import StoreError
from .geo.bbox import BoundingBox, describe_bbox, is_valid_bbox
from .legs import (
    FormattedLeg,
    filter_by_experience,
    filter_by_risk_level,
    filter_by_risk_levels,
    filter_by_skills,
    filter_legs_by_location_text,
    filter_needs_crew,
    format_leg,
    sort_legs_by_start_date,
    split_csv,
)
from .spatial import SpatialStrategy, find_legs_in_bbox
from .store import LegQuery, LegStore

NO_AREA_MESSAGE = "Please provide a departure or arrival area to search."


@dataclass
class LegSearchOptions:
    """Caller-supplied search criteria. Dates are ISO "YYYY-MM-DD" strings."""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    departure_bbox: Optional[BoundingBox] = None
    arrival_bbox: Optional[BoundingBox] = None
    departure_description: Optional[str] = None
    arrival_description: Optional[str] = None
    location_query: Optional[str] = None
    journey_id: Optional[str] = None
    risk_level: Optional[str] = None
    risk_levels: List[str] = field(default_factory=list)
    min_experience_level: Optional[int] = None
    skills_required: List[str] = field(default_factory=list)
    boat_type: Optional[str] = None
    make_model: Optional[str] = None
    crew_needed: bool = True
    limit: Optional[int] = None

    def __post_init__(self):
        # Comma-separated strings are accepted from tool calls and query params
        self.risk_levels = split_csv(self.risk_levels)
        self.skills_required = split_csv(self.skills_required)


@dataclass
class DateAvailabilityInfo:
    """Date span of spatial matches that the date range filtered out."""
    spatial_match_count: int
    earliest_date: str
    latest_date: str
    searched_start_date: str = ""
    searched_end_date: str = ""


@dataclass
class LegSearchResult:
    legs: List[FormattedLeg] = field(default_factory=list)
    count: int = 0
    searched_departure: Optional[str] = None
    searched_arrival: Optional[str] = None
    departure_area: Optional[str] = None
    arrival_area: Optional[str] = None
    message: Optional[str] = None
    date_availability: Optional[DateAvailabilityInfo] = None

    def to_dict(self) -> dict:
        return asdict(self)


def format_date_for_display(value: str) -> str:
    """'2024-06-15' -> 'Jun 15, 2024'. Unparseable input is returned unchanged."""
    try:
        d = date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return value
    return f"{d:%b} {d.day}, {d.year}"


def format_searched_range(start_date: Optional[str], end_date: Optional[str]) -> str:
    if start_date and end_date:
        return f"{format_date_for_display(start_date)} to {format_date_for_display(end_date)}"
    if start_date:
        return f"from {format_date_for_display(start_date)} onwards"
    return f"until {format_date_for_display(end_date)}"


def build_date_availability_message(
    info: DateAvailabilityInfo,
    location: Optional[str] = None,
) -> str:
    """Explain that legs exist in the area but sail outside the searched dates."""
    n = info.spatial_match_count
    location = location or "this area"
    noun, pronoun = ("leg", "it's") if n == 1 else ("legs", "they're")

    if info.earliest_date == info.latest_date:
        available = format_date_for_display(info.earliest_date)
    else:
        available = (
            f"{format_date_for_display(info.earliest_date)} to "
            f"{format_date_for_display(info.latest_date)}"
        )
    searched = format_searched_range(
        info.searched_start_date or None, info.searched_end_date or None
    )

    return (
        f"I found **{n}** sailing {noun} in **{location}**, "
        f"but {pronoun} scheduled for **{available}**, "
        f"which is outside your search dates (**{searched}**). "
        f"Would you like me to search with different dates?"
    )


def build_no_match_message(
    departure_description: Optional[str],
    arrival_description: Optional[str],
) -> str:
    parts = []
    if departure_description:
        parts.append(f"departing from {departure_description}")
    if arrival_description:
        parts.append(f"arriving at {arrival_description}")
    if not parts:
        return "No sailing opportunities found in the requested area."
    return f"No sailing opportunities found {' and '.join(parts)}."


class LegSearchService:
    """
    Leg search over a LegStore.

    Usage:
        service = LegSearchService(store)
        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BoundingBox(-6, 35, 10, 44),
            departure_description="Western Mediterranean",
            start_date="2024-06-01",
        ))
    """

    def __init__(
        self,
        store: LegStore,
        config: Optional[SearchConfig] = None,
        logger: Optional[logging.Logger] = None,
        strategies: Optional[List[SpatialStrategy]] = None,
    ):
        self.store = store
        self.config = config or get_settings()
        self.logger = logger or logging.getLogger(__name__)
        self.strategies = strategies

    def _debug(self, message: str):
        if self.config.verbose:
            self.logger.debug(message)

    def _limit(self, options: LegSearchOptions) -> int:
        limit = options.limit or self.config.default_limit
        return max(1, min(limit, self.config.max_limit))

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    def _query(self, options: LegSearchOptions, limit: int, leg_ids: Optional[List[str]] = None) -> List[FormattedLeg]:
        query = LegQuery(
            leg_ids=leg_ids,
            journey_id=options.journey_id,
            start_date=options.start_date,
            end_date=options.end_date,
            boat_type=options.boat_type,
            make_model=options.make_model,
            limit=self.config.fetch_limit(limit),
        )
        rows = self.store.query_legs(query)
        self._debug(f"Store returned {len(rows)} legs for {query}")

        legs = [format_leg(row) for row in rows]
        return self._apply_filters(legs, options)[:limit]

    def _apply_filters(self, legs: List[FormattedLeg], options: LegSearchOptions) -> List[FormattedLeg]:
        if options.crew_needed:
            legs = filter_needs_crew(legs)
        if options.skills_required:
            legs = filter_by_skills(legs, options.skills_required)
        if options.risk_level:
            legs = filter_by_risk_level(legs, options.risk_level)
        if options.risk_levels:
            legs = filter_by_risk_levels(legs, options.risk_levels)
        if options.min_experience_level is not None:
            legs = filter_by_experience(legs, options.min_experience_level)
        if options.location_query:
            before = len(legs)
            legs = filter_legs_by_location_text(legs, options.location_query)
            self._debug(f"Location filter {options.location_query!r}: {before} -> {len(legs)} legs")
        return sort_legs_by_start_date(legs)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def search_published_legs(self, options: Optional[LegSearchOptions] = None) -> LegSearchResult:
        """Non-geographic search over all published legs."""
        options = options or LegSearchOptions()
        legs = self._query(options, self._limit(options))
        return LegSearchResult(legs=legs, count=len(legs))

    def find_legs_in_bbox(
        self,
        departure: Optional[BoundingBox],
        arrival: Optional[BoundingBox],
    ) -> List[str]:
        return find_legs_in_bbox(
            self.store,
            departure,
            arrival,
            strategies=self.strategies,
            log=self.logger,
            raw_fetch_limit=self.config.raw_fetch_limit,
        )

    def search_legs_by_bbox(self, options: LegSearchOptions) -> LegSearchResult:
        """
        Geographic search.

        Validation problems and empty spatial matches come back as an empty
        result with a message. Store failures propagate as StoreError.
        """
        departure, arrival = options.departure_bbox, options.arrival_bbox
        result = LegSearchResult(
            searched_departure=options.departure_description,
            searched_arrival=options.arrival_description,
        )

        if departure is None and arrival is None:
            result.message = NO_AREA_MESSAGE
            return result
        if departure is not None and not is_valid_bbox(departure):
            result.message = "Invalid departure bounding box coordinates provided."
            return result
        if arrival is not None and not is_valid_bbox(arrival):
            result.message = "Invalid arrival bounding box coordinates provided."
            return result

        result.departure_area = describe_bbox(departure) if departure else None
        result.arrival_area = describe_bbox(arrival) if arrival else None

        matched_ids = self.find_legs_in_bbox(departure, arrival)
        self._debug(f"Spatial match found {len(matched_ids)} legs")

        if not matched_ids:
            result.message = build_no_match_message(
                options.departure_description, options.arrival_description
            )
            return result

        legs = self._query(options, self._limit(options), leg_ids=matched_ids)
        result.legs = legs
        result.count = len(legs)

        if not legs and (options.start_date or options.end_date):
            info = self.get_legs_date_range(matched_ids)
            if info is not None:
                info.searched_start_date = options.start_date or ""
                info.searched_end_date = options.end_date or ""
                result.date_availability = info
                result.message = build_date_availability_message(
                    info, options.departure_description or options.arrival_description
                )
                self._debug(f"Date availability: {info}")

        return result

    def get_legs_date_range(self, leg_ids: List[str]) -> Optional[DateAvailabilityInfo]:
        """
        Earliest start and latest end across the given legs, ignoring dates.

        Only published legs still needing crew count. A leg without an end
        date contributes its start date. Returns None when nothing qualifies
        or the lookup fails; the explanation is best-effort.
        """
        if not leg_ids:
            return None

        try:
            rows = self.store.query_leg_dates(leg_ids)
        except StoreError as e:
            self.logger.warning(f"Date range lookup failed: {e}")
            return None

        spans = [
            (row["start_date"], row.get("end_date") or row["start_date"])
            for row in rows
            if row.get("start_date")
        ]
        if not spans:
            return None

        return DateAvailabilityInfo(
            spatial_match_count=len(rows),
            earliest_date=min(start for start, _ in spans),
            latest_date=max(end for _, end in spans),
        )

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    def legs_departing_in(
        self,
        bbox: BoundingBox,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[FormattedLeg], int]:
        """
        Page through published legs needing crew that start inside ``bbox``.

        Returns the requested page and the total number of matching legs.
        """
        matched_ids = self.find_legs_in_bbox(bbox, None)
        if not matched_ids:
            return [], 0

        rows = self.store.query_legs(LegQuery(leg_ids=matched_ids, limit=len(matched_ids)))
        legs = sort_legs_by_start_date(filter_needs_crew([format_leg(row) for row in rows]))
        return legs[offset:offset + limit], len(legs)

    def get_leg(self, leg_id: str) -> Optional[FormattedLeg]:
        """A single published leg, or None."""
        rows = self.store.query_legs(LegQuery(leg_ids=[leg_id], limit=1))
        return format_leg(rows[0]) if rows else None
