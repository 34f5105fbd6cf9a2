"""Tests for the leg search service over an in-memory store."""

import logging

import pytest

from legsearch.config import SearchConfig
from legsearch.errors import StoreError
from legsearch.geo.bbox import BoundingBox
from legsearch.search import (
    NO_AREA_MESSAGE,
    DateAvailabilityInfo,
    LegSearchOptions,
    LegSearchService,
    build_date_availability_message,
    format_date_for_display,
    format_searched_range,
)

BALEARICS = BoundingBox(1.0, 38.5, 4.5, 40.5)
CARIBBEAN = BoundingBox(-85.0, 9.0, -59.0, 27.0)

PALMA = (2.63, 39.56)
IBIZA = (1.43, 38.91)


@pytest.fixture
def service(fake_store):
    return LegSearchService(fake_store, config=SearchConfig(default_limit=10, max_limit=50))


class TestDateFormatting:

    def test_format_date(self):
        assert format_date_for_display("2024-06-15") == "Jun 15, 2024"

    def test_format_single_digit_day(self):
        assert format_date_for_display("2024-08-01") == "Aug 1, 2024"

    def test_format_datetime_string(self):
        assert format_date_for_display("2024-06-15T10:00:00Z") == "Jun 15, 2024"

    def test_unparseable_returned_verbatim(self):
        assert format_date_for_display("next summer") == "next summer"

    def test_searched_range_variants(self):
        assert format_searched_range("2024-01-01", "2024-01-31") == "Jan 1, 2024 to Jan 31, 2024"
        assert format_searched_range("2024-01-01", None) == "from Jan 1, 2024 onwards"
        assert format_searched_range(None, "2024-01-31") == "until Jan 31, 2024"

    def test_message_plural_and_single_date(self):
        info = DateAvailabilityInfo(
            spatial_match_count=3,
            earliest_date="2024-09-01",
            latest_date="2024-09-01",
            searched_start_date="2024-06-01",
        )
        assert build_date_availability_message(info) == (
            "I found **3** sailing legs in **this area**, but they're scheduled for "
            "**Sep 1, 2024**, which is outside your search dates (**from Jun 1, 2024 onwards**). "
            "Would you like me to search with different dates?"
        )


class TestSearchLegsByBbox:

    def test_no_area(self, service, fake_store):
        result = service.search_legs_by_bbox(LegSearchOptions())
        assert result.legs == []
        assert result.message == NO_AREA_MESSAGE
        assert sum(fake_store.calls.values()) == 0

    @pytest.mark.parametrize("bbox", [
        BoundingBox(5.0, 38.5, 1.0, 40.5),
        BoundingBox(1.0, 41.0, 4.5, 40.5),
        BoundingBox(float("nan"), 38.5, 4.5, 40.5),
        BoundingBox(1.0, 38.5, float("inf"), 40.5),
        BoundingBox(-200.0, 38.5, 4.5, 40.5),
    ])
    def test_invalid_departure_box(self, service, fake_store, bbox):
        result = service.search_legs_by_bbox(LegSearchOptions(departure_bbox=bbox))
        assert result.legs == []
        assert result.count == 0
        assert result.message == "Invalid departure bounding box coordinates provided."
        assert sum(fake_store.calls.values()) == 0

    def test_invalid_arrival_box(self, service):
        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            arrival_bbox=BoundingBox(0, 0, -1, -1),
        ))
        assert result.message == "Invalid arrival bounding box coordinates provided."

    def test_match(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA, start_date="2024-06-15", end_date="2024-06-17")

        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            departure_description="Balearic Islands",
        ))
        assert [leg.id for leg in result.legs] == ["L"]
        assert result.count == 1
        assert result.searched_departure == "Balearic Islands"
        assert result.departure_area == "wider region"
        assert result.arrival_area is None
        assert result.message is None

    def test_no_spatial_match_message(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA)

        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=CARIBBEAN,
            arrival_bbox=BALEARICS,
            departure_description="the Caribbean",
            arrival_description="Mallorca",
        ))
        assert result.legs == []
        assert result.message == (
            "No sailing opportunities found departing from the Caribbean and arriving at Mallorca."
        )

    def test_dates_outside_range_explained(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA, start_date="2024-08-01", end_date="2024-08-10")

        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            departure_description="Balearic Islands",
            start_date="2024-01-01",
            end_date="2024-01-31",
        ))

        assert result.legs == []
        assert result.date_availability.spatial_match_count == 1
        assert result.date_availability.earliest_date == "2024-08-01"
        assert result.date_availability.latest_date == "2024-08-10"
        assert result.date_availability.searched_start_date == "2024-01-01"
        assert result.date_availability.searched_end_date == "2024-01-31"
        assert result.message == (
            "I found **1** sailing leg in **Balearic Islands**, but it's scheduled for "
            "**Aug 1, 2024 to Aug 10, 2024**, which is outside your search dates "
            "(**Jan 1, 2024 to Jan 31, 2024**). Would you like me to search with different dates?"
        )

    def test_date_explanation_falls_back_to_arrival_description(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA, start_date="2024-08-01", end_date="2024-08-10")

        result = service.search_legs_by_bbox(LegSearchOptions(
            arrival_bbox=BALEARICS,
            arrival_description="Ibiza",
            end_date="2024-01-31",
        ))
        assert "in **Ibiza**" in result.message
        assert "(**until Jan 31, 2024**)" in result.message

    def test_no_date_explanation_without_dates(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA, crew_needed=0)

        result = service.search_legs_by_bbox(LegSearchOptions(departure_bbox=BALEARICS))
        assert result.legs == []
        assert result.date_availability is None
        assert fake_store.calls["query_leg_dates"] == 0

    def test_date_lookup_failure_is_not_fatal(self, service, fake_store):
        fake_store.add_leg("L", start=PALMA, end=IBIZA, start_date="2024-08-01", end_date="2024-08-10")
        fake_store.failing.add("query_leg_dates")

        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            start_date="2024-01-01",
            end_date="2024-01-31",
        ))
        assert result.legs == []
        assert result.message is None
        assert result.date_availability is None

    def test_store_failure_propagates(self, service, fake_store):
        fake_store.failing.update({"get_waypoint_coords", "fetch_published_leg_waypoints"})

        with pytest.raises(StoreError):
            service.search_legs_by_bbox(LegSearchOptions(departure_bbox=BALEARICS))

    def test_idempotent(self, service, fake_store):
        for i, day in enumerate(["2024-06-03", None, "2024-06-01", "2024-06-02"]):
            fake_store.add_leg(f"leg-{i}", start=PALMA, end=IBIZA, start_date=day)

        options = LegSearchOptions(departure_bbox=BALEARICS)
        first = service.search_legs_by_bbox(options)
        second = service.search_legs_by_bbox(options)
        assert first == second
        assert [leg.id for leg in first.legs] == ["leg-2", "leg-3", "leg-0", "leg-1"]


class TestSearchPublishedLegs:

    def test_skills_filter(self, service, fake_store):
        fake_store.add_leg("nav", skills=["navigation"])
        fake_store.add_leg("nav-cook", skills=["navigation", "cooking"])
        fake_store.add_leg("cook", skills=["cooking"])

        result = service.search_published_legs(LegSearchOptions(skills_required="navigation"))
        assert sorted(leg.id for leg in result.legs) == ["nav", "nav-cook"]

    def test_journey_skills_count(self, service, fake_store):
        fake_store.add_leg("inherits", skills=[], journey_skills=["Navigation"])

        result = service.search_published_legs(LegSearchOptions(skills_required=["navigation"]))
        assert [leg.id for leg in result.legs] == ["inherits"]

    def test_nulls_last(self, service, fake_store):
        fake_store.add_leg("none", start_date=None)
        fake_store.add_leg("march", start_date="2024-03-01")
        fake_store.add_leg("january", start_date="2024-01-01")

        result = service.search_published_legs()
        assert [leg.start_date for leg in result.legs] == ["2024-01-01", "2024-03-01", None]

    def test_crew_needed_default(self, service, fake_store):
        fake_store.add_leg("full", crew_needed=0)
        fake_store.add_leg("open", crew_needed=2)

        assert [leg.id for leg in service.search_published_legs().legs] == ["open"]

        result = service.search_published_legs(LegSearchOptions(crew_needed=False))
        assert sorted(leg.id for leg in result.legs) == ["full", "open"]

    def test_drafts_excluded(self, service, fake_store):
        fake_store.add_leg("draft", state="In planning")
        fake_store.add_leg("archived", state="Archived")
        assert service.search_published_legs().legs == []

    def test_risk_levels(self, service, fake_store):
        fake_store.add_leg("coastal", journey_risk_level=["Coastal sailing"])
        fake_store.add_leg("offshore", risk_level="Offshore sailing", journey_risk_level=["Coastal sailing"])
        fake_store.add_leg("unset")

        exact = service.search_published_legs(LegSearchOptions(risk_level="Offshore sailing"))
        assert [leg.id for leg in exact.legs] == ["offshore"]

        allowed = service.search_published_legs(LegSearchOptions(risk_levels="Coastal sailing"))
        assert sorted(leg.id for leg in allowed.legs) == ["coastal", "unset"]

    def test_experience(self, service, fake_store):
        fake_store.add_leg("beginner", min_experience_level=1)
        fake_store.add_leg("skipper", journey_min_experience_level=3)

        result = service.search_published_legs(LegSearchOptions(min_experience_level=2))
        assert [leg.id for leg in result.legs] == ["beginner"]

    def test_location_text(self, service, fake_store):
        fake_store.add_leg("palma", name="Palma day sail")
        fake_store.add_leg("other", name="Genoa delivery")

        result = service.search_published_legs(LegSearchOptions(location_query="PALMA"))
        assert [leg.id for leg in result.legs] == ["palma"]

    def test_remote_filters(self, service, fake_store):
        fake_store.add_leg("cat", boat_type="Multihulls", make_model="Lagoon 42")
        fake_store.add_leg("mono", boat_type="Coastal cruisers", make_model="Bavaria 37")

        by_type = service.search_published_legs(LegSearchOptions(boat_type="Multihulls"))
        assert [leg.id for leg in by_type.legs] == ["cat"]

        by_model = service.search_published_legs(LegSearchOptions(make_model="bavaria"))
        assert [leg.id for leg in by_model.legs] == ["mono"]

    def test_limit(self, service, fake_store):
        for i in range(15):
            fake_store.add_leg(f"leg-{i:02d}", start_date=f"2024-06-{i + 1:02d}")

        assert service.search_published_legs().count == 10
        assert service.search_published_legs(LegSearchOptions(limit=3)).count == 3
        assert service.search_published_legs(LegSearchOptions(limit=500)).count == 15

    def test_over_fetch_before_filtering(self, fake_store):
        seen = []
        original = fake_store.query_legs

        def recording_query(query):
            seen.append(query.limit)
            return original(query)

        fake_store.query_legs = recording_query
        service = LegSearchService(fake_store, config=SearchConfig(fetch_multiplier=3, min_fetch=50))

        service.search_published_legs(LegSearchOptions(limit=10))
        service.search_published_legs(LegSearchOptions(limit=30))
        assert seen == [50, 90]

    def test_verbose_logging(self, fake_store, caplog):
        fake_store.add_leg("a")
        log = logging.getLogger("test.legsearch")
        service = LegSearchService(fake_store, config=SearchConfig(verbose=True), logger=log)

        with caplog.at_level(logging.DEBUG, logger="test.legsearch"):
            service.search_published_legs()
        assert "Store returned 1 legs" in caplog.text


class TestBrowsing:

    def test_legs_departing_in_pages(self, service, fake_store):
        for i in range(5):
            fake_store.add_leg(f"leg-{i}", start=PALMA, end=IBIZA, start_date=f"2024-06-0{i + 1}")
        fake_store.add_leg("full", start=PALMA, end=IBIZA, crew_needed=0)

        page, total = service.legs_departing_in(BALEARICS, limit=2, offset=2)
        assert total == 5
        assert [leg.id for leg in page] == ["leg-2", "leg-3"]

    def test_legs_departing_in_empty(self, service, fake_store):
        assert service.legs_departing_in(CARIBBEAN) == ([], 0)
        assert fake_store.calls["query_legs"] == 0

    def test_get_leg(self, service, fake_store):
        fake_store.add_leg("L", skills=["navigation"], journey_skills=["cooking"])
        fake_store.add_leg("draft", state="In planning")

        assert service.get_leg("L").combined_skills == ["cooking", "navigation"]
        assert service.get_leg("draft") is None
        assert service.get_leg("missing") is None
