"""Tests for the SQLAlchemy leg store against in-memory SQLite."""

from datetime import date

import pytest

from api.store import SqlAlchemyLegStore, leg_to_row
from legsearch.config import SearchConfig
from legsearch.errors import StoreUnavailableError
from legsearch.geo.bbox import BoundingBox, extract_coordinates
from legsearch.search import LegSearchOptions, LegSearchService
from legsearch.store import LegQuery

BALEARICS = BoundingBox(1.0, 38.5, 4.5, 40.5)
CATALONIA = BoundingBox(0.5, 40.5, 3.5, 42.9)


@pytest.fixture
def store(db):
    return SqlAlchemyLegStore(db)


class TestSpatialRpcs:
    """The PostGIS functions only exist on PostgreSQL."""

    def test_location_rpc_unavailable(self, store):
        with pytest.raises(StoreUnavailableError):
            store.find_legs_by_location(BALEARICS, CATALONIA)

    def test_coords_rpc_unavailable(self, store):
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.get_waypoint_coords()
        assert "sqlite" in str(exc_info.value)


class TestFetchPublishedLegWaypoints:

    def test_published_only(self, store, seed_leg):
        published = seed_leg(name="Published")
        seed_leg(name="Draft", state="In planning")

        rows = store.fetch_published_leg_waypoints(limit=500)
        assert [r["id"] for r in rows] == [published.id]
        assert [w["index"] for w in rows[0]["waypoints"]] == [0, 1]

    def test_locations_decode(self, store, seed_leg):
        seed_leg(start=(2.63, 39.56), end=(1.43, 38.91))

        waypoints = store.fetch_published_leg_waypoints(limit=500)[0]["waypoints"]
        assert extract_coordinates(waypoints[0]["location"]) == pytest.approx((2.63, 39.56))
        assert extract_coordinates(waypoints[1]["location"]) == pytest.approx((1.43, 38.91))

    def test_limit(self, store, seed_leg):
        for i in range(4):
            seed_leg(name=f"Leg {i}")
        assert len(store.fetch_published_leg_waypoints(limit=2)) == 2


class TestQueryLegs:

    def test_row_shape(self, store, seed_leg):
        leg = seed_leg(name="Palma to Ibiza", skills=["navigation"], journey_risk_level=["Coastal sailing"])

        row = store.query_legs(LegQuery(leg_ids=[leg.id]))[0]
        assert row["name"] == "Palma to Ibiza"
        assert row["start_date"] == "2024-06-01"
        assert row["skills"] == ["navigation"]
        assert row["journey"]["risk_level"] == ["Coastal sailing"]
        assert row["journey"]["boat"]["make_model"] == "Beneteau Oceanis 40"
        assert [w["name"] for w in row["waypoints"]] == ["Palma", "Ibiza"]

    def test_nulls_last(self, store, seed_leg):
        seed_leg(name="Undated", start_date=None, end_date=None)
        seed_leg(name="March", start_date=date(2024, 3, 1))
        seed_leg(name="January", start_date=date(2024, 1, 1))

        rows = store.query_legs(LegQuery())
        assert [r["name"] for r in rows] == ["January", "March", "Undated"]

    def test_date_bounds(self, store, seed_leg):
        seed_leg(name="Early", start_date=date(2024, 5, 1), end_date=date(2024, 5, 5))
        seed_leg(name="Inside", start_date=date(2024, 6, 2), end_date=date(2024, 6, 6))
        seed_leg(name="Late", start_date=date(2024, 6, 28), end_date=date(2024, 7, 3))

        rows = store.query_legs(LegQuery(start_date="2024-06-01", end_date="2024-06-30"))
        assert [r["name"] for r in rows] == ["Inside"]

    def test_boat_filters(self, store, seed_leg):
        seed_leg(name="Cat", boat_type="Multihulls", make_model="Lagoon 42")
        seed_leg(name="Mono", make_model="Bavaria 37")

        assert [r["name"] for r in store.query_legs(LegQuery(boat_type="Multihulls"))] == ["Cat"]
        assert [r["name"] for r in store.query_legs(LegQuery(make_model="bavaria"))] == ["Mono"]

    def test_empty_id_list(self, store, seed_leg):
        seed_leg()
        assert store.query_legs(LegQuery(leg_ids=[])) == []

    def test_drafts_hidden(self, store, seed_leg):
        draft = seed_leg(state="In planning")
        assert store.query_legs(LegQuery(leg_ids=[draft.id])) == []

    def test_offset_and_limit(self, store, seed_leg):
        for day in range(1, 6):
            seed_leg(name=f"Day {day}", start_date=date(2024, 6, day))

        rows = store.query_legs(LegQuery(limit=2, offset=1))
        assert [r["name"] for r in rows] == ["Day 2", "Day 3"]

    def test_leg_to_row_without_waypoints(self, seed_leg):
        leg = seed_leg(start=None, end=None)
        assert leg_to_row(leg)["waypoints"] == []


class TestQueryLegDates:

    def test_only_legs_needing_crew(self, store, seed_leg):
        open_leg = seed_leg(start_date=date(2024, 8, 1), end_date=date(2024, 8, 10))
        full_leg = seed_leg(start_date=date(2024, 9, 1), crew_needed=0)

        rows = store.query_leg_dates([open_leg.id, full_leg.id])
        assert rows == [{"start_date": "2024-08-01", "end_date": "2024-08-10"}]

    def test_empty(self, store):
        assert store.query_leg_dates([]) == []


class TestSearchOverSqlite:
    """Full search path; both RPC tiers are skipped and the nested fetch runs."""

    def test_departure_and_arrival(self, store, seed_leg):
        seed_leg(name="Palma to Barcelona", start=(2.63, 39.56), end=(2.18, 41.38))
        seed_leg(name="Palma to Ibiza", start=(2.63, 39.56), end=(1.43, 38.91))

        service = LegSearchService(store, config=SearchConfig())
        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            arrival_bbox=CATALONIA,
        ))
        assert [leg.name for leg in result.legs] == ["Palma to Barcelona"]
        assert result.legs[0].departure_location == "Palma"

    def test_date_explanation(self, store, seed_leg):
        seed_leg(start_date=date(2024, 8, 1), end_date=date(2024, 8, 10))

        service = LegSearchService(store, config=SearchConfig())
        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=BALEARICS,
            departure_description="Balearic Islands",
            start_date="2024-01-01",
            end_date="2024-01-31",
        ))
        assert result.legs == []
        assert result.date_availability.spatial_match_count == 1
        assert "**Aug 1, 2024 to Aug 10, 2024**" in result.message
