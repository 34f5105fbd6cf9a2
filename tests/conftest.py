"""
Shared pytest fixtures for SailSmart leg search tests.

Environment variables are set before any api.* import so the engine in
api.database is created against an in-memory SQLite database.
"""

import os
from collections import Counter
from datetime import date

import pytest
from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY api.* imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_ECHO", "false")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from api.database import Base, get_db, engine as test_engine  # noqa: E402
import api.models  # noqa: E402,F401  ensure all ORM models are registered
from legsearch.errors import StoreError, StoreUnavailableError  # noqa: E402
from legsearch.geo.bbox import encode_point, extract_coordinates, is_point_in_bbox  # noqa: E402
from legsearch.store import PUBLISHED_STATE, LegStore, WaypointCoord  # noqa: E402

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine
)
Base.metadata.create_all(bind=test_engine)

# ---------------------------------------------------------------------------
# Section 2: Core database + client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """Create a test database session with transaction isolation."""
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db):
    """Create a FastAPI TestClient with database dependency override."""
    from api.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Section 3: ORM seed helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def seed_leg(db):
    """
    Factory inserting a leg with its own journey and boat.

    Usage:
        leg = seed_leg(name="Palma to Ibiza", start=(2.6, 39.5), end=(1.4, 38.9))
    """
    from api.models import Boat, Journey, Leg
    from api.store import add_waypoint

    def _seed(
        name="Test leg",
        start=(2.6, 39.5),
        end=(1.4, 38.9),
        start_date=date(2024, 6, 1),
        end_date=date(2024, 6, 5),
        crew_needed=2,
        skills=None,
        risk_level=None,
        min_experience_level=None,
        state=PUBLISHED_STATE,
        journey_skills=None,
        journey_risk_level=None,
        journey_min_experience_level=None,
        boat_type="Coastal cruisers",
        make_model="Beneteau Oceanis 40",
        start_name="Palma",
        end_name="Ibiza",
    ):
        boat = Boat(name=f"{name} boat", type=boat_type, make_model=make_model, images=[])
        journey = Journey(
            boat=boat,
            name=f"{name} journey",
            state=state,
            skills=journey_skills or [],
            risk_level=journey_risk_level or [],
            min_experience_level=journey_min_experience_level,
            images=[],
        )
        leg = Leg(
            journey=journey,
            name=name,
            start_date=start_date,
            end_date=end_date,
            crew_needed=crew_needed,
            skills=skills or [],
            risk_level=risk_level,
            min_experience_level=min_experience_level,
        )
        if start is not None:
            add_waypoint(leg, 0, start[0], start[1], start_name)
        if end is not None:
            add_waypoint(leg, 1, end[0], end[1], end_name)

        db.add_all([boat, journey, leg])
        db.flush()
        return leg

    return _seed


# ---------------------------------------------------------------------------
# Section 4: In-memory leg store
# ---------------------------------------------------------------------------


class FakeLegStore(LegStore):
    """
    LegStore over plain dict rows, counting calls per operation.

    Operations listed in ``failing`` raise StoreError; those in
    ``unavailable`` raise StoreUnavailableError.
    """

    def __init__(self):
        self.rows = []
        self.calls = Counter()
        self.failing = set()
        self.unavailable = set()

    def _enter(self, operation):
        self.calls[operation] += 1
        if operation in self.unavailable:
            raise StoreUnavailableError(f"{operation} missing", operation=operation)
        if operation in self.failing:
            raise StoreError(f"{operation} failed", operation=operation)

    def add_leg(
        self,
        leg_id,
        start=None,
        end=None,
        start_date=None,
        end_date=None,
        crew_needed=1,
        skills=(),
        risk_level=None,
        min_experience_level=None,
        state=PUBLISHED_STATE,
        journey_skills=(),
        journey_risk_level=(),
        journey_min_experience_level=None,
        boat_type="Coastal cruisers",
        make_model="Beneteau Oceanis 40",
        name=None,
        waypoints=None,
    ):
        if waypoints is None:
            waypoints = []
            if start is not None:
                waypoints.append({"index": 0, "name": f"{leg_id} start", "location": encode_point(*start)})
            if end is not None:
                waypoints.append({"index": 1, "name": f"{leg_id} end", "location": encode_point(*end)})

        row = {
            "id": leg_id,
            "name": name or f"Leg {leg_id}",
            "description": None,
            "start_date": start_date,
            "end_date": end_date,
            "crew_needed": crew_needed,
            "skills": list(skills),
            "risk_level": risk_level,
            "min_experience_level": min_experience_level,
            "journey": {
                "id": f"journey-{leg_id}",
                "name": f"Journey {leg_id}",
                "state": state,
                "skills": list(journey_skills),
                "risk_level": list(journey_risk_level),
                "min_experience_level": journey_min_experience_level,
                "images": [],
                "boat": {
                    "id": f"boat-{leg_id}",
                    "name": f"Boat {leg_id}",
                    "type": boat_type,
                    "make_model": make_model,
                    "images": [],
                },
            },
            "waypoints": waypoints,
        }
        self.rows.append(row)
        return row

    def _published(self):
        return [r for r in self.rows if r["journey"]["state"] == PUBLISHED_STATE]

    @staticmethod
    def _endpoints(row):
        by_index = {w["index"]: w for w in row["waypoints"]}
        if not by_index:
            return None, None
        start = by_index.get(0)
        end = by_index[max(by_index)]
        return (
            extract_coordinates(start["location"]) if start else None,
            extract_coordinates(end["location"]),
        )

    def find_legs_by_location(self, departure, arrival):
        self._enter("find_legs_by_location")
        matched = []
        for row in self._published():
            start, end = self._endpoints(row)
            if start and end and is_point_in_bbox(*start, departure) and is_point_in_bbox(*end, arrival):
                matched.append(row["id"])
        return matched

    def get_waypoint_coords(self):
        self._enter("get_waypoint_coords")
        coords = []
        for row in self._published():
            for w in row["waypoints"]:
                if w.get("index") is None:
                    continue
                point = extract_coordinates(w["location"]) or (None, None)
                coords.append(WaypointCoord(row["id"], w["index"], point[0], point[1]))
        return coords

    def fetch_published_leg_waypoints(self, limit):
        self._enter("fetch_published_leg_waypoints")
        return [
            {"id": r["id"], "waypoints": [{"index": w["index"], "location": w["location"]} for w in r["waypoints"]]}
            for r in self._published()[:limit]
        ]

    def query_legs(self, query):
        self._enter("query_legs")
        rows = self._published()
        if query.leg_ids is not None:
            rows = [r for r in rows if r["id"] in query.leg_ids]
        if query.journey_id:
            rows = [r for r in rows if r["journey"]["id"] == query.journey_id]
        if query.start_date:
            rows = [r for r in rows if r["start_date"] and r["start_date"] >= query.start_date]
        if query.end_date:
            rows = [r for r in rows if r["end_date"] and r["end_date"] <= query.end_date]
        if query.boat_type:
            rows = [r for r in rows if r["journey"]["boat"]["type"] == query.boat_type]
        if query.make_model:
            needle = query.make_model.lower()
            rows = [r for r in rows if needle in (r["journey"]["boat"]["make_model"] or "").lower()]
        rows = sorted(rows, key=lambda r: (r["start_date"] is None, r["start_date"] or ""))
        return rows[query.offset:query.offset + query.limit]

    def query_leg_dates(self, leg_ids):
        self._enter("query_leg_dates")
        return [
            {"start_date": r["start_date"], "end_date": r["end_date"]}
            for r in self._published()
            if r["id"] in leg_ids and (r["crew_needed"] or 0) > 0
        ]


@pytest.fixture
def fake_store():
    """Empty FakeLegStore."""
    return FakeLegStore()
