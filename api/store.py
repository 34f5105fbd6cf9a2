"""
SQLAlchemy implementation of the leg store.

Tabular queries go through the ORM. The two spatial RPCs are PostgreSQL
functions created by the Alembic migration; on any other dialect they are
reported as unavailable so the search falls back to in-process matching.
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, selectinload

from api.models import Boat, Journey, Leg, Waypoint
from legsearch.errors import StoreError, StoreUnavailableError
from legsearch.geo.bbox import BoundingBox, encode_point
from legsearch.store import PUBLISHED_STATE, LegQuery, LegStore, Row, WaypointCoord

logger = logging.getLogger(__name__)

FIND_LEGS_BY_LOCATION_SQL = text(
    "SELECT id FROM find_legs_by_location("
    ":departure_min_lng, :departure_min_lat, :departure_max_lng, :departure_max_lat, "
    ":arrival_min_lng, :arrival_min_lat, :arrival_max_lng, :arrival_max_lat)"
)

WAYPOINT_COORDS_SQL = text(
    "SELECT leg_id, waypoint_index, lng, lat FROM get_waypoints_coords_for_bbox_search()"
)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def leg_to_row(leg: Leg) -> Row:
    """Serialize a Leg with its journey, boat and waypoints to a store row."""
    journey = leg.journey
    boat = journey.boat if journey else None

    waypoints = [
        {"index": wp.index, "name": wp.name, "location": wp.location}
        for wp in sorted(leg.waypoints, key=lambda w: w.index)
    ]

    return {
        "id": leg.id,
        "name": leg.name,
        "description": leg.description,
        "start_date": _iso(leg.start_date),
        "end_date": _iso(leg.end_date),
        "crew_needed": leg.crew_needed,
        "skills": list(leg.skills or []),
        "risk_level": leg.risk_level,
        "min_experience_level": leg.min_experience_level,
        "journey": {
            "id": journey.id,
            "name": journey.name,
            "state": journey.state,
            "skills": list(journey.skills or []),
            "risk_level": list(journey.risk_level or []),
            "min_experience_level": journey.min_experience_level,
            "images": list(journey.images or []),
            "boat": {
                "id": boat.id,
                "name": boat.name,
                "type": boat.type,
                "make_model": boat.make_model,
                "images": list(boat.images or []),
            } if boat else None,
        } if journey else None,
        "waypoints": waypoints,
    }


class SqlAlchemyLegStore(LegStore):
    """LegStore over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _require_postgres(self, operation: str):
        dialect = self.db.get_bind().dialect.name
        if dialect != "postgresql":
            raise StoreUnavailableError(
                f"{operation} requires PostgreSQL, not {dialect}", operation=operation
            )

    def find_legs_by_location(self, departure: BoundingBox, arrival: BoundingBox) -> List[str]:
        self._require_postgres("find_legs_by_location")
        params = {
            "departure_min_lng": departure.min_lng,
            "departure_min_lat": departure.min_lat,
            "departure_max_lng": departure.max_lng,
            "departure_max_lat": departure.max_lat,
            "arrival_min_lng": arrival.min_lng,
            "arrival_min_lat": arrival.min_lat,
            "arrival_max_lng": arrival.max_lng,
            "arrival_max_lat": arrival.max_lat,
        }
        try:
            # Savepoint so a failed RPC leaves the session usable for the fallbacks
            with self.db.begin_nested():
                return [str(row_id) for row_id in self.db.execute(FIND_LEGS_BY_LOCATION_SQL, params).scalars()]
        except SQLAlchemyError as e:
            raise StoreError(f"find_legs_by_location failed: {e}", operation="find_legs_by_location") from e

    def get_waypoint_coords(self) -> List[WaypointCoord]:
        self._require_postgres("get_waypoints_coords_for_bbox_search")
        try:
            with self.db.begin_nested():
                rows = self.db.execute(WAYPOINT_COORDS_SQL).all()
        except SQLAlchemyError as e:
            raise StoreError(
                f"get_waypoints_coords_for_bbox_search failed: {e}",
                operation="get_waypoints_coords_for_bbox_search",
            ) from e

        return [
            WaypointCoord(
                leg_id=str(row.leg_id),
                waypoint_index=row.waypoint_index,
                lng=float(row.lng) if row.lng is not None else None,
                lat=float(row.lat) if row.lat is not None else None,
            )
            for row in rows
        ]

    def fetch_published_leg_waypoints(self, limit: int) -> List[Row]:
        stmt = (
            select(Leg)
            .join(Leg.journey)
            .where(Journey.state == PUBLISHED_STATE)
            .options(selectinload(Leg.waypoints))
            .order_by(Leg.id)
            .limit(limit)
        )
        try:
            legs = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Waypoint fetch failed: {e}", operation="fetch_published_leg_waypoints") from e

        return [
            {
                "id": leg.id,
                "waypoints": [{"index": wp.index, "location": wp.location} for wp in leg.waypoints],
            }
            for leg in legs
        ]

    def query_legs(self, query: LegQuery) -> List[Row]:
        stmt = (
            select(Leg)
            .join(Leg.journey)
            .join(Journey.boat)
            .where(Journey.state == PUBLISHED_STATE)
            .options(
                contains_eager(Leg.journey).contains_eager(Journey.boat),
                selectinload(Leg.waypoints),
            )
        )

        if query.leg_ids is not None:
            if not query.leg_ids:
                return []
            stmt = stmt.where(Leg.id.in_(query.leg_ids))
        if query.journey_id:
            stmt = stmt.where(Leg.journey_id == query.journey_id)
        if query.start_date:
            stmt = stmt.where(Leg.start_date >= _parse_date(query.start_date))
        if query.end_date:
            stmt = stmt.where(Leg.end_date <= _parse_date(query.end_date))
        if query.boat_type:
            stmt = stmt.where(Boat.type == query.boat_type)
        if query.make_model:
            stmt = stmt.where(Boat.make_model.ilike(f"%{query.make_model}%"))

        # Ascending start date, nulls last; id keeps ties deterministic
        stmt = (
            stmt.order_by(Leg.start_date.is_(None), Leg.start_date.asc(), Leg.id)
            .offset(query.offset)
            .limit(query.limit)
        )

        try:
            legs = self.db.execute(stmt).unique().scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Leg query failed: {e}", operation="query_legs") from e

        logger.debug(f"query_legs returned {len(legs)} rows (limit={query.limit}, offset={query.offset})")

        return [leg_to_row(leg) for leg in legs]

    def query_leg_dates(self, leg_ids: List[str]) -> List[Row]:
        if not leg_ids:
            return []

        stmt = (
            select(Leg.start_date, Leg.end_date)
            .join(Leg.journey)
            .where(
                Leg.id.in_(leg_ids),
                Journey.state == PUBLISHED_STATE,
                Leg.crew_needed > 0,
            )
            .order_by(Leg.start_date.is_(None), Leg.start_date.asc())
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Leg date query failed: {e}", operation="query_leg_dates") from e

        return [{"start_date": _iso(row.start_date), "end_date": _iso(row.end_date)} for row in rows]


def add_waypoint(leg: Leg, index: int, lng: float, lat: float, name: Optional[str] = None) -> Waypoint:
    """Attach a waypoint stored as hex EWKB."""
    waypoint = Waypoint(index=index, name=name, location=encode_point(lng, lat))
    leg.waypoints.append(waypoint)
    return waypoint
