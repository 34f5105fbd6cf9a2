"""
Read interface to the external leg store.

The search pipeline never talks to a database directly. It goes through a
LegStore, which exposes the two spatial RPCs and the tabular queries the
hosted backend provides. Implementations raise StoreError (or
StoreUnavailableError for an operation the backend does not offer).

Row shapes returned by query_legs:

    {
        "id": str, "name": str, "description": str | None,
        "start_date": "YYYY-MM-DD" | None, "end_date": "YYYY-MM-DD" | None,
        "crew_needed": int | None, "skills": [str],
        "risk_level": str | None, "min_experience_level": int | None,
        "journey": {
            "id", "name", "state", "skills", "risk_level": [str],
            "min_experience_level", "images": [str],
            "boat": {"id", "name", "type", "make_model", "images": [str]},
        },
        "waypoints": [{"index": int, "name": str | None, "location": ...}],
    }
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .geo.bbox import BoundingBox

PUBLISHED_STATE = "Published"

Row = Dict[str, Any]


@dataclass(frozen=True)
class WaypointCoord:
    """One row of the waypoint-coordinates RPC. lng/lat are None for a waypoint without a location."""
    leg_id: str
    waypoint_index: int
    lng: Optional[float]
    lat: Optional[float]


@dataclass
class LegQuery:
    """Remote filters for a tabular leg query. Only published legs are returned."""
    leg_ids: Optional[List[str]] = None
    journey_id: Optional[str] = None
    start_date: Optional[str] = None  # start_date >= this
    end_date: Optional[str] = None  # end_date <= this
    boat_type: Optional[str] = None
    make_model: Optional[str] = None  # case-insensitive substring
    limit: int = 50
    offset: int = 0


class LegStore(ABC):
    """Backend operations used by the search pipeline."""

    @abstractmethod
    def find_legs_by_location(
        self, departure: BoundingBox, arrival: BoundingBox
    ) -> List[str]:
        """Server-side containment test on start and end waypoints; returns leg ids."""

    @abstractmethod
    def get_waypoint_coords(self) -> List[WaypointCoord]:
        """Decoded waypoint coordinates for every published leg."""

    @abstractmethod
    def fetch_published_leg_waypoints(self, limit: int) -> List[Row]:
        """Published legs as {"id", "waypoints": [{"index", "location"}]}, geometry still encoded."""

    @abstractmethod
    def query_legs(self, query: LegQuery) -> List[Row]:
        """Fully joined legs, ascending by start date with nulls last."""

    @abstractmethod
    def query_leg_dates(self, leg_ids: List[str]) -> List[Row]:
        """{"start_date", "end_date"} of the given published legs that still need crew."""
