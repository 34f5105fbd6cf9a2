"""
Bounding-box leg matching.

A leg matches when its first waypoint (index 0) lies inside the departure box
and its last waypoint (highest index) lies inside the arrival box. Either box
may be omitted, but not both.

Matching is attempted with an ordered chain of strategies:

1. LocationRpcStrategy - server-side containment on both endpoints
2. WaypointCoordsRpcStrategy - server-decoded coordinates, tested here
3. NestedWaypointFetchStrategy - raw geometry, decoded and tested here

The first strategy that completes wins. A strategy that fails with a store
error, or declares itself unavailable for the inputs, hands over to the next.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidSearchAreaError, StoreError, StrategyUnavailableError
from .geo.bbox import BoundingBox, extract_coordinates, is_point_in_bbox
from .store import LegStore

logger = logging.getLogger(__name__)

Coord = Optional[Tuple[float, float]]


def endpoints_match(
    start: Coord,
    end: Coord,
    departure: Optional[BoundingBox],
    arrival: Optional[BoundingBox],
) -> bool:
    """
    Test leg endpoints against the requested boxes.

    A missing endpoint never matches a side that was requested.
    """
    if departure is not None:
        if start is None or not is_point_in_bbox(start[0], start[1], departure):
            return False
    if arrival is not None:
        if end is None or not is_point_in_bbox(end[0], end[1], arrival):
            return False
    return True


class SpatialStrategy:
    """One way of answering a bounding-box leg query."""

    name = "base"

    def find(
        self,
        store: LegStore,
        departure: Optional[BoundingBox],
        arrival: Optional[BoundingBox],
        raw_fetch_limit: int,
    ) -> List[str]:
        raise NotImplementedError


class LocationRpcStrategy(SpatialStrategy):
    """Delegate both containment tests to the store's location RPC."""

    name = "location_rpc"

    def find(self, store, departure, arrival, raw_fetch_limit):
        if departure is None or arrival is None:
            raise StrategyUnavailableError("location RPC needs both departure and arrival boxes")
        return list(store.find_legs_by_location(departure, arrival))


class WaypointCoordsRpcStrategy(SpatialStrategy):
    """Fetch decoded waypoint coordinates and test endpoints in process."""

    name = "waypoint_coords_rpc"

    def find(self, store, departure, arrival, raw_fetch_limit):
        by_leg: Dict[str, Dict[int, Coord]] = defaultdict(dict)
        for row in store.get_waypoint_coords():
            # A waypoint without a location still counts when picking the last index
            point = (row.lng, row.lat) if row.lng is not None and row.lat is not None else None
            by_leg[row.leg_id][row.waypoint_index] = point

        matched = []
        for leg_id, points in by_leg.items():
            start = points.get(0)
            end = points[max(points)]
            if endpoints_match(start, end, departure, arrival):
                matched.append(leg_id)
        return matched


class NestedWaypointFetchStrategy(SpatialStrategy):
    """Fetch published legs with raw waypoint geometry and decode it here."""

    name = "nested_waypoint_fetch"

    def find(self, store, departure, arrival, raw_fetch_limit):
        matched = []
        for leg in store.fetch_published_leg_waypoints(raw_fetch_limit):
            waypoints = leg.get("waypoints") or []
            if not waypoints:
                continue

            by_index = {w.get("index"): w for w in waypoints if w.get("index") is not None}
            if not by_index:
                continue

            start_wp = by_index.get(0)
            end_wp = by_index[max(by_index)]
            start = extract_coordinates(start_wp.get("location")) if start_wp else None
            end = extract_coordinates(end_wp.get("location"))

            if endpoints_match(start, end, departure, arrival):
                matched.append(leg["id"])
        return matched


DEFAULT_STRATEGIES: Sequence[SpatialStrategy] = (
    LocationRpcStrategy(),
    WaypointCoordsRpcStrategy(),
    NestedWaypointFetchStrategy(),
)


def find_legs_in_bbox(
    store: LegStore,
    departure: Optional[BoundingBox] = None,
    arrival: Optional[BoundingBox] = None,
    strategies: Optional[Iterable[SpatialStrategy]] = None,
    log: Optional[logging.Logger] = None,
    raw_fetch_limit: int = 500,
) -> List[str]:
    """
    Return ids of legs whose endpoints fall inside the given boxes.

    Raises:
        InvalidSearchAreaError: neither box was supplied
        StoreError: every strategy failed; the last store error is re-raised
    """
    log = log or logger
    if departure is None and arrival is None:
        raise InvalidSearchAreaError("At least one of departure or arrival bbox must be provided")

    last_error: Optional[StoreError] = None
    for strategy in (strategies if strategies is not None else DEFAULT_STRATEGIES):
        try:
            leg_ids = strategy.find(store, departure, arrival, raw_fetch_limit)
        except StrategyUnavailableError as e:
            log.debug(f"Spatial strategy {strategy.name} skipped: {e}")
            continue
        except StoreError as e:
            log.warning(f"Spatial strategy {strategy.name} failed, trying next: {e}")
            last_error = e
            continue

        log.debug(f"Spatial strategy {strategy.name} matched {len(leg_ids)} legs")
        return leg_ids

    if last_error is not None:
        raise last_error
    raise StoreError("No spatial strategy could run", operation="find_legs_in_bbox")
