"""
SailSmart leg search.

Bounding-box leg matching, a published-leg query/filter pipeline and a
date-availability explainer, written against an abstract LegStore.
"""

from .config import SearchConfig, get_settings
from .errors import (
    InvalidSearchAreaError,
    LegSearchError,
    StoreError,
    StoreUnavailableError,
    StrategyUnavailableError,
)
from .geo.bbox import BoundingBox, is_point_in_bbox, is_valid_bbox
from .legs import EffectiveFields, FormattedLeg, format_leg, merge_effective_fields, transform_leg
from .search import DateAvailabilityInfo, LegSearchOptions, LegSearchResult, LegSearchService
from .spatial import (
    DEFAULT_STRATEGIES,
    LocationRpcStrategy,
    NestedWaypointFetchStrategy,
    SpatialStrategy,
    WaypointCoordsRpcStrategy,
    find_legs_in_bbox,
)
from .store import PUBLISHED_STATE, LegQuery, LegStore, WaypointCoord

__version__ = "0.1.0"

__all__ = [
    "SearchConfig",
    "get_settings",
    "LegSearchError",
    "InvalidSearchAreaError",
    "StoreError",
    "StoreUnavailableError",
    "StrategyUnavailableError",
    "BoundingBox",
    "is_point_in_bbox",
    "is_valid_bbox",
    "EffectiveFields",
    "FormattedLeg",
    "format_leg",
    "merge_effective_fields",
    "transform_leg",
    "DateAvailabilityInfo",
    "LegSearchOptions",
    "LegSearchResult",
    "LegSearchService",
    "DEFAULT_STRATEGIES",
    "SpatialStrategy",
    "LocationRpcStrategy",
    "WaypointCoordsRpcStrategy",
    "NestedWaypointFetchStrategy",
    "find_legs_in_bbox",
    "PUBLISHED_STATE",
    "LegQuery",
    "LegStore",
    "WaypointCoord",
]
