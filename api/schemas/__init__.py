"""
SailSmart API Pydantic schemas.

Re-exports all schema classes:
    from api.schemas import LegSearchResponse, RegionModel, ...
"""

# Common
from .common import BoundingBoxModel, ErrorResponse  # noqa: F401

# Legs
from .legs import (  # noqa: F401
    LegModel,
    DateAvailabilityModel,
    LegSearchResponse,
    LocationSearchRequest,
    RegionLegsResponse,
)

# Regions
from .regions import RegionModel, RegionListResponse, RegionLookupResponse  # noqa: F401
