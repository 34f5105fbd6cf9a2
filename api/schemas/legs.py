"""Leg search API schemas."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from api.schemas.common import BoundingBoxModel
from legsearch.geo.bbox import normalize_bbox_args

# Argument names used by assistant tool calls
TOOL_CALL_KEYS = (
    "departureBbox",
    "arrivalBbox",
    "departureDescription",
    "arrivalDescription",
    "minLng",
    "minLat",
    "maxLng",
    "maxLat",
)


class LegModel(BaseModel):
    """A published leg with its journey requirements merged in."""
    id: str
    name: Optional[str] = None
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
    journey_images: List[str] = []
    boat_images: List[str] = []
    combined_skills: List[str] = []
    effective_risk_levels: List[str] = []
    effective_min_experience_level: Optional[int] = None


class DateAvailabilityModel(BaseModel):
    spatial_match_count: int
    earliest_date: str
    latest_date: str
    searched_start_date: str = ""
    searched_end_date: str = ""


class LegSearchResponse(BaseModel):
    """Search hits plus what was searched and, if nothing matched, why."""
    legs: List[LegModel]
    count: int
    searched_departure: Optional[str] = None
    searched_arrival: Optional[str] = None
    departure_area: Optional[str] = None
    arrival_area: Optional[str] = None
    message: Optional[str] = None
    date_availability: Optional[DateAvailabilityModel] = None


class LocationSearchRequest(BaseModel):
    """Geographic leg search. At least one of the two boxes is required."""
    departure_bbox: Optional[BoundingBoxModel] = None
    arrival_bbox: Optional[BoundingBoxModel] = None
    departure_description: Optional[str] = None
    arrival_description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    risk_levels: List[str] = []
    min_experience_level: Optional[int] = Field(None, ge=1, le=4)
    skills_required: List[str] = []
    boat_type: Optional[str] = None
    make_model: Optional[str] = None
    crew_needed: bool = True
    limit: int = Field(10, ge=1, le=50)

    @model_validator(mode="before")
    @classmethod
    def accept_tool_call_arguments(cls, data):
        """
        Also accept the loose shapes assistant tool calls send: camelCase
        boxes, boxes as JSON strings, numeric strings or flat bounds at the
        root. Boxes that cannot be recovered are dropped.
        """
        if not isinstance(data, dict) or not any(key in data for key in TOOL_CALL_KEYS):
            return data

        normalized = normalize_bbox_args(data)
        data = {k: v for k, v in data.items() if k not in TOOL_CALL_KEYS}
        if normalized.departure_bbox is not None:
            data["departure_bbox"] = BoundingBoxModel.from_bbox(normalized.departure_bbox)
        if normalized.arrival_bbox is not None:
            data["arrival_bbox"] = BoundingBoxModel.from_bbox(normalized.arrival_bbox)
        if normalized.departure_description:
            data.setdefault("departure_description", normalized.departure_description)
        if normalized.arrival_description:
            data.setdefault("arrival_description", normalized.arrival_description)
        return data


class RegionLegsResponse(BaseModel):
    """One page of legs departing inside a region."""
    legs: List[LegModel]
    total: int
    limit: int
    offset: int
    has_more: bool
