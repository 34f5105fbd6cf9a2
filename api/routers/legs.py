"""
Leg search API router.

Handles tabular and geographic leg search, region browsing and
single-leg details. Only legs of published journeys are ever returned.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.database import get_db
from api.middleware import structured_logger
from api.schemas.legs import (
    LegModel,
    LegSearchResponse,
    LocationSearchRequest,
    RegionLegsResponse,
)
from api.store import SqlAlchemyLegStore
from legsearch.config import get_settings
from legsearch.geo.bbox import BoundingBox
from legsearch.legs import BOAT_TYPES, RISK_LEVELS
from legsearch.search import LegSearchOptions, LegSearchResult, LegSearchService

router = APIRouter(prefix="/api/legs", tags=["Legs"])

logger = logging.getLogger(__name__)


def get_search_service(db: Session = Depends(get_db)) -> LegSearchService:
    """FastAPI dependency building a search service over the request's session."""
    return LegSearchService(SqlAlchemyLegStore(db), config=get_settings(), logger=logger)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _to_response(result: LegSearchResult) -> LegSearchResponse:
    return LegSearchResponse.model_validate(result.to_dict())


def _check_vocabulary(options: LegSearchOptions):
    """Reject risk levels and boat types outside the fixed vocabularies."""
    unknown_risk = [r for r in options.risk_levels + [options.risk_level] if r and r not in RISK_LEVELS]
    if unknown_risk:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown risk level(s) {unknown_risk}; expected one of {list(RISK_LEVELS)}",
        )
    if options.boat_type and options.boat_type not in BOAT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown boat type {options.boat_type!r}; expected one of {list(BOAT_TYPES)}",
        )


@router.get("/search", response_model=LegSearchResponse)
def search_legs(
    start_date: Optional[date] = Query(None, description="Legs starting on or after this date"),
    end_date: Optional[date] = Query(None, description="Legs ending on or before this date"),
    location: Optional[str] = Query(None, description="Text matched against departure, arrival, journey and leg names"),
    journey_id: Optional[str] = None,
    risk_level: Optional[str] = Query(None, description="Exact effective risk level"),
    risk_levels: Optional[str] = Query(None, description="Comma-separated allowed risk levels"),
    min_experience_level: Optional[int] = Query(None, ge=1, le=4, description="User's experience level"),
    skills: Optional[str] = Query(None, description="Comma-separated required skills"),
    boat_type: Optional[str] = None,
    make_model: Optional[str] = None,
    crew_needed: bool = True,
    limit: int = Query(10, ge=1, le=50),
    service: LegSearchService = Depends(get_search_service),
):
    """
    Search published legs without a geographic area.

    Results are ordered by start date, legs without one last.
    """
    options = LegSearchOptions(
        start_date=_iso(start_date),
        end_date=_iso(end_date),
        location_query=location,
        journey_id=journey_id,
        risk_level=risk_level,
        risk_levels=risk_levels,
        min_experience_level=min_experience_level,
        skills_required=skills,
        boat_type=boat_type,
        make_model=make_model,
        crew_needed=crew_needed,
        limit=limit,
    )
    _check_vocabulary(options)
    result = service.search_published_legs(options)
    structured_logger.search(
        "published",
        result.count,
        start_date=options.start_date,
        end_date=options.end_date,
        location=location,
        skills=options.skills_required,
    )
    return _to_response(result)


@router.post("/search-by-location", response_model=LegSearchResponse)
def search_legs_by_location(
    request: LocationSearchRequest,
    service: LegSearchService = Depends(get_search_service),
):
    """
    Search published legs starting and/or ending inside bounding boxes.

    An empty result comes with a message. When legs exist in the area but
    not in the requested dates, date_availability says when they sail.
    """
    options = LegSearchOptions(
        departure_bbox=request.departure_bbox.to_bbox() if request.departure_bbox else None,
        arrival_bbox=request.arrival_bbox.to_bbox() if request.arrival_bbox else None,
        departure_description=request.departure_description,
        arrival_description=request.arrival_description,
        start_date=_iso(request.start_date),
        end_date=_iso(request.end_date),
        risk_levels=request.risk_levels,
        min_experience_level=request.min_experience_level,
        skills_required=request.skills_required,
        boat_type=request.boat_type,
        make_model=request.make_model,
        crew_needed=request.crew_needed,
        limit=request.limit,
    )
    _check_vocabulary(options)
    result = service.search_legs_by_bbox(options)
    structured_logger.search(
        "bbox",
        result.count,
        departure=options.departure_bbox,
        arrival=options.arrival_bbox,
        start_date=options.start_date,
        end_date=options.end_date,
        date_mismatch=result.date_availability is not None,
    )
    return _to_response(result)


@router.get("/by-region", response_model=RegionLegsResponse)
def legs_by_region(
    min_lng: float = Query(..., ge=-180, le=180),
    min_lat: float = Query(..., ge=-90, le=90),
    max_lng: float = Query(..., ge=-180, le=180),
    max_lat: float = Query(..., ge=-90, le=90),
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    service: LegSearchService = Depends(get_search_service),
):
    """Page through legs that depart inside a region's bounding box."""
    if min_lng > max_lng or min_lat > max_lat:
        raise HTTPException(status_code=400, detail="Invalid coordinates: min bounds exceed max bounds")

    bbox = BoundingBox(min_lng, min_lat, max_lng, max_lat)
    legs, total = service.legs_departing_in(bbox, limit=limit, offset=offset)

    return RegionLegsResponse(
        legs=[LegModel.model_validate(leg.to_dict()) for leg in legs],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )


@router.get("/{leg_id}", response_model=LegModel)
def get_leg(leg_id: str, service: LegSearchService = Depends(get_search_service)):
    """Get a single published leg with effective requirements."""
    leg = service.get_leg(leg_id)
    if leg is None:
        raise HTTPException(status_code=404, detail=f"Leg not found: {leg_id}")
    return LegModel.model_validate(leg.to_dict())
