"""
Sailing regions API router.

Lists the predefined sailing regions and resolves free-text place names
to a region bounding box.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.schemas.common import BoundingBoxModel
from api.schemas.regions import RegionListResponse, RegionLookupResponse, RegionModel
from legsearch.geo.regions import (
    SailingRegion,
    get_categories,
    list_regions,
    search_location,
    sort_regions_by_distance,
)

router = APIRouter(prefix="/api/regions", tags=["Regions"])


def _region_model(region: SailingRegion, distance_km: Optional[float] = None) -> RegionModel:
    return RegionModel(
        name=region.name,
        category=region.category,
        bbox=BoundingBoxModel.from_bbox(region.bbox),
        aliases=region.aliases,
        description=region.description,
        distance_km=round(distance_km, 1) if distance_km is not None else None,
    )


@router.get("", response_model=RegionListResponse)
def get_regions(
    category: Optional[str] = Query(None, description="Only regions in this category"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Sort by distance from this point"),
    lng: Optional[float] = Query(None, ge=-180, le=180),
):
    """List sailing regions, optionally filtered by category or sorted by distance."""
    categories = get_categories()
    if category and category not in categories:
        raise HTTPException(status_code=404, detail=f"Unknown region category: {category}")

    regions = list_regions(category)
    if lat is not None and lng is not None:
        models = [_region_model(r, d) for r, d in sort_regions_by_distance(lat, lng, regions)]
    else:
        models = [_region_model(r) for r in regions]

    return RegionListResponse(regions=models, count=len(models), categories=categories)


@router.get("/lookup", response_model=RegionLookupResponse)
def lookup_region(q: str = Query(..., min_length=2, description="Place name or sentence mentioning one")):
    """
    Resolve text such as "sailing around the Greek Islands" to a region.

    The longest matching name or alias wins; other matches are returned as
    alternatives.
    """
    matches = search_location(q)
    if not matches:
        return RegionLookupResponse(query=q)

    best, rest = matches[0], matches[1:]
    return RegionLookupResponse(
        query=q,
        match=_region_model(best.region),
        matched_on=best.matched_on,
        matched_term=best.matched_term,
        alternatives=[_region_model(m.region) for m in rest],
    )
