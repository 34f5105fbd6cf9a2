"""Sailing region API schemas."""

from typing import List, Optional

from pydantic import BaseModel

from api.schemas.common import BoundingBoxModel


class RegionModel(BaseModel):
    name: str
    category: str
    bbox: BoundingBoxModel
    aliases: List[str] = []
    description: Optional[str] = None
    distance_km: Optional[float] = None


class RegionListResponse(BaseModel):
    regions: List[RegionModel]
    count: int
    categories: List[str]


class RegionLookupResponse(BaseModel):
    query: str
    match: Optional[RegionModel] = None
    matched_on: Optional[str] = None
    matched_term: Optional[str] = None
    alternatives: List[RegionModel] = []
