"""Common shared schemas used across multiple domains."""

from typing import Optional

from pydantic import BaseModel

from legsearch.geo.bbox import BoundingBox


class BoundingBoxModel(BaseModel):
    """
    Longitude/latitude rectangle, inclusive on every edge.

    Bounds are not range-checked here: the search service rejects invalid
    boxes with an explanatory message instead of a validation error.
    """
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def to_bbox(self) -> BoundingBox:
        return BoundingBox(self.min_lng, self.min_lat, self.max_lng, self.max_lat)

    @classmethod
    def from_bbox(cls, bbox: BoundingBox) -> "BoundingBoxModel":
        return cls(
            min_lng=bbox.min_lng,
            min_lat=bbox.min_lat,
            max_lng=bbox.max_lng,
            max_lat=bbox.max_lat,
        )


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None
