"""Geographic helpers: bounding boxes and named sailing regions."""

from .bbox import (
    BoundingBox,
    NormalizedBboxArgs,
    describe_bbox,
    encode_point,
    extract_coordinates,
    is_point_in_bbox,
    is_valid_bbox,
    normalize_bbox_args,
)
from .regions import (
    LocationMatch,
    SailingRegion,
    get_location_bbox,
    list_regions,
    search_location,
)

__all__ = [
    'BoundingBox',
    'NormalizedBboxArgs',
    'describe_bbox',
    'encode_point',
    'extract_coordinates',
    'is_point_in_bbox',
    'is_valid_bbox',
    'normalize_bbox_args',
    'LocationMatch',
    'SailingRegion',
    'get_location_bbox',
    'list_regions',
    'search_location',
]
