"""
Geographic bounding boxes for leg search.

Covers:
- BoundingBox value type and validation
- Inclusive point-in-box containment
- Normalization of loosely shaped tool-call arguments into boxes
- Coordinate extraction from waypoint geometry payloads
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from shapely import wkb, wkt
from shapely.errors import ShapelyError
from shapely.geometry import Point

logger = logging.getLogger(__name__)

# SRID used for all stored waypoint geometries (WGS84)
WGS84_SRID = 4326

# Roughly 111 km per degree of latitude
KM_PER_DEGREE = 111.0

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned longitude/latitude rectangle."""
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional["BoundingBox"]:
        """
        Build a box from camelCase or snake_case keys.

        Numeric strings are accepted. Returns None when any bound is missing
        or cannot be read as a number.
        """
        values = []
        for camel, snake in (
            ("minLng", "min_lng"),
            ("minLat", "min_lat"),
            ("maxLng", "max_lng"),
            ("maxLat", "max_lat"),
        ):
            value = _to_number(data.get(camel, data.get(snake)))
            if value is None:
                return None
            values.append(value)
        return cls(*values)

    def to_dict(self) -> dict:
        return {
            "minLng": self.min_lng,
            "minLat": self.min_lat,
            "maxLng": self.max_lng,
            "maxLat": self.max_lat,
        }


@dataclass
class NormalizedBboxArgs:
    """Bounding boxes and descriptions recovered from tool-call arguments."""
    departure_bbox: Optional[BoundingBox] = None
    arrival_bbox: Optional[BoundingBox] = None
    departure_description: Optional[str] = None
    arrival_description: Optional[str] = None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _is_real(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def is_valid_bbox(bbox: BoundingBox) -> bool:
    """
    Check that a box has finite, in-range, correctly ordered bounds.

    Longitudes must lie in [-180, 180], latitudes in [-90, 90], and each
    minimum must not exceed its maximum.
    """
    bounds = (bbox.min_lng, bbox.min_lat, bbox.max_lng, bbox.max_lat)
    if not all(_is_real(v) for v in bounds):
        return False

    if not (-180 <= bbox.min_lng <= 180 and -180 <= bbox.max_lng <= 180):
        return False
    if not (-90 <= bbox.min_lat <= 90 and -90 <= bbox.max_lat <= 90):
        return False

    return bbox.min_lng <= bbox.max_lng and bbox.min_lat <= bbox.max_lat


def is_point_in_bbox(lng: float, lat: float, bbox: BoundingBox) -> bool:
    """Inclusive containment test on both axes."""
    return (
        bbox.min_lng <= lng <= bbox.max_lng
        and bbox.min_lat <= lat <= bbox.max_lat
    )


def describe_bbox(bbox: BoundingBox) -> str:
    """Coarse, human-readable size of a search area."""
    lng_span = abs(bbox.max_lng - bbox.min_lng)
    lat_span = abs(bbox.max_lat - bbox.min_lat)
    approx_km = round((lng_span + lat_span) / 2 * KM_PER_DEGREE)

    if approx_km < 50:
        return "nearby area"
    if approx_km < 200:
        return "local region"
    if approx_km < 500:
        return "wider region"
    return "broad area"


def _normalize_single_bbox(value: Any) -> Optional[BoundingBox]:
    if not value:
        return None

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.debug(f"Failed to parse bbox string: {value!r}")
            return None

    if not isinstance(value, Mapping):
        return None

    bbox = BoundingBox.from_mapping(value)
    if bbox is None:
        logger.debug(f"Incomplete bbox dropped: {dict(value)}")
    return bbox


def normalize_bbox_args(args: Mapping[str, Any]) -> NormalizedBboxArgs:
    """
    Recover departure/arrival boxes from assistant tool-call arguments.

    Accepted shapes:
    1. Nested objects: {"departureBbox": {"minLng": -6, ...}}
    2. JSON strings of those objects
    3. Numeric strings: {"departureBbox": {"minLng": "-6", ...}}
    4. Flat bounds at the root: {"minLng": -6, "minLat": 35, ...},
       treated as a departure box
    """
    result = NormalizedBboxArgs(
        departure_bbox=_normalize_single_bbox(args.get("departureBbox")),
        arrival_bbox=_normalize_single_bbox(args.get("arrivalBbox")),
    )

    departure_description = args.get("departureDescription")
    if isinstance(departure_description, str) and departure_description:
        result.departure_description = departure_description
    arrival_description = args.get("arrivalDescription")
    if isinstance(arrival_description, str) and arrival_description:
        result.arrival_description = arrival_description

    if result.departure_bbox is None and result.arrival_bbox is None:
        flat = BoundingBox.from_mapping(args)
        if flat is not None:
            result.departure_bbox = flat
            logger.debug(f"Converted flat coordinates to departure bbox: {flat}")
            if not result.departure_description:
                result.departure_description = "Search area (coordinates provided)"

    return result


def encode_point(lng: float, lat: float) -> str:
    """Encode a WGS84 point as hex EWKB, the form PostGIS returns over REST."""
    return wkb.dumps(Point(lng, lat), hex=True, srid=WGS84_SRID)


def _point_coordinates(geometry) -> Optional[Tuple[float, float]]:
    if geometry.geom_type != "Point" or geometry.is_empty:
        return None
    return geometry.x, geometry.y


def _coordinates_from_mapping(location: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    coordinates = location.get("coordinates")
    if isinstance(coordinates, (list, tuple)) and len(coordinates) >= 2:
        return coordinates[0], coordinates[1]
    if "x" in location and "y" in location:
        return location["x"], location["y"]
    return None


def extract_coordinates(location: Any) -> Optional[Tuple[float, float]]:
    """
    Extract (lng, lat) from a waypoint geometry payload.

    Handles GeoJSON objects and strings, {x, y} objects, WKT/EWKT text and
    hex or binary (E)WKB. Returns None when the payload cannot be parsed or
    does not hold finite coordinates.
    """
    coords = None
    try:
        if isinstance(location, Mapping):
            coords = _coordinates_from_mapping(location)
        elif isinstance(location, (bytes, bytearray, memoryview)):
            coords = _point_coordinates(wkb.loads(bytes(location)))
        elif isinstance(location, str):
            text = location.strip()
            if text.startswith("{"):
                coords = _coordinates_from_mapping(json.loads(text))
            elif _HEX_RE.match(text):
                coords = _point_coordinates(wkb.loads(text, hex=True))
            elif text.upper().startswith(("POINT", "SRID=")):
                coords = _point_coordinates(wkt.loads(text.split(";")[-1]))
    except (ValueError, TypeError, ShapelyError) as e:
        logger.debug(f"Failed to extract coordinates: {e}")
        return None

    if coords is None:
        return None

    lng, lat = coords
    if not (_is_real(lng) and _is_real(lat)):
        return None
    return float(lng), float(lat)
