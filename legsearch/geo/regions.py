"""
Pre-defined sailing regions with bounding boxes.

Resolves place names mentioned in free text ("sailing near Mallorca",
"Caribbean crossing") to a search rectangle, and supports browsing regions
by category or by distance from a position.
"""

import logging
import math
import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .bbox import BoundingBox

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass
class SailingRegion:
    """A named cruising area."""
    name: str
    category: str  # mediterranean, atlantic, caribbean, pacific, ...
    bbox: BoundingBox
    aliases: List[str] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class LocationMatch:
    """A region found in a piece of text."""
    region: SailingRegion
    matched_on: str  # "name" or "alias"
    matched_term: str


def _box(min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> BoundingBox:
    return BoundingBox(min_lng, min_lat, max_lng, max_lat)


# ---------------------------------------------------------------------------
# Region registry
# Boxes include a margin around the coastline so departure ports just
# outside the cruising ground still match.
# ---------------------------------------------------------------------------
REGIONS: List[SailingRegion] = [
    # Mediterranean
    SailingRegion(
        name="Mediterranean",
        category="mediterranean",
        bbox=_box(-6.0, 30.0, 36.0, 46.0),
        aliases=["med", "the med", "mediterranean sea", "med sea"],
        description="The entire Mediterranean Sea from Gibraltar to the Levant",
    ),
    SailingRegion(
        name="Western Mediterranean",
        category="mediterranean",
        bbox=_box(-6.0, 35.0, 10.0, 44.5),
        aliases=["western med", "west med"],
        description="Spain, the Balearics, southern France, Liguria and western Italy",
    ),
    SailingRegion(
        name="Eastern Mediterranean",
        category="mediterranean",
        bbox=_box(10.0, 32.0, 36.0, 43.0),
        aliases=["eastern med", "east med", "levant"],
        description="Adriatic, Ionian and Aegean Seas and the Levantine coast",
    ),
    SailingRegion(
        name="Balearic Islands",
        category="mediterranean",
        bbox=_box(1.0, 38.5, 4.5, 40.5),
        aliases=["balearics", "mallorca", "majorca", "ibiza", "menorca", "formentera"],
    ),
    SailingRegion(
        name="French Riviera",
        category="mediterranean",
        bbox=_box(5.5, 42.8, 7.8, 43.8),
        aliases=["cote d'azur", "riviera", "nice", "monaco", "cannes", "saint tropez", "antibes"],
    ),
    SailingRegion(
        name="Costa Brava",
        category="mediterranean",
        bbox=_box(2.4, 41.6, 3.5, 42.4),
        aliases=["catalan coast", "cadaques", "palamos", "roses", "cap de creus"],
    ),
    SailingRegion(
        name="Corsica & Sardinia",
        category="mediterranean",
        bbox=_box(8.0, 38.8, 10.0, 43.0),
        aliases=["corsica", "sardinia", "costa smeralda", "bonifacio", "porto cervo"],
    ),
    SailingRegion(
        name="Greek Islands",
        category="mediterranean",
        bbox=_box(19.0, 34.5, 30.0, 41.0),
        aliases=["greece", "aegean", "cyclades", "dodecanese", "saronic gulf", "sporades"],
    ),
    SailingRegion(
        name="Ionian Islands",
        category="mediterranean",
        bbox=_box(19.5, 37.5, 21.0, 39.8),
        aliases=["ionian", "corfu", "lefkas", "zakynthos", "cephalonia", "ithaca", "paxos"],
    ),
    SailingRegion(
        name="Croatia / Dalmatia",
        category="mediterranean",
        bbox=_box(13.0, 42.0, 19.0, 45.0),
        aliases=["croatia", "dalmatia", "split", "dubrovnik", "hvar", "korcula", "kornati"],
    ),
    SailingRegion(
        name="Turkish Riviera",
        category="mediterranean",
        bbox=_box(26.5, 36.0, 32.0, 38.0),
        aliases=["turkey", "turkish coast", "bodrum", "marmaris", "fethiye", "gocek"],
    ),
    SailingRegion(
        name="Malta & Gozo",
        category="mediterranean",
        bbox=_box(14.0, 35.7, 14.6, 36.1),
        aliases=["malta", "gozo", "comino", "valletta"],
    ),

    # Atlantic
    SailingRegion(
        name="Canary Islands",
        category="atlantic",
        bbox=_box(-18.5, 27.0, -13.0, 29.5),
        aliases=["canaries", "tenerife", "gran canaria", "lanzarote", "fuerteventura", "la gomera", "las palmas"],
        description="Traditional jumping-off point for Atlantic crossings",
    ),
    SailingRegion(
        name="Cape Verde",
        category="atlantic",
        bbox=_box(-25.5, 14.5, -22.5, 17.5),
        aliases=["cabo verde", "mindelo", "sao vicente"],
    ),
    SailingRegion(
        name="Portugal coast",
        category="atlantic",
        bbox=_box(-11.0, 36.9, -6.0, 42.2),
        aliases=["portugal", "lisbon", "lisboa", "cascais", "algarve", "lagos"],
    ),
    SailingRegion(
        name="Bay of Biscay",
        category="atlantic",
        bbox=_box(-10.0, 43.0, -1.0, 48.0),
        aliases=["biscay", "golfe de gascogne", "bilbao", "santander"],
    ),
    SailingRegion(
        name="New England",
        category="atlantic",
        bbox=_box(-71.0, 41.0, -66.0, 45.0),
        aliases=["maine", "cape cod", "nantucket", "rhode island", "newport ri", "boston"],
    ),
    SailingRegion(
        name="Chesapeake Bay",
        category="atlantic",
        bbox=_box(-76.8, 36.8, -75.8, 39.8),
        aliases=["chesapeake", "annapolis", "baltimore", "norfolk"],
    ),
    SailingRegion(
        name="Florida Keys",
        category="atlantic",
        bbox=_box(-83.0, 24.0, -80.0, 25.5),
        aliases=["key west", "dry tortugas", "key largo", "islamorada", "marathon"],
    ),

    # Caribbean
    SailingRegion(
        name="Caribbean",
        category="caribbean",
        bbox=_box(-80.5, 9.0, -59.0, 23.0),
        aliases=["carib", "west indies", "caribbean sea"],
    ),
    SailingRegion(
        name="Eastern Caribbean",
        category="caribbean",
        bbox=_box(-65.0, 10.0, -59.0, 19.0),
        aliases=["east caribbean", "lesser antilles east"],
    ),
    SailingRegion(
        name="Leeward Islands",
        category="caribbean",
        bbox=_box(-63.5, 15.0, -59.0, 19.0),
        aliases=["antigua", "barbuda", "st kitts", "nevis", "guadeloupe", "anguilla", "st martin", "st maarten"],
    ),
    SailingRegion(
        name="Windward Islands",
        category="caribbean",
        bbox=_box(-62.0, 12.0, -59.0, 15.5),
        aliases=["dominica", "martinique", "st lucia", "st vincent", "grenadines", "grenada", "bequia"],
    ),
    SailingRegion(
        name="BVI/USVI",
        category="caribbean",
        bbox=_box(-65.0, 17.5, -64.0, 18.8),
        aliases=["british virgin islands", "bvi", "us virgin islands", "usvi", "virgin islands", "tortola"],
    ),
    SailingRegion(
        name="Bahamas",
        category="caribbean",
        bbox=_box(-79.5, 21.0, -72.5, 27.5),
        aliases=["the bahamas", "nassau", "exumas", "abacos", "eleuthera"],
    ),
    SailingRegion(
        name="San Blas Islands (Guna Yala)",
        category="caribbean",
        bbox=_box(-79.5, 8.5, -77.0, 10.0),
        aliases=["san blas", "guna yala", "kuna yala"],
    ),

    # Pacific
    SailingRegion(
        name="San Juan Islands & Salish Sea",
        category="pacific",
        bbox=_box(-123.5, 47.8, -122.5, 49.0),
        aliases=["san juan islands", "puget sound", "salish sea", "friday harbor", "anacortes"],
    ),
    SailingRegion(
        name="Galapagos Islands",
        category="pacific",
        bbox=_box(-92.0, -1.5, -89.0, 1.5),
        aliases=["galapagos", "ecuador islands"],
    ),

    # Northern Europe
    SailingRegion(
        name="Scandinavia & Finland",
        category="northern_europe",
        bbox=_box(4.0, 55.0, 31.5, 71.5),
        aliases=["scandinavia", "norway", "sweden", "finland", "fjords", "stockholm archipelago", "baltic sea"],
    ),

    # Indian Ocean
    SailingRegion(
        name="Seychelles",
        category="indian_ocean",
        bbox=_box(55.0, -5.0, 56.5, -3.5),
        aliases=["mahe", "praslin", "la digue"],
    ),
]


def _normalize(text: str) -> str:
    """Lowercase, strip accents, unify quotes and whitespace."""
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower().strip().replace("’", "'")
    return re.sub(r"\s+", " ", text)


def _contains_phrase(text: str, phrase: str) -> bool:
    """True when ``phrase`` occurs in ``text`` on word boundaries."""
    if not phrase:
        return False
    pattern = r"(?<![a-z0-9])" + re.escape(phrase) + r"(?![a-z0-9])"
    return re.search(pattern, text) is not None


def search_location(text: str) -> List[LocationMatch]:
    """
    Find regions whose name or alias occurs in ``text``.

    Matching is case- and accent-insensitive and respects word boundaries,
    so "nice" matches "sailing from nice" but not "nicely". Longer matched
    terms come first, making "Greek Islands" win over "Greece".
    """
    normalized = _normalize(text)
    matches: List[LocationMatch] = []

    for region in REGIONS:
        if _contains_phrase(normalized, _normalize(region.name)):
            matches.append(LocationMatch(region, "name", region.name))
            continue
        for alias in region.aliases:
            if _contains_phrase(normalized, _normalize(alias)):
                matches.append(LocationMatch(region, "alias", alias))
                break

    matches.sort(key=lambda m: len(m.matched_term), reverse=True)
    return matches


def get_location_bbox(query: str) -> Optional[SailingRegion]:
    """Best matching region for ``query``, or None."""
    matches = search_location(query)
    if not matches:
        logger.debug(f"No region matched {query!r}")
        return None
    return matches[0].region


def list_regions(category: Optional[str] = None) -> List[SailingRegion]:
    if category:
        return [r for r in REGIONS if r.category == category]
    return list(REGIONS)


def get_categories() -> List[str]:
    """Region categories in registry order."""
    seen: List[str] = []
    for region in REGIONS:
        if region.category not in seen:
            seen.append(region.category)
    return seen


def get_bbox_center(bbox: BoundingBox) -> Tuple[float, float]:
    """Center of a box as (lat, lng)."""
    return (bbox.min_lat + bbox.max_lat) / 2, (bbox.min_lng + bbox.max_lng) / 2


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres (haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def sort_regions_by_distance(
    lat: float,
    lng: float,
    regions: Optional[List[SailingRegion]] = None,
) -> List[Tuple[SailingRegion, float]]:
    """Regions paired with their centre distance from (lat, lng), nearest first."""
    candidates = REGIONS if regions is None else regions
    with_distance = []
    for region in candidates:
        center_lat, center_lng = get_bbox_center(region.bbox)
        with_distance.append((region, calculate_distance(lat, lng, center_lat, center_lng)))
    with_distance.sort(key=lambda pair: pair[1])
    return with_distance
