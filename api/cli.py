#!/usr/bin/env python3
"""
SailSmart leg search CLI tool.

Command-line interface for administrative tasks:
- Database setup and demo data
- Leg search by region name or bounding box
- Region lookup
- Health checks

Usage:
    python -m api.cli init-db
    python -m api.cli seed-demo
    python -m api.cli search --region "Balearic Islands" --start-date 2024-06-01
    python -m api.cli lookup-region "sailing around the greek islands"
    python -m api.cli check-health
"""
import argparse
import sys
from datetime import date
from typing import Optional

from legsearch.config import get_settings
from legsearch.legs import EXPERIENCE_LEVELS

BBOX_KEYS = ("min_lng", "min_lat", "max_lng", "max_lat")


def init_db() -> None:
    """Initialize the database."""
    from api.database import init_db as do_init

    print("Initializing database...")
    do_init()
    print("Database initialized successfully.")


def seed_demo() -> None:
    """Insert a published demo journey with legs around the Balearics."""
    from api.database import get_db_context
    from api.models import Boat, Journey, Leg
    from api.store import add_waypoint

    with get_db_context() as db:
        boat = Boat(
            name="Windrose",
            type="Coastal cruisers",
            make_model="Beneteau Oceanis 40",
        )
        journey = Journey(
            boat=boat,
            name="Balearic Summer Loop",
            state="Published",
            skills=["navigation"],
            risk_level=["Coastal sailing"],
            min_experience_level=2,
        )

        palma = Leg(
            journey=journey,
            name="Palma to Ibiza",
            start_date=date(2024, 6, 15),
            end_date=date(2024, 6, 17),
            crew_needed=2,
            skills=["night sailing"],
        )
        add_waypoint(palma, 0, 2.63, 39.56, "Palma de Mallorca")
        add_waypoint(palma, 1, 1.43, 38.91, "Ibiza Town")

        ibiza = Leg(
            journey=journey,
            name="Ibiza to Barcelona",
            start_date=date(2024, 6, 20),
            end_date=date(2024, 6, 23),
            crew_needed=1,
            risk_level="Offshore sailing",
            min_experience_level=3,
        )
        add_waypoint(ibiza, 0, 1.43, 38.91, "Ibiza Town")
        add_waypoint(ibiza, 1, 2.18, 41.38, "Barcelona")

        db.add_all([boat, journey, palma, ibiza])

    print("Demo journey 'Balearic Summer Loop' created with 2 legs.")


def _resolve_bbox(region: Optional[str], bbox: Optional[str]):
    from legsearch.geo.bbox import BoundingBox
    from legsearch.geo.regions import get_location_bbox

    if region:
        match = get_location_bbox(region)
        if match is None:
            print(f"\nError: no sailing region matches {region!r}.")
            sys.exit(1)
        return match.bbox, match.name

    parts = [p.strip() for p in bbox.split(",")]
    parsed = BoundingBox.from_mapping(dict(zip(BBOX_KEYS, parts))) if len(parts) == 4 else None
    if parsed is None:
        print("\nError: --bbox must be min_lng,min_lat,max_lng,max_lat")
        sys.exit(1)
    return parsed, "Search area (coordinates provided)"


def search(
    region: Optional[str],
    bbox: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    limit: int,
    min_experience_level: Optional[int] = None,
) -> None:
    """Search legs departing inside a region or bounding box and print a table."""
    from api.database import get_db_context
    from api.store import SqlAlchemyLegStore
    from legsearch.search import LegSearchOptions, LegSearchService

    departure, description = _resolve_bbox(region, bbox)

    with get_db_context() as db:
        service = LegSearchService(SqlAlchemyLegStore(db))
        result = service.search_legs_by_bbox(LegSearchOptions(
            departure_bbox=departure,
            departure_description=description,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            min_experience_level=min_experience_level,
        ))

    print("\n" + "=" * 90)
    print(f"LEGS DEPARTING FROM {description.upper()} ({result.departure_area})")
    if min_experience_level:
        print(f"Open to: {EXPERIENCE_LEVELS[min_experience_level]}")
    print("=" * 90)

    if not result.legs:
        print(f"\n{result.message or 'No legs found.'}\n")
        return

    print(f"{'Start':<12} {'End':<12} {'Leg':<28} {'From':<18} {'To':<18}")
    print("-" * 90)
    for leg in result.legs:
        print(
            f"{leg.start_date or '-':<12} "
            f"{leg.end_date or '-':<12} "
            f"{(leg.name or '')[:26]:<28} "
            f"{(leg.departure_location or '-')[:16]:<18} "
            f"{(leg.arrival_location or '-')[:16]:<18}"
        )
    print("=" * 90)
    print(f"Total: {result.count} leg(s)\n")


def lookup_region(text: str) -> None:
    """Show which sailing regions a piece of text mentions."""
    from legsearch.geo.regions import search_location

    matches = search_location(text)
    if not matches:
        print(f"\nNo sailing region found in {text!r}.")
        sys.exit(1)

    for match in matches:
        b = match.region.bbox
        print(
            f"{match.region.name:<24} ({match.matched_on}: {match.matched_term}) "
            f"[{b.min_lng}, {b.min_lat}, {b.max_lng}, {b.max_lat}]"
        )


def check_health(url: str) -> None:
    """Check API health."""
    import requests

    try:
        response = requests.get(url, timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"\nAPI Status: {data.get('status', 'unknown')}")
            print(f"Version: {data.get('version', 'unknown')}")
            print(f"Timestamp: {data.get('timestamp', 'unknown')}")
            for name, component in data.get("components", {}).items():
                print(f"  {name}: {component.get('status')}")
        else:
            print(f"\nAPI returned status code: {response.status_code}")
            sys.exit(1)
    except requests.exceptions.ConnectionError:
        print("\nError: Could not connect to API. Is the server running?")
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"\nError: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="SailSmart leg search CLI tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Create tables and demo data:
    python -m api.cli init-db
    python -m api.cli seed-demo

  Search by region name:
    python -m api.cli search --region "Balearic Islands"

  Search by bounding box and dates:
    python -m api.cli search --bbox 1,38.5,4.5,40.2 --start-date 2024-06-01

  Look up a region:
    python -m api.cli lookup-region "crossing to the Canaries"

  Check API health:
    python -m api.cli check-health
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Initialize the database")
    subparsers.add_parser("seed-demo", help="Insert a published demo journey")

    # search
    search_parser = subparsers.add_parser("search", help="Search legs by departure area")
    area = search_parser.add_mutually_exclusive_group(required=True)
    area.add_argument("--region", help="Sailing region name, e.g. 'Greek Islands'")
    area.add_argument("--bbox", help="min_lng,min_lat,max_lng,max_lat")
    search_parser.add_argument("--start-date", help="YYYY-MM-DD")
    search_parser.add_argument("--end-date", help="YYYY-MM-DD")
    search_parser.add_argument("--limit", type=int, default=10, help="Maximum legs (default: 10)")
    search_parser.add_argument(
        "--experience",
        type=int,
        choices=sorted(EXPERIENCE_LEVELS),
        help="Your experience level: " + ", ".join(f"{k}={v}" for k, v in EXPERIENCE_LEVELS.items()),
    )

    # lookup-region
    lookup_parser = subparsers.add_parser("lookup-region", help="Find sailing regions in text")
    lookup_parser.add_argument("text", help="Place name or sentence")

    # check-health
    health_parser = subparsers.add_parser("check-health", help="Check API health")
    health_parser.add_argument(
        "--url",
        default="http://localhost:8000/api/health",
        help="Health endpoint (default: http://localhost:8000/api/health)"
    )

    args = parser.parse_args()
    get_settings().configure_logging()

    if args.command == "init-db":
        init_db()
    elif args.command == "seed-demo":
        seed_demo()
    elif args.command == "search":
        search(args.region, args.bbox, args.start_date, args.end_date, args.limit, args.experience)
    elif args.command == "lookup-region":
        lookup_region(args.text)
    elif args.command == "check-health":
        check_health(args.url)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
