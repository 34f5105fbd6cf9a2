"""Leg search tables and spatial RPC functions.

Revision ID: 001_leg_search
Revises:
Create Date: 2026-10-17

Creates boats, journeys, legs and waypoints. On PostgreSQL (with PostGIS)
also creates the two functions leg search calls:

- find_legs_by_location: leg ids whose start/end waypoints fall inside
  the departure/arrival envelopes (either envelope may be NULL)
- get_waypoints_coords_for_bbox_search: decoded coordinates of every
  waypoint of a published leg

Waypoint locations are hex EWKB text and are cast to geometry in SQL.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001_leg_search"
down_revision = None
branch_labels = None
depends_on = None


FIND_LEGS_BY_LOCATION = """
CREATE OR REPLACE FUNCTION find_legs_by_location(
  departure_min_lng double precision DEFAULT NULL,
  departure_min_lat double precision DEFAULT NULL,
  departure_max_lng double precision DEFAULT NULL,
  departure_max_lat double precision DEFAULT NULL,
  arrival_min_lng double precision DEFAULT NULL,
  arrival_min_lat double precision DEFAULT NULL,
  arrival_max_lng double precision DEFAULT NULL,
  arrival_max_lat double precision DEFAULT NULL
)
RETURNS TABLE (id varchar)
LANGUAGE sql
STABLE
AS $$
  SELECT DISTINCT l.id
  FROM legs l
  JOIN journeys j ON j.id = l.journey_id
  WHERE j.state = 'Published'
    AND (
      departure_min_lng IS NULL OR departure_min_lat IS NULL OR
      departure_max_lng IS NULL OR departure_max_lat IS NULL OR
      EXISTS (
        SELECT 1 FROM waypoints w
        WHERE w.leg_id = l.id
          AND w.index = 0
          -- ST_Covers keeps points on the envelope edge
          AND ST_Covers(
            ST_MakeEnvelope(departure_min_lng, departure_min_lat, departure_max_lng, departure_max_lat, 4326),
            w.location::geometry
          )
      )
    )
    AND (
      arrival_min_lng IS NULL OR arrival_min_lat IS NULL OR
      arrival_max_lng IS NULL OR arrival_max_lat IS NULL OR
      EXISTS (
        SELECT 1 FROM waypoints w
        WHERE w.leg_id = l.id
          AND w.index = (SELECT MAX(w2.index) FROM waypoints w2 WHERE w2.leg_id = l.id)
          AND ST_Covers(
            ST_MakeEnvelope(arrival_min_lng, arrival_min_lat, arrival_max_lng, arrival_max_lat, 4326),
            w.location::geometry
          )
      )
    );
$$;
"""

GET_WAYPOINT_COORDS = """
CREATE OR REPLACE FUNCTION get_waypoints_coords_for_bbox_search()
RETURNS TABLE (leg_id varchar, waypoint_index integer, lng double precision, lat double precision)
LANGUAGE sql
STABLE
AS $$
  SELECT w.leg_id, w.index, ST_X(w.location::geometry), ST_Y(w.location::geometry)
  FROM waypoints w
  JOIN legs l ON l.id = w.leg_id
  JOIN journeys j ON j.id = l.journey_id
  WHERE j.state = 'Published'
    AND w.index IS NOT NULL;
$$;
"""


def upgrade() -> None:
    op.create_table(
        "boats",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(100), nullable=True),
        sa.Column("make_model", sa.String(255), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_boats_type", "boats", ["type"])

    op.create_table(
        "journeys",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("boat_id", sa.String(36), sa.ForeignKey("boats.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("state", sa.String(50), nullable=False, server_default="In planning"),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("risk_level", sa.JSON(), nullable=False),
        sa.Column("min_experience_level", sa.Integer(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_journeys_boat_id", "journeys", ["boat_id"])
    op.create_index("ix_journeys_state", "journeys", ["state"])

    op.create_table(
        "legs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("journey_id", sa.String(36), sa.ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("crew_needed", sa.Integer(), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("risk_level", sa.String(50), nullable=True),
        sa.Column("min_experience_level", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_legs_journey_id", "legs", ["journey_id"])
    op.create_index("ix_legs_start_date", "legs", ["start_date"])

    op.create_table(
        "waypoints",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("leg_id", sa.String(36), sa.ForeignKey("legs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("index", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
    )
    op.create_index("idx_waypoints_leg_index", "waypoints", ["leg_id", "index"], unique=True)

    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS postgis")
        op.execute(FIND_LEGS_BY_LOCATION)
        op.execute(GET_WAYPOINT_COORDS)


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP FUNCTION IF EXISTS get_waypoints_coords_for_bbox_search()")
        op.execute(
            "DROP FUNCTION IF EXISTS find_legs_by_location("
            "double precision, double precision, double precision, double precision, "
            "double precision, double precision, double precision, double precision)"
        )

    op.drop_index("idx_waypoints_leg_index", table_name="waypoints")
    op.drop_table("waypoints")
    op.drop_index("ix_legs_start_date", table_name="legs")
    op.drop_index("ix_legs_journey_id", table_name="legs")
    op.drop_table("legs")
    op.drop_index("ix_journeys_state", table_name="journeys")
    op.drop_index("ix_journeys_boat_id", table_name="journeys")
    op.drop_table("journeys")
    op.drop_index("ix_boats_type", table_name="boats")
    op.drop_table("boats")
