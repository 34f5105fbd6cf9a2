"""
SQLAlchemy models for the SailSmart database.

Only the tables leg search reads are modelled. Waypoint locations are stored
as hex EWKB text (SRID 4326), the form PostGIS returns over REST.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Text,
    JSON,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid


from api.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Boat(Base):
    """Boat offered by an owner for journeys."""

    __tablename__ = "boats"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=True, index=True)
    make_model = Column(String(255), nullable=True)
    images = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    journeys = relationship("Journey", back_populates="boat")

    def __repr__(self):
        return f"<Boat(name='{self.name}', type='{self.type}')>"


class Journey(Base):
    """A multi-leg trip. Only Published journeys are searchable."""

    __tablename__ = "journeys"

    id = Column(String(36), primary_key=True, default=_uuid)
    boat_id = Column(String(36), ForeignKey("boats.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    state = Column(String(50), nullable=False, default="In planning", index=True)
    skills = Column(JSON, nullable=False, default=list)
    risk_level = Column(JSON, nullable=False, default=list)
    min_experience_level = Column(Integer, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    boat = relationship("Boat", back_populates="journeys")
    legs = relationship("Leg", back_populates="journey", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Journey(name='{self.name}', state='{self.state}')>"


class Leg(Base):
    """One segment of a journey that crew can join."""

    __tablename__ = "legs"

    id = Column(String(36), primary_key=True, default=_uuid)
    journey_id = Column(
        String(36), ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True, index=True)
    end_date = Column(Date, nullable=True)
    crew_needed = Column(Integer, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    risk_level = Column(String(50), nullable=True)
    min_experience_level = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    journey = relationship("Journey", back_populates="legs")
    waypoints = relationship(
        "Waypoint",
        back_populates="leg",
        order_by="Waypoint.index",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Leg(name='{self.name}', start_date={self.start_date})>"


class Waypoint(Base):
    """Ordered point on a leg. Index 0 is the start, the highest index the end."""

    __tablename__ = "waypoints"

    id = Column(String(36), primary_key=True, default=_uuid)
    leg_id = Column(
        String(36), ForeignKey("legs.id", ondelete="CASCADE"), nullable=False
    )
    index = Column(Integer, nullable=False)
    name = Column(String(255), nullable=True)
    location = Column(Text, nullable=True)

    # Relationships
    leg = relationship("Leg", back_populates="waypoints")

    __table_args__ = (
        Index("idx_waypoints_leg_index", "leg_id", "index", unique=True),
    )

    def __repr__(self):
        return f"<Waypoint(leg_id={self.leg_id}, index={self.index})>"
