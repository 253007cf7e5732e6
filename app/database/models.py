"""SQLAlchemy models for users and regions."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from .base import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserModel(Base):
    """User with a geocoded location and the ids of the regions it owns."""

    __tablename__ = "users"

    id = Column(
        Text,
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    address = Column(Text, nullable=False)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)

    # Ordered region ids, maintained only by the region ownership path
    regions = Column(JSONType, nullable=False, default=list)

    api_key_hash = Column(String(64), nullable=False, unique=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    @property
    def coordinates(self) -> list[float]:
        """GeoJSON ``[lng, lat]`` position."""
        return [self.longitude, self.latitude]

    @coordinates.setter
    def coordinates(self, value: list[float]) -> None:
        self.longitude, self.latitude = float(value[0]), float(value[1])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "coordinates": self.coordinates,
            "regions": list(self.regions or []),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class RegionModel(Base):
    """Named GeoJSON polygon owned by a user."""

    __tablename__ = "regions"

    id = Column(
        Text,
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    user_id = Column(
        Text,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    geometry = Column(JSONType, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (Index("ix_regions_user_id", "user_id"),)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "user": self.user_id,
            "geometry": self.geometry,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
