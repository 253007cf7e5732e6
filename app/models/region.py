"""Region request and response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .geographic import Polygon


class RegionCreate(BaseModel):
    """Body for creating a region.

    ``user`` is only read on ``POST /regions``; the user-scoped route takes the
    owner from the path.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(
        ...,
        title="Name",
        description="Region name",
        min_length=3,
        max_length=100,
        examples=["Lower Manhattan"],
    )
    user: str | None = Field(
        default=None,
        title="Owner",
        description="Id of the owning user",
    )
    geometry: Polygon


class RegionUpdate(BaseModel):
    """Partial update of a region. The owner cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=100)
    geometry: Polygon | None = None


class RegionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    user: str
    geometry: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, region: Any) -> "RegionResponse":
        """Build from a stored region, exposing its owner as ``user``."""
        return cls.model_validate(region.to_dict())


class RegionUpdateResponse(BaseModel):
    status: str
    region: RegionResponse
