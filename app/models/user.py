"""User request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .geographic import Position, validate_position


class UserCreate(BaseModel):
    """Body for creating a user. Exactly one of address or coordinates."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "address": "1 Main St, New York, NY",
            }
        },
    )

    name: str = Field(
        ...,
        title="Name",
        description="Full name of the user",
        min_length=1,
        examples=["Ada Lovelace"],
    )
    email: EmailStr = Field(
        ...,
        title="Email",
        description="Email address, unique across users",
        examples=["ada@example.com"],
    )
    address: str | None = Field(
        default=None,
        title="Address",
        description="Street address; coordinates are derived from it",
        min_length=1,
    )
    coordinates: Position | None = Field(
        default=None,
        title="Coordinates",
        description="[longitude, latitude]; the address is derived from it",
        examples=[[-73.9, 40.7]],
    )

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, value: Position | None) -> Position | None:
        return None if value is None else validate_position(value)


class UserUpdate(BaseModel):
    """Partial update of a user. Region references cannot be changed here."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    address: str | None = Field(default=None, min_length=1)
    coordinates: Position | None = None

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, value: Position | None) -> Position | None:
        return None if value is None else validate_position(value)


class UserResponse(BaseModel):
    """A persisted user. The API key hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    address: str
    coordinates: Position
    regions: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserCreateResponse(BaseModel):
    """Created user plus the raw API key, returned only once."""

    user: UserResponse
    api_key: str


class UserUpdateResponse(BaseModel):
    status: str
    user: UserResponse


class ApiKeyResponse(BaseModel):
    api_key: str
    message: str
