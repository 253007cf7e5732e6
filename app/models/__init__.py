"""API models package."""

from .geographic import Polygon, Position
from .region import RegionCreate, RegionResponse, RegionUpdate, RegionUpdateResponse
from .response import Page, StatusResponse
from .user import (
    ApiKeyResponse,
    UserCreate,
    UserCreateResponse,
    UserResponse,
    UserUpdate,
    UserUpdateResponse,
)

__all__ = [
    "ApiKeyResponse",
    "Page",
    "Polygon",
    "Position",
    "RegionCreate",
    "RegionResponse",
    "RegionUpdate",
    "RegionUpdateResponse",
    "StatusResponse",
    "UserCreate",
    "UserCreateResponse",
    "UserResponse",
    "UserUpdate",
    "UserUpdateResponse",
]
