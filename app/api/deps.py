"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from app.core.db import DatabaseManager
from app.core.errors import ServiceUnavailableError
from app.core.geocoding import GeocodingClient
from app.database.models import UserModel
from app.services.regions import RegionService
from app.services.users import UserService

API_KEY_HEADER = "X-API-Key"

# auto_error is off so a missing key goes through the JSON error shape
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def get_db_manager(request: Request) -> DatabaseManager:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise ServiceUnavailableError("Database is not configured")
    return db


def get_geocoder(request: Request) -> GeocodingClient:
    geocoder = getattr(request.app.state, "geocoder", None)
    if geocoder is None:
        raise ServiceUnavailableError("Geocoding is not configured")
    return geocoder


def get_user_service(
    db: Annotated[DatabaseManager, Depends(get_db_manager)],
    geocoder: Annotated[GeocodingClient, Depends(get_geocoder)],
) -> UserService:
    return UserService(db, geocoder)


def get_region_service(
    db: Annotated[DatabaseManager, Depends(get_db_manager)],
) -> RegionService:
    return RegionService(db)


async def require_api_key(
    request: Request,
    users: Annotated[UserService, Depends(get_user_service)],
    api_key: Annotated[str | None, Security(api_key_header)] = None,
) -> UserModel:
    """Authenticate the caller from the ``X-API-Key`` header.

    The authenticated user is also stored on ``request.state.user``.
    """
    user = await users.authenticate(api_key)
    request.state.user = user
    return user


CurrentUser = Annotated[UserModel, Depends(require_api_key)]
Users = Annotated[UserService, Depends(get_user_service)]
Regions = Annotated[RegionService, Depends(get_region_service)]
