"""Users API endpoints."""

from typing import Literal, Optional

from fastapi import APIRouter, Query
from starlette.status import HTTP_201_CREATED

from app.api.deps import CurrentUser, Regions, Users
from app.models.region import RegionCreate, RegionResponse
from app.models.response import Page, StatusResponse
from app.models.user import (
    UserCreate,
    UserCreateResponse,
    UserResponse,
    UserUpdate,
    UserUpdateResponse,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserCreateResponse, status_code=HTTP_201_CREATED)
async def create_user(body: UserCreate, users: Users) -> UserCreateResponse:
    """
    Register a user.

    Exactly one of ``address`` or ``coordinates`` must be given; the other is
    derived by geocoding. The API key in the response is shown only once.
    """
    user, api_key = await users.create(body.model_dump(exclude_none=True))
    return UserCreateResponse(user=UserResponse.model_validate(user), api_key=api_key)


@router.get("", response_model=Page[UserResponse])
async def list_users(
    users: Users,
    _: CurrentUser,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=1000, description="Items per page"),
    name: Optional[str] = Query(None, description="Partial, case-insensitive"),
    email: Optional[str] = Query(None, description="Partial, case-insensitive"),
    sort_by: Optional[Literal["name", "email", "created_at", "updated_at"]] = None,
    sort_direction: Literal["asc", "desc"] = "asc",
) -> Page[UserResponse]:
    """List users with optional filtering, sorting and pagination."""
    result = await users.list(
        page=page,
        limit=limit,
        name=name,
        email=email,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    return Page[UserResponse](**result.to_legacy(UserResponse.model_validate))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, users: Users, _: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(await users.get(user_id))


@router.patch("/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: str, body: UserUpdate, users: Users, _: CurrentUser
) -> UserUpdateResponse:
    """
    Update a user.

    Changing the address re-derives the coordinates and vice versa.
    """
    user = await users.update(user_id, body.model_dump(exclude_unset=True))
    return UserUpdateResponse(status="updated", user=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=StatusResponse)
async def delete_user(user_id: str, users: Users, _: CurrentUser) -> StatusResponse:
    """Delete a user and every region it owns."""
    await users.delete(user_id)
    return StatusResponse(status="deleted")


@router.get("/{user_id}/regions", response_model=Page[RegionResponse])
async def list_user_regions(
    user_id: str,
    regions: Regions,
    _: CurrentUser,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=1000, description="Items per page"),
) -> Page[RegionResponse]:
    result = await regions.list_by_owner(user_id, page=page, limit=limit)
    return Page[RegionResponse](**result.to_legacy(RegionResponse.from_model))


@router.post(
    "/{user_id}/regions",
    response_model=RegionResponse,
    status_code=HTTP_201_CREATED,
)
async def create_user_region(
    user_id: str, body: RegionCreate, regions: Regions, _: CurrentUser
) -> RegionResponse:
    """Create a region owned by ``user_id``. A ``user`` in the body is ignored."""
    region = await regions.create(
        user_id, {"name": body.name, "geometry": body.geometry.to_geojson()}
    )
    return RegionResponse.from_model(region)
