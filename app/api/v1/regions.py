"""Regions API endpoints."""

from fastapi import APIRouter, Query
from starlette.status import HTTP_201_CREATED

from app.api.deps import CurrentUser, Regions
from app.models.region import (
    RegionCreate,
    RegionResponse,
    RegionUpdate,
    RegionUpdateResponse,
)
from app.models.response import Page, StatusResponse

router = APIRouter(prefix="/regions", tags=["regions"])


@router.get("", response_model=Page[RegionResponse])
async def list_regions(
    regions: Regions,
    _: CurrentUser,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=1000, description="Items per page"),
) -> Page[RegionResponse]:
    result = await regions.list_all(page=page, limit=limit)
    return Page[RegionResponse](**result.to_legacy(RegionResponse.from_model))


@router.post("", response_model=RegionResponse, status_code=HTTP_201_CREATED)
async def create_region(
    body: RegionCreate, regions: Regions, current_user: CurrentUser
) -> RegionResponse:
    """
    Create a region.

    The owner is ``user`` from the body, or the caller when it is omitted.
    """
    owner_id = body.user or current_user.id
    region = await regions.create(
        owner_id, {"name": body.name, "geometry": body.geometry.to_geojson()}
    )
    return RegionResponse.from_model(region)


@router.get("/{region_id}", response_model=RegionResponse)
async def get_region(region_id: str, regions: Regions, _: CurrentUser) -> RegionResponse:
    return RegionResponse.from_model(await regions.get(region_id))


@router.patch("/{region_id}", response_model=RegionUpdateResponse)
async def update_region(
    region_id: str, body: RegionUpdate, regions: Regions, _: CurrentUser
) -> RegionUpdateResponse:
    """Rename a region or replace its geometry. The owner cannot change."""
    changes = body.model_dump(exclude_unset=True, exclude={"geometry"})
    if body.geometry is not None:
        changes["geometry"] = body.geometry.to_geojson()
    region = await regions.update(region_id, changes)
    return RegionUpdateResponse(
        status="updated", region=RegionResponse.from_model(region)
    )


@router.delete("/{region_id}", response_model=StatusResponse)
async def delete_region(
    region_id: str, regions: Regions, _: CurrentUser
) -> StatusResponse:
    """Delete a region and remove it from its owner's region list."""
    await regions.delete(region_id)
    return StatusResponse(status="deleted")
