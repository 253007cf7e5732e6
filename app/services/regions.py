"""Region operations.

Every write that touches both a region row and its owner's region list runs
in one transaction, so the two are never observed out of step.
"""

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from app.core.db import DatabaseManager
from app.core.errors import BadRequestError, NotFoundError
from app.core.logging import get_logger
from app.database.models import RegionModel, UserModel
from app.database.repositories import (
    Paginated,
    QueryFilters,
    RegionRepository,
    UserRepository,
)

logger = get_logger("app.services.regions")

UPDATABLE_FIELDS = ("name", "geometry")


def _geometry(value: Any) -> dict[str, Any]:
    if hasattr(value, "to_geojson"):
        return value.to_geojson()
    return dict(value)


class RegionService:
    """Create, read, update and delete regions on behalf of their owners."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def create(self, owner_id: str, data: Mapping[str, Any]) -> RegionModel:
        """Create a region and record it on its owner.

        The owner's region list is updated first and the region row is
        written second; a failure at either step leaves neither change.

        Args:
            owner_id: Id of the owning user
            data: ``name`` and ``geometry``

        Returns:
            The persisted region

        Raises:
            NotFoundError: If the owner does not exist
        """
        region = RegionModel(
            id=str(uuid4()),
            name=data["name"],
            user_id=owner_id,
            geometry=_geometry(data["geometry"]),
        )

        async with self.db.transaction() as session:
            users = UserRepository(session)
            owner = await users.get_for_update(owner_id)
            if owner is None:
                raise NotFoundError("User not found")

            await users.append_region(owner, region.id)
            await RegionRepository(session).add(region)

        logger.info("region_created", region_id=region.id, user_id=owner_id)
        return region

    async def get(self, region_id: str) -> RegionModel:
        async with self.db.session() as session:
            region = await RegionRepository(session).get_by_id(region_id)
        if region is None:
            raise NotFoundError("Region not found")
        return region

    async def list_all(self, page: int = 1, limit: int = 10) -> Paginated[RegionModel]:
        async with self.db.session() as session:
            return await RegionRepository(session).paginate(page=page, limit=limit)

    async def list_by_owner(
        self, owner_id: str, page: int = 1, limit: int = 10
    ) -> Paginated[RegionModel]:
        """Page through the regions of one user."""
        async with self.db.session() as session:
            if await UserRepository(session).get_by_id(owner_id) is None:
                raise NotFoundError("User not found")
            return await RegionRepository(session).paginate(
                page=page,
                limit=limit,
                filters=QueryFilters(equals={"user_id": owner_id}),
            )

    async def update(self, region_id: str, changes: Mapping[str, Any]) -> RegionModel:
        """Rename a region or replace its geometry.

        Raises:
            BadRequestError: If the change targets the owner or an unknown field
            NotFoundError: If the region does not exist
        """
        if "user" in changes or "user_id" in changes:
            raise BadRequestError("Region owner cannot be changed")
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise BadRequestError(f"Fields cannot be updated: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        if changes.get("name") is not None:
            values["name"] = changes["name"]
        if changes.get("geometry") is not None:
            values["geometry"] = _geometry(changes["geometry"])

        async with self.db.transaction() as session:
            regions = RegionRepository(session)
            region = await regions.get_for_update(region_id)
            if region is None:
                raise NotFoundError("Region not found")
            if values:
                await regions.update(region, **values)

        logger.info("region_updated", region_id=region_id, fields=sorted(values))
        return region

    async def delete(self, region_id: str) -> None:
        """Delete a region and drop it from its owner's region list."""
        async with self.db.transaction() as session:
            regions = RegionRepository(session)
            region = await regions.get_for_update(region_id)
            if region is None:
                raise NotFoundError("Region not found")

            users = UserRepository(session)
            owner = await users.get_for_update(region.user_id)
            if owner is not None:
                await users.remove_region(owner, region_id)
            await regions.delete(region)

        logger.info("region_deleted", region_id=region_id)

    async def reconcile_owner(self, owner_id: str) -> UserModel:
        """Rebuild a user's region list from the regions it actually owns."""
        async with self.db.transaction() as session:
            users = UserRepository(session)
            owner = await users.get_for_update(owner_id)
            if owner is None:
                raise NotFoundError("User not found")

            ids = list(await RegionRepository(session).get_ids_by_owner(owner_id))
            if ids != list(owner.regions or []):
                logger.warning(
                    "region_list_reconciled",
                    user_id=owner_id,
                    before=list(owner.regions or []),
                    after=ids,
                )
                await users.update(owner, regions=ids)
        return owner
