"""User operations and the address/coordinate consistency hook."""

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from app.core.db import DatabaseManager
from app.core.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from app.core.geocoding import (
    GeocodingClient,
    GeocodingError,
    GeocodingUnavailableError,
    InvalidCoordinatesError,
    LocationResult,
    coerce_coordinates,
)
from app.core.logging import get_logger
from app.core.security import generate_api_key, hash_api_key, verify_api_key
from app.database.models import UserModel
from app.database.repositories import (
    Paginated,
    QueryFilters,
    RegionRepository,
    SortDirection,
    UserRepository,
)

logger = get_logger("app.services.users")

LOCATION_FIELDS = ("address", "coordinates")
UPDATABLE_FIELDS = ("name", "email", "address", "coordinates")


def ensure_single_location(data: Mapping[str, Any], required: bool) -> None:
    """Reject payloads carrying both address and coordinates.

    Args:
        data: Create or update payload
        required: Whether one of the two must be present (creation)

    Raises:
        BadRequestError: If both are present, or neither when required
    """
    present = [name for name in LOCATION_FIELDS if data.get(name) is not None]
    if len(present) == 2:
        raise BadRequestError("Provide either address or coordinates, not both")
    if required and not present:
        raise BadRequestError("Either address or coordinates must be provided")


def _position(value: Any) -> list[float]:
    try:
        return coerce_coordinates(value).to_geojson()
    except InvalidCoordinatesError as e:
        raise BadRequestError(str(e)) from e


async def maybe_geocode(
    user: UserModel, changed_fields: Iterable[str], geocoder: GeocodingClient
) -> LocationResult | None:
    """Derive the location field the caller did not supply.

    Coordinates that changed are reverse geocoded into the address; an address
    that changed (without coordinates) is geocoded into coordinates. Nothing
    happens when neither changed.

    Args:
        user: User being saved, already carrying the new values
        changed_fields: Names of the fields modified by this save
        geocoder: Geocoding client

    Returns:
        The geocoding result that was applied, or None

    Raises:
        BadRequestError: If the provider finds no match or the input is invalid
        ServiceUnavailableError: If the provider is unreachable or times out
    """
    changed = set(changed_fields)
    try:
        if "coordinates" in changed:
            result = await geocoder.resolve_from_coordinates(user.coordinates)
            user.address = result.formatted_address
        elif "address" in changed:
            result = await geocoder.resolve_from_address(user.address)
            user.coordinates = result.coordinates
        else:
            return None
    except GeocodingUnavailableError as e:
        raise ServiceUnavailableError(str(e)) from e
    except (GeocodingError, InvalidCoordinatesError) as e:
        raise BadRequestError(str(e)) from e

    logger.info(
        "user_location_geocoded",
        user_id=user.id,
        direction="reverse" if "coordinates" in changed else "forward",
        coordinates=user.coordinates,
    )
    return result


class UserService:
    """Create, read, update and delete users."""

    def __init__(self, db: DatabaseManager, geocoder: GeocodingClient):
        self.db = db
        self.geocoder = geocoder

    async def create(self, data: Mapping[str, Any]) -> tuple[UserModel, str]:
        """Create a user and issue its API key.

        Args:
            data: ``name``, ``email`` and exactly one of ``address`` or
                ``coordinates``

        Returns:
            The persisted user and the raw API key (never retrievable again)
        """
        ensure_single_location(data, required=True)

        api_key = generate_api_key()
        user = UserModel(
            id=str(uuid4()),
            name=data["name"],
            email=str(data["email"]),
            regions=[],
            api_key_hash=hash_api_key(api_key),
        )
        if data.get("coordinates") is not None:
            user.coordinates = _position(data["coordinates"])
            changed = {"coordinates"}
        else:
            user.address = data["address"]
            changed = {"address"}

        await maybe_geocode(user, changed, self.geocoder)

        try:
            async with self.db.transaction() as session:
                await UserRepository(session).add(user)
        except IntegrityError as e:
            raise ConflictError("User with this email already exists") from e

        logger.info("user_created", user_id=user.id)
        return user, api_key

    async def get(self, user_id: str) -> UserModel:
        async with self.db.session() as session:
            user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list(
        self,
        page: int = 1,
        limit: int = 10,
        name: str | None = None,
        email: str | None = None,
        sort_by: str | None = None,
        sort_direction: SortDirection = "asc",
    ) -> Paginated[UserModel]:
        """Page through users, optionally filtering by partial name/email."""
        contains = {k: v for k, v in (("name", name), ("email", email)) if v}
        async with self.db.session() as session:
            return await UserRepository(session).paginate(
                page=page,
                limit=limit,
                filters=QueryFilters(contains=contains),
                sort_by=sort_by,
                sort_direction=sort_direction,
            )

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> UserModel:
        """Apply a partial update, re-deriving the location when it changes.

        Args:
            user_id: Id of the user
            changes: Subset of ``name``, ``email``, ``address``, ``coordinates``

        Returns:
            The updated user

        Raises:
            BadRequestError: For unknown/immutable fields, both location fields,
                or a failed geocode
            NotFoundError: If the user does not exist
            ConflictError: If the new email is taken
        """
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise BadRequestError(f"Fields cannot be updated: {', '.join(unknown)}")
        ensure_single_location(changes, required=False)

        try:
            async with self.db.transaction() as session:
                users = UserRepository(session)
                user = await users.get_for_update(user_id)
                if user is None:
                    raise NotFoundError("User not found")

                changed: set[str] = set()
                for key, value in changes.items():
                    if value is None:
                        continue
                    if key == "coordinates":
                        value = _position(value)
                        if value == user.coordinates:
                            continue
                    elif key == "email":
                        value = str(value)
                    if key != "coordinates" and getattr(user, key) == value:
                        continue
                    setattr(user, key, value)
                    changed.add(key)

                # Geocode before the flush so a failure rolls everything back
                await maybe_geocode(user, changed, self.geocoder)
                if changed:
                    await users.update(user)
        except IntegrityError as e:
            raise ConflictError("User with this email already exists") from e

        logger.info("user_updated", user_id=user_id, fields=sorted(changed))
        return user

    async def delete(self, user_id: str) -> None:
        """Delete a user together with every region it owns."""
        async with self.db.transaction() as session:
            users = UserRepository(session)
            user = await users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User not found")
            removed = await RegionRepository(session).delete_by_owner(user_id)
            await users.delete(user)

        logger.info("user_deleted", user_id=user_id, regions_removed=removed)

    async def regenerate_api_key(self, user_id: str) -> str:
        """Replace a user's API key and return the new raw key."""
        api_key = generate_api_key()
        async with self.db.transaction() as session:
            users = UserRepository(session)
            user = await users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User not found")
            await users.update(user, api_key_hash=hash_api_key(api_key))

        logger.info("api_key_regenerated", user_id=user_id)
        return api_key

    async def authenticate(self, api_key: str | None) -> UserModel:
        """Resolve the user owning an API key.

        Raises:
            UnauthorizedError: If the key is missing or matches no user
        """
        if not api_key:
            raise UnauthorizedError("API key is missing")

        async with self.db.session() as session:
            user = await UserRepository(session).get_by_api_key_hash(
                hash_api_key(api_key)
            )
        if user is None or not verify_api_key(api_key, user.api_key_hash):
            logger.warning("authentication_failed", key_prefix=api_key[:8])
            raise UnauthorizedError("Invalid API key")
        return user
