"""Repository pattern for database operations.

Repositories never commit: the calling service owns the transaction so that
multi-row writes (a region and its owner's region list) succeed or fail
together.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Literal, Optional, Sequence, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RegionModel, UserModel

ModelType = TypeVar("ModelType")
T = TypeVar("T")

SortDirection = Literal["asc", "desc"]


@dataclass(frozen=True)
class PaginationMeta:
    """Pagination metadata for a single page."""

    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_items: int) -> "PaginationMeta":
        total_pages = math.ceil(total_items / limit)
        return cls(
            current_page=page,
            items_per_page=limit,
            total_items=total_items,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


@dataclass
class Paginated(Generic[T]):
    """A page of results with its metadata."""

    data: list[T]
    meta: PaginationMeta

    def to_legacy(self, row: Optional[Callable[[T], Any]] = None) -> dict[str, Any]:
        """Return the ``{rows, page, limit, total}`` shape used by list endpoints.

        Args:
            row: Optional conversion applied to each item
        """
        return {
            "rows": [row(item) for item in self.data] if row else list(self.data),
            "page": self.meta.current_page,
            "limit": self.meta.items_per_page,
            "total": self.meta.total_items,
        }


@dataclass
class QueryFilters:
    """Filters applied to a paged query.

    ``equals`` matches columns exactly; ``contains`` is a case-insensitive
    partial match.
    """

    equals: dict[str, Any] = field(default_factory=dict)
    contains: dict[str, str] = field(default_factory=dict)


def _column(model: type[Any], name: str) -> Any:
    column = getattr(model, name, None)
    if column is None or not hasattr(column, "property"):
        raise ValueError(f"Unknown field for {model.__name__}: {name}")
    return column


def _apply_filters(
    query: Select[Any], model: type[Any], filters: Optional[QueryFilters]
) -> Select[Any]:
    if not filters:
        return query
    for key, value in filters.equals.items():
        query = query.filter(_column(model, key) == value)
    for key, value in filters.contains.items():
        query = query.filter(_column(model, key).ilike(f"%{value}%"))
    return query


async def paginate(
    session: AsyncSession,
    model: type[ModelType],
    page: int = 1,
    limit: int = 10,
    filters: Optional[QueryFilters] = None,
    sort_by: Optional[str] = None,
    sort_direction: SortDirection = "asc",
) -> Paginated[ModelType]:
    """Run a paged, filtered, sorted query.

    Args:
        session: Database session
        model: ORM model to query
        page: 1-based page number
        limit: Items per page
        filters: Optional filters
        sort_by: Optional column name to sort by
        sort_direction: ``asc`` or ``desc``

    Returns:
        The requested page; a page past the end has no data but correct
        metadata

    Raises:
        ValueError: If page/limit are below 1 or a field name is unknown
    """
    if page < 1:
        raise ValueError("Page number must be greater than 0")
    if limit < 1:
        raise ValueError("Items per page must be greater than 0")
    if sort_direction not in ("asc", "desc"):
        raise ValueError(f"Invalid sort direction: {sort_direction}")

    query = _apply_filters(select(model), model, filters)
    count_query = _apply_filters(select(func.count()).select_from(model), model, filters)

    if sort_by:
        column = _column(model, sort_by)
        query = query.order_by(column.desc() if sort_direction == "desc" else column.asc())
    # Stable ordering so pages never overlap
    for name in ("created_at", "id"):
        if hasattr(model, name):
            query = query.order_by(getattr(model, name))

    query = query.offset((page - 1) * limit).limit(limit)

    total = (await session.execute(count_query)).scalar() or 0
    rows = (await session.execute(query)).scalars().all()

    return Paginated(data=list(rows), meta=PaginationMeta.build(page, limit, total))


class BaseRepository(Generic[ModelType]):
    """Base repository for common database operations."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get entity by ID."""
        return await self.session.get(self.model, id)

    async def get_for_update(self, id: str) -> Optional[ModelType]:
        """Get entity by ID, locking the row where the backend supports it."""
        query = select(self.model).filter(getattr(self.model, "id") == id)
        query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def paginate(
        self,
        page: int = 1,
        limit: int = 10,
        filters: Optional[QueryFilters] = None,
        sort_by: Optional[str] = None,
        sort_direction: SortDirection = "asc",
    ) -> Paginated[ModelType]:
        """Get a page of entities."""
        return await paginate(
            self.session, self.model, page, limit, filters, sort_by, sort_direction
        )

    async def count(self, filters: Optional[QueryFilters] = None) -> int:
        """Count entities with optional filtering."""
        query = _apply_filters(
            select(func.count()).select_from(self.model), self.model, filters
        )
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def add(self, instance: ModelType) -> ModelType:
        """Stage a new entity and flush it so defaults are populated."""
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """Apply attribute changes and flush."""
        for key, value in kwargs.items():
            setattr(instance, key, value)
        await self.session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        """Delete an entity and flush."""
        await self.session.delete(instance)
        await self.session.flush()


class UserRepository(BaseRepository[UserModel]):
    """Repository for User entities."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, UserModel)

    async def get_by_api_key_hash(self, api_key_hash: str) -> Optional[UserModel]:
        """Get user by stored API key hash."""
        query = select(self.model).filter(self.model.api_key_hash == api_key_hash)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def append_region(self, user: UserModel, region_id: str) -> UserModel:
        """Append a region id to the user's region list."""
        # Reassign so the JSON column is marked dirty
        user.regions = [*(user.regions or []), region_id]
        await self.session.flush()
        return user

    async def remove_region(self, user: UserModel, region_id: str) -> UserModel:
        """Remove a region id from the user's region list."""
        user.regions = [r for r in (user.regions or []) if r != region_id]
        await self.session.flush()
        return user


class RegionRepository(BaseRepository[RegionModel]):
    """Repository for Region entities."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, RegionModel)

    async def get_ids_by_owner(self, user_id: str) -> Sequence[str]:
        """Get the ids of a user's regions in creation order."""
        query = (
            select(self.model.id)
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at, self.model.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def delete_by_owner(self, user_id: str) -> int:
        """Delete every region owned by a user."""
        result = await self.session.execute(
            delete(self.model).where(self.model.user_id == user_id)
        )
        return result.rowcount or 0
