"""Shared response models for API endpoints."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Generic pagination model for all list responses."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "rows": [],
                "page": 1,
                "limit": 10,
                "total": 0,
            }
        },
    )

    rows: list[T] = Field(
        ...,
        title="Rows",
        description="Items in the current page",
    )
    page: int = Field(
        ...,
        title="Page",
        description="Current page number",
        ge=1,
        examples=[1],
    )
    limit: int = Field(
        ...,
        title="Limit",
        description="Number of items per page",
        ge=1,
        examples=[10],
    )
    total: int = Field(
        ...,
        title="Total",
        description="Total number of items across all pages",
        ge=0,
        examples=[123],
    )


class StatusResponse(BaseModel):
    status: str
    message: str | None = None
