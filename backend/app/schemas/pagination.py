"""Shared pagination schemas for list endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaginationMeta(BaseModel):
    """Derived page metadata; never stored."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")

    @classmethod
    def from_counts(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        """totalPages = ceil(total / limit); a page past the end keeps hasPrev and drops hasNext."""
        total_pages = -(-total // limit) if total > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class ListResponse(BaseModel):
    """Standard list envelope: success flag, message, items and pagination."""

    success: bool = True
    message: str
    data: list[dict[str, Any]]
    pagination: PaginationMeta
