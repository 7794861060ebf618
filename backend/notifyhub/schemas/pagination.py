from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import Field

from .response import CamelModel

T = TypeVar("T")


class PaginationMeta(CamelModel):
    """Pagination block of a paged listing."""

    current_page: int = Field(description="Current page (1-based)")
    total_pages: int = Field(description="Total number of pages")
    total_notifications: int = Field(description="Total number of records")
    has_next: bool
    has_prev: bool


class PaginatedNotifications(CamelModel, Generic[T]):
    notifications: list[T] = Field(description="Records on the current page")
    pagination: PaginationMeta

    @classmethod
    def create(
        cls,
        items: list[T],
        current_page: int,
        total_pages: int,
        total: int,
        has_next: bool,
        has_prev: bool,
    ) -> PaginatedNotifications[T]:
        return cls(
            notifications=items,
            pagination=PaginationMeta(
                current_page=current_page,
                total_pages=total_pages,
                total_notifications=total,
                has_next=has_next,
                has_prev=has_prev,
            ),
        )
