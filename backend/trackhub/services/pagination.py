"""Page/limit pagination."""

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            items_per_page=limit,
        )

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> dict:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    pagination: Pagination


def clamp(page: int | None, limit: int | None, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normalize page/limit query values: page >= 1, 1 <= limit <= max_limit."""
    page = max(1, page or 1)
    limit = min(max(1, limit or default_limit), max_limit)
    return page, limit


def paginate(items: Sequence[T], page: int, limit: int) -> Page[T]:
    """Slice an already filtered and sorted sequence."""
    start = (page - 1) * limit
    return Page(
        items=list(items[start:start + limit]),
        pagination=Pagination.build(page, limit, len(items)),
    )
