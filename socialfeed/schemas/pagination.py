"""Generic page envelope shared by the feed and user list endpoints."""
from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    size: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        return (self.total + self.size - 1) // self.size if self.size else 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @computed_field  # type: ignore[prop-decorator]
    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next else None


def get_offset(page: int, size: int) -> int:
    """
    Calculate offset for pagination
    """
    return (page - 1) * size


__all__ = ["Page", "get_offset"]
