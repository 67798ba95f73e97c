"""
Response and request shapes shared across features.
"""
from typing import Generic, List, TypeVar
from pydantic import BaseModel, Field

from domain_admin.core.pagination import PageParams


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated list response."""
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, items: List[T], total: int, params: PageParams) -> "Page[T]":
        pages = (total + params.limit - 1) // params.limit if params.limit > 0 else 0
        return cls(items=items, total=total, page=params.page, limit=params.limit, pages=pages)


class StatusUpdate(BaseModel):
    """Binary enable flag: 1 enabled, 0 disabled."""
    status: int = Field(..., ge=0, le=1)


class MessageResponse(BaseModel):
    message: str


def reject_null(v):
    """Field validator body for optional update fields backed by NOT NULL columns."""
    if v is None:
        raise ValueError("may not be null")
    return v
