from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Offset pagination metadata"""
    total: int
    limit: int
    offset: int
    has_more: bool


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope returned when a list endpoint is called with include_pagination=true"""
    items: list[T]
    pagination: PaginationMeta


def paginate(items: list[T], *, total: int, limit: int, offset: int) -> PaginatedResponse[T]:
    return PaginatedResponse(
        items=items,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + len(items) < total),
        ),
    )
