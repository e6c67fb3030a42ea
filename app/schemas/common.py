"""
Common Schemas

Shared base model, pagination envelope and small response types.
"""

import math
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

T = TypeVar("T")

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ApiModel(BaseModel):
    """
    Base for all API schemas.

    Serializes with camelCase keys and accepts either camelCase or
    snake_case on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(ApiModel):
    """Plain confirmation message."""

    message: str


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Page(ApiModel, Generic[T]):
    """Paginated list envelope: ``{data, pagination}``."""

    data: list[T]
    pagination: Pagination

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int) -> "Page":
        return cls(
            data=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
            ),
        )
