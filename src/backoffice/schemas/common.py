"""Shared schema pieces: camelCase wire format, envelopes, pagination.

Python attributes are snake_case; the JSON on the wire is camelCase.
Requests accept either spelling (populate_by_name), responses are always
camelCase (FastAPI serializes response models by alias).
"""

import math
from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DataResponse(CamelModel, Generic[T]):
    """``{"success": true, "data": ..., "message": ...}``"""
    success: bool = True
    data: T
    message: Optional[str] = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class Note(CamelModel):
    """A free-text note attached to a client, inquiry or project."""
    content: str
    created_by: str
    created_at: datetime


class NoteCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=1000)


URL_OR_EMPTY = r"^(https?://\S+)?$"
PHONE = r"^\+?[\d\s\-\(\)]+$"
