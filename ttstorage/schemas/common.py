"""Common schemas used across multiple endpoints."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ttstorage.types import Page

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Response model for errors."""
    timestamp: str
    code: str
    status: int
    path: str
    error: str
    message: str


class SuccessResponse(BaseModel):
    success: bool


class PageResponse(CamelModel, Generic[T]):
    """One page of results plus totals over the whole query."""
    content: List[T]
    total_elements: int
    total_pages: int
    page: int
    size: int

    @classmethod
    def from_page(cls, page: Page, content: List[T]) -> "PageResponse[T]":
        return cls(
            content=content,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
            page=page.page,
            size=page.size,
        )
