"""
Shared schemas: addresses, pagination envelope
"""

from fastapi import Query
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Type


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class PageLink(BaseModel):
    page: int
    limit: int


class Pagination(BaseModel):
    next: Optional[PageLink] = None
    prev: Optional[PageLink] = None


class Page(BaseModel):
    """Listing envelope"""
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: List[Any]


class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_page(items: List[Any], total: int, params: PageParams) -> Dict[str, Any]:
    """Build the listing envelope with next/prev links"""
    pagination = Pagination()
    if params.offset + params.limit < total:
        pagination.next = PageLink(page=params.page + 1, limit=params.limit)
    if params.offset > 0:
        pagination.prev = PageLink(page=params.page - 1, limit=params.limit)
    return Page(count=len(items), total=total, pagination=pagination, data=items).model_dump(mode="json")


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> PageParams:
    """Dependency reading page/limit from the query string"""
    return PageParams(page=page, limit=limit)


def to_data(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    """Serialize an ORM object through a response schema"""
    return schema.model_validate(obj).model_dump(mode="json")
