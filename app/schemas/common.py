"""Response envelope and pagination shared by every router."""
from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class ApiErrorBody(BaseModel):
    code: str
    message: str
    details: Any = None


class APIResponse(BaseModel):
    success: bool
    data: Any = None
    error: ApiErrorBody | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


def ok(data: Any = None, **extra: Any) -> dict:
    """{success: true, data} with any extra top-level keys (pagination, counts)."""
    body = {"success": True, "data": jsonable_encoder(data)}
    body.update(jsonable_encoder(extra))
    return body


def paginate(query, page: int, limit: int):
    """(items, Pagination) for a SQLAlchemy query; limit is clamped to MAX_PAGE_SIZE."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if total else 0
    return items, Pagination(page=page, limit=limit, total=total, total_pages=pages)
