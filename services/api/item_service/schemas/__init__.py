"""Pydantic schemas for API request/response validation."""

from item_service.schemas.common import ErrorDetail, ErrorResponse
from item_service.schemas.item import (
    BackendStatus,
    CacheValue,
    ItemCreate,
    ItemRead,
    ItemUpdate,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "BackendStatus",
    "CacheValue",
    "ItemCreate",
    "ItemRead",
    "ItemUpdate",
]
