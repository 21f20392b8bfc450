"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    detail: dict[str, Any] | list[Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str, "detail": object } }

    Codes: ITEM_NOT_FOUND, VALIDATION_FAILED, BACKEND_ERROR,
    CACHE_UNAVAILABLE, CACHE_KEY_NOT_FOUND, INTERNAL_ERROR.
    """

    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: Any = None) -> dict[str, Any]:
        return cls(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()
