"""Error taxonomy for the item service.

Startup errors (ConfigurationMissing, ConnectionUnreachable) are normally
converted into a degraded mode by the degradation policy. Request errors
(ItemNotFound, ValidationFailed, BackendTransientError) are mapped to HTTP
responses in `item_service.main`.
"""

from typing import Any


class ItemServiceError(RuntimeError):
    """Base class for all item service errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ConfigurationMissing(ItemServiceError):
    code = "CONFIGURATION_MISSING"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Database settings are not fully set: {', '.join(missing)}",
            detail={"missing": missing},
        )
        self.missing = missing


class ConnectionUnreachable(ItemServiceError):
    code = "CONNECTION_UNREACHABLE"


class NotFound(ItemServiceError):
    code = "NOT_FOUND"


class ItemNotFound(NotFound):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item {item_id} not found", detail={"id": item_id})
        self.item_id = item_id


class ValidationFailed(ItemServiceError):
    code = "VALIDATION_FAILED"


class BackendTransientError(ItemServiceError):
    """A single operation against an otherwise healthy backend failed."""

    code = "BACKEND_ERROR"


class CacheUnavailable(ItemServiceError):
    """The generic key/value cache endpoints need a cache and there is none."""

    code = "CACHE_UNAVAILABLE"


class CacheKeyNotFound(NotFound):
    code = "CACHE_KEY_NOT_FOUND"

    def __init__(self, key: str) -> None:
        super().__init__(f"Cache key {key} not found", detail={"key": key})
        self.key = key
