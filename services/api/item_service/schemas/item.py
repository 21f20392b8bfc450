"""Schemas for the item endpoints (/api/items)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemCreate(BaseModel):
    """Request body for POST /api/items."""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class ItemUpdate(BaseModel):
    """Request body for PUT /api/items/{id}.

    Only the fields present in the body are applied.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("name cannot be null")
        return v

    def changes(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class ItemRead(BaseModel):
    """Item as returned to callers. Always a copy of the stored record."""

    id: int
    name: str
    description: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class BackendStatus(BaseModel):
    """Active backend modes (GET /health/backends)."""

    store: str
    cache: str


class CacheValue(BaseModel):
    """Body of the generic key/value cache endpoints."""

    value: str = Field(max_length=65536)
