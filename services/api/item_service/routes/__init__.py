"""API routes."""

from fastapi import APIRouter

from item_service.routes import cache, items

api_router = APIRouter()

# Item CRUD
api_router.include_router(items.router, prefix="/api/items", tags=["items"])

# Generic key/value cache
api_router.include_router(cache.router, prefix="/api/cache", tags=["cache"])
