"""Generic key/value cache endpoints.

GET /api/cache/{key} -> 200 {key, value} | 404 | 503
PUT /api/cache/{key} -> 200 {key, value, ttl} | 503

Entries live for one minute. Without a cache backend both answer 503.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from item_service.routes.deps import get_kv_cache
from item_service.schemas import CacheValue
from item_service.services.cache import KeyValueCache

router = APIRouter()

CacheKey = Annotated[
    str,
    Path(
        description="Cache key",
        min_length=1,
        max_length=200,
        pattern=r"^[a-zA-Z0-9_.:-]+$",
    ),
]


@router.get("/{key}")
async def get_value(
    key: CacheKey,
    kv: KeyValueCache = Depends(get_kv_cache),
) -> dict[str, str]:
    return {"key": key, "value": await kv.get(key)}


@router.put("/{key}")
async def put_value(
    body: CacheValue,
    key: CacheKey,
    kv: KeyValueCache = Depends(get_kv_cache),
) -> dict[str, str | int]:
    await kv.set(key, body.value)
    return {"key": key, "value": body.value, "ttl": kv.ttl}
