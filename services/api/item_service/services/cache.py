"""Best-effort item cache (cache-aside).

The cache is never a source of truth. Any failure talking to Redis is
logged and treated as a miss for that single operation, so a dropped or
slow cache only costs latency.
"""

import asyncio
import logging

from redis.exceptions import RedisError

from item_service.errors import CacheKeyNotFound, CacheUnavailable
from item_service.stores.redis import TTL_ITEM, TTL_KV, RedisCache, item_key, kv_key

logger = logging.getLogger("uvicorn.error")

CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class ItemCache:
    """Item snapshot cache keyed by `item:<id>`.

    With `backend=None` (cache absent) every lookup is a miss and writes are
    no-ops. A non-empty `namespace` keys entries as `item:<namespace>:<id>`,
    so ids restarting at 1 never hit entries left by another process.
    """

    def __init__(self, backend: RedisCache | None, *, ttl: int = TTL_ITEM, namespace: str = "") -> None:
        self.backend = backend
        self.ttl = ttl
        self.namespace = namespace

    def key(self, item_id: int) -> str:
        return item_key(item_id, self.namespace)

    @property
    def present(self) -> bool:
        return self.backend is not None

    async def get(self, item_id: int) -> bytes | None:
        if self.backend is None:
            return None
        try:
            value = await self.backend.get(self.key(item_id))
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache read for item {item_id} failed, reading store: {exc!r}")
            return None
        if isinstance(value, str):
            value = value.encode()
        # Treat blank entries as misses.
        if not value or not value.strip():
            return None
        return value

    async def put(self, item_id: int, payload: bytes) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.set(self.key(item_id), payload, self.ttl)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache write for item {item_id} failed: {exc!r}")

    async def invalidate(self, item_id: int) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.delete(self.key(item_id))
        except CACHE_ERRORS as exc:
            # Entry expires on its own after the TTL.
            logger.warning(f"Cache invalidation for item {item_id} failed: {exc!r}")


class KeyValueCache:
    """Generic string key/value entries with a short TTL.

    Unlike the item cache this one has no store behind it, so failures are
    surfaced as CacheUnavailable instead of being swallowed.
    """

    def __init__(self, backend: RedisCache | None, *, ttl: int = TTL_KV) -> None:
        self.backend = backend
        self.ttl = ttl

    def _require_backend(self) -> RedisCache:
        if self.backend is None:
            raise CacheUnavailable("Cache is not available")
        return self.backend

    async def get(self, key: str) -> str:
        backend = self._require_backend()
        try:
            value = await backend.get(kv_key(key))
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache read for key {key} failed: {exc!r}")
            raise CacheUnavailable("Cache read failed") from exc
        if value is None:
            raise CacheKeyNotFound(key)
        return value.decode() if isinstance(value, bytes) else value

    async def set(self, key: str, value: str) -> None:
        backend = self._require_backend()
        try:
            await backend.set(kv_key(key), value.encode(), self.ttl)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache write for key {key} failed: {exc!r}")
            raise CacheUnavailable("Cache write failed") from exc
