"""Redis store for caching.

Handles:
- Client creation and liveness probe
- Byte-level get/set/delete with TTL, each bounded by a timeout

Values are stored and returned as raw bytes (decode_responses=False) so
cached item snapshots are served byte-for-byte.

TTL policies:
- Item snapshots: 10 minutes (configurable via ITEM_CACHE_TTL)
- Generic key/value entries: 1 minute
"""

import asyncio
from typing import Any

import redis.asyncio as redis

# TTL constants (in seconds)
TTL_ITEM = 600  # 10 minutes
TTL_KV = 60  # 1 minute

# Key prefixes. Ephemeral processes add a per-process namespace after PREFIX_ITEM.
PREFIX_ITEM = "item:"
PREFIX_KV = "kv:"


def item_key(item_id: int, namespace: str = "") -> str:
    if namespace:
        return f"{PREFIX_ITEM}{namespace}:{item_id}"
    return f"{PREFIX_ITEM}{item_id}"


def kv_key(key: str) -> str:
    return f"{PREFIX_KV}{key}"


class RedisCache:
    """Thin wrapper over a redis.asyncio client.

    Errors (redis.RedisError, OSError, TimeoutError) propagate; callers decide
    whether a cache failure matters.
    """

    def __init__(self, client: Any, *, op_timeout: float = 2.0) -> None:
        self._client = client
        self._op_timeout = op_timeout

    async def get(self, key: str) -> bytes | None:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached bytes or None if not found.
        """
        return await asyncio.wait_for(self._client.get(key), self._op_timeout)

    async def set(self, key: str, value: bytes | str, ttl: int) -> None:
        """Set value in cache with TTL.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds.
        """
        await asyncio.wait_for(self._client.setex(key, ttl, value), self._op_timeout)

    async def delete(self, key: str) -> None:
        """Delete value from cache.

        Args:
            key: Cache key.
        """
        await asyncio.wait_for(self._client.delete(key), self._op_timeout)

    async def ping(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._client.ping(), timeout or self._op_timeout)

    async def close(self) -> None:
        await self._client.aclose()


async def open_redis(url: str, *, timeout: float, op_timeout: float) -> RedisCache:
    """Create a Redis client and validate connectivity with PING.

    The client is closed again when the probe fails.
    """
    client = redis.from_url(
        url,
        decode_responses=False,
        socket_connect_timeout=timeout,
        socket_timeout=op_timeout,
    )
    cache = RedisCache(client, op_timeout=op_timeout)
    try:
        await cache.ping(timeout)
    except BaseException:
        await cache.close()
        raise
    return cache
