"""Degradation policy: which backends are active for this process.

Decided once at startup:
- store: PERSISTENT when PostgreSQL answers its liveness probe within the
  retry budget, otherwise EPHEMERAL (in-memory, lost on restart), or a
  startup failure when DEGRADATION_ENABLED is false
- cache: PRESENT when Redis answers PING, otherwise ABSENT (also when
  REDIS_URL is empty)

Nothing re-probes afterwards; a backend that was down at startup stays
unused until the process restarts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import logging
import secrets
from urllib.parse import urlsplit

from sqlalchemy.exc import SQLAlchemyError

from item_service.errors import ConfigurationMissing, ConnectionUnreachable
from item_service.services.cache import ItemCache, KeyValueCache
from item_service.services.items import ItemService
from item_service.settings import Settings
from item_service.stores.connection import (
    ConnectionTarget,
    RetryPolicy,
    establish,
    redact_url,
    scrub,
    tcp_probe,
)
from item_service.stores.items import ItemStore, MemoryItemStore, SqlItemStore
from item_service.stores.postgres import Database, open_database
from item_service.stores.redis import TTL_ITEM, RedisCache, open_redis

logger = logging.getLogger("uvicorn.error")

OpenDatabase = Callable[..., Awaitable[Database]]
OpenCache = Callable[..., Awaitable[RedisCache]]
TcpCheck = Callable[[str, int, float], Awaitable[BaseException | None]]


class StoreMode(str, Enum):
    PERSISTENT = "persistent"
    EPHEMERAL = "ephemeral"


class CacheMode(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


@dataclass(frozen=True)
class BackendPolicy:
    store_mode: StoreMode
    cache_mode: CacheMode


@dataclass
class Backends:
    """Service objects for one process, built from the policy."""

    policy: BackendPolicy
    items: ItemService
    kv: KeyValueCache
    database: Database | None = None
    cache: RedisCache | None = None

    @classmethod
    def build(
        cls,
        *,
        database: Database | None,
        cache: RedisCache | None,
        item_cache_ttl: int = TTL_ITEM,
    ) -> Backends:
        """Wire the services for the given handles.

        Without a database the in-memory ids restart at 1, so the item cache
        gets a random per-process namespace.
        """
        if database is not None:
            store: ItemStore = SqlItemStore(database)
            namespace = ""
        else:
            store = MemoryItemStore()
            namespace = secrets.token_hex(8)
        item_cache = ItemCache(cache, ttl=item_cache_ttl, namespace=namespace)
        policy = BackendPolicy(
            store_mode=StoreMode.PERSISTENT if database is not None else StoreMode.EPHEMERAL,
            cache_mode=CacheMode.PRESENT if cache is not None else CacheMode.ABSENT,
        )
        return cls(
            policy=policy,
            items=ItemService(store, item_cache),
            kv=KeyValueCache(cache),
            database=database,
            cache=cache,
        )

    async def close(self) -> None:
        """Close the cache client and dispose the engine."""
        if self.cache is not None:
            try:
                await self.cache.close()
            except Exception:
                logger.exception("Redis close failed")
            self.cache = None
        if self.database is not None:
            await self.database.close()
            self.database = None


async def connect_database(
    settings: Settings,
    *,
    open_db: OpenDatabase = open_database,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    tcp_check: TcpCheck | None = tcp_probe,
) -> Database | None:
    """Connect to PostgreSQL or decide to run without it.

    Returns:
        The verified Database, or None when running degraded.

    Raises:
        ConfigurationMissing: strict config is incomplete and degradation is off.
        ConnectionUnreachable: database unreachable and degradation is off.
    """
    try:
        target: ConnectionTarget = settings.connection_target()
    except ConfigurationMissing as exc:
        if not settings.degradation_enabled:
            raise
        logger.warning(f"{exc.message}; running with the in-memory store")
        return None

    description = target.describe()
    logger.info(f"postgres: connecting to {description}")

    if tcp_check is not None and target.uses_asyncpg and target.host:
        tcp_error = await tcp_check(target.host, target.port, settings.probe_timeout)
        if tcp_error is None:
            logger.info(f"postgres: raw TCP connect to {target.host}:{target.port} succeeded")
        else:
            logger.warning(f"postgres: raw TCP connect to {target.host}:{target.port} failed: {tcp_error!r}")

    policy = RetryPolicy(
        max_attempts=settings.connect_max_attempts,
        base_delay=settings.connect_base_delay,
        sleep=sleep,
    )
    outcome = await establish(
        lambda: open_db(target, timeout=settings.probe_timeout, echo=settings.debug),
        name="postgres",
        target=description,
        policy=policy,
        secrets=[target.password],
    )
    if not outcome.ok:
        reason = scrub(repr(outcome.error), [target.password])
        if not settings.degradation_enabled:
            raise ConnectionUnreachable(
                f"Database unreachable after {outcome.attempts} attempts: {reason}",
                detail={"target": description},
            ) from outcome.error
        logger.warning(
            "Database not available, running with the in-memory store "
            "(data does not survive a restart)"
        )
        return None

    database: Database = outcome.handle
    try:
        await database.create_tables()
    except SQLAlchemyError as exc:
        logger.warning(f"Table creation warning: {exc}")
    return database


async def connect_cache(
    settings: Settings,
    *,
    open_cache: OpenCache = open_redis,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RedisCache | None:
    """Connect to Redis or decide to run without a cache.

    Never raises for connectivity problems: the cache is optional.
    """
    if not settings.cache_enabled:
        logger.info("REDIS_URL is empty, continuing without cache")
        return None

    url = settings.redis_url.strip()
    try:
        password = urlsplit(url).password or ""
    except ValueError:
        password = ""
    policy = RetryPolicy(
        max_attempts=settings.cache_connect_max_attempts,
        base_delay=settings.connect_base_delay,
        sleep=sleep,
    )
    outcome = await establish(
        lambda: open_cache(url, timeout=settings.probe_timeout, op_timeout=settings.cache_op_timeout),
        name="redis",
        target=redact_url(url),
        policy=policy,
        secrets=[password],
    )
    if not outcome.ok:
        logger.warning("Redis not available, continuing without cache")
        return None
    return outcome.handle


async def initialize_backends(
    settings: Settings,
    *,
    open_db: OpenDatabase = open_database,
    open_cache: OpenCache = open_redis,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    tcp_check: TcpCheck | None = tcp_probe,
) -> Backends:
    """Probe both backends and build the service objects."""
    database = await connect_database(settings, open_db=open_db, sleep=sleep, tcp_check=tcp_check)
    cache = await connect_cache(settings, open_cache=open_cache, sleep=sleep)

    backends = Backends.build(database=database, cache=cache, item_cache_ttl=settings.item_cache_ttl)
    logger.info(
        f"Backends ready: store={backends.policy.store_mode.value} "
        f"cache={backends.policy.cache_mode.value}"
    )
    return backends
