"""Shared fixtures: a fake Redis client, clocks and service wiring."""

import pytest
from httpx import ASGITransport, AsyncClient

from item_service.main import create_app
from item_service.services.cache import ItemCache, KeyValueCache
from item_service.services.degradation import BackendPolicy, Backends, CacheMode, StoreMode
from item_service.services.items import ItemService
from item_service.settings import Settings
from item_service.stores.items import MemoryItemStore
from item_service.stores.redis import RedisCache

from fakes import FakeRedis, TickingClock

# Env vars that would otherwise leak the developer's setup into tests.
ENV_VARS = [
    "DATABASE_URL",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "SSL_MODE",
    "DB_SSL_MODE",
    "DB_CONFIG_STRICT",
    "NEW_POSTGRES_DATABASE_HOST",
    "NEW_POSTGRES_DATABASE_PORT",
    "NEW_POSTGRES_DATABASE_USER",
    "NEW_POSTGRES_DATABASE_PASSWORD",
    "NEW_POSTGRES_DATABASE_DATA",
    "REDIS_URL",
    "DEGRADATION_ENABLED",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def fake_redis(events: list[str]) -> FakeRedis:
    return FakeRedis(events)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def memory_store(clock: TickingClock) -> MemoryItemStore:
    return MemoryItemStore(clock=clock)


@pytest.fixture
def item_cache(fake_redis: FakeRedis) -> ItemCache:
    return ItemCache(RedisCache(fake_redis, op_timeout=1.0), ttl=600)


@pytest.fixture
def item_service(memory_store: MemoryItemStore, item_cache: ItemCache) -> ItemService:
    return ItemService(memory_store, item_cache)


@pytest.fixture
def backends(item_service: ItemService, fake_redis: FakeRedis) -> Backends:
    """Ephemeral store with a (fake) cache present."""
    cache = RedisCache(fake_redis, op_timeout=1.0)
    return Backends(
        policy=BackendPolicy(store_mode=StoreMode.EPHEMERAL, cache_mode=CacheMode.PRESENT),
        items=item_service,
        kv=KeyValueCache(cache),
        cache=cache,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
async def client(settings: Settings, backends: Backends):
    """Create test client with injected backends (lifespan is not run)."""
    app = create_app(settings=settings, backends=backends)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
