"""Test doubles: fake Redis client, deterministic clock and sleep."""

from datetime import datetime, timedelta, timezone


class FakeRedis:
    """Subset of the redis.asyncio.Redis API used by RedisCache.

    Values are kept as bytes; TTLs expire against a manual clock
    (`advance`). Setting `fail` makes every call raise it.
    """

    def __init__(self, events: list[str] | None = None) -> None:
        self.data: dict[str, tuple[bytes, float]] = {}
        self.ttls: dict[str, int] = {}
        self.now = 0.0
        self.fail: Exception | None = None
        self.closed = False
        self.events = events if events is not None else []

    def _check(self, op: str, key: str = "") -> None:
        self.events.append(f"redis:{op}:{key}" if key else f"redis:{op}")
        if self.fail is not None:
            raise self.fail

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def get(self, key: str) -> bytes | None:
        self._check("get", key)
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.now >= expires_at:
            del self.data[key]
            return None
        return value

    async def setex(self, key: str, ttl: int, value: bytes | str) -> bool:
        self._check("setex", key)
        if isinstance(value, str):
            value = value.encode()
        self.data[key] = (value, self.now + ttl)
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> int:
        self._check("delete", key)
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        self._check("ping")
        return True

    async def aclose(self) -> None:
        self.closed = True


class TickingClock:
    """Deterministic clock: every call is one second later."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

