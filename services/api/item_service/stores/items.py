"""Item stores: persistent (SQLAlchemy) and ephemeral (in-memory).

Both implement the same five operations and return `ItemRead` copies.
Which one is active is decided once at startup by the degradation policy.

The in-memory store does not survive a restart; an empty list after a
restart is expected in degraded mode.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import threading
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from item_service.errors import BackendTransientError, ItemNotFound
from item_service.models import Item
from item_service.schemas import ItemCreate, ItemRead, ItemUpdate
from item_service.stores.postgres import Database

logger = logging.getLogger("uvicorn.error")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class ItemStore(Protocol):
    """Operations every item backend provides."""

    async def create(self, data: ItemCreate) -> ItemRead: ...

    async def get(self, item_id: int) -> ItemRead: ...

    async def list(self) -> list[ItemRead]: ...

    async def update(self, item_id: int, patch: ItemUpdate) -> ItemRead: ...

    async def delete(self, item_id: int) -> None: ...


class MemoryItemStore:
    """Insertion-ordered in-memory store behind a single mutex.

    The lock is held only for the copy-out or mutation itself, never across
    an await, so it is safe for both coroutines and threads.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._lock = threading.Lock()
        self._items: dict[int, ItemRead] = {}
        self._next_id = 1
        self._clock = clock

    async def create(self, data: ItemCreate) -> ItemRead:
        now = self._clock()
        with self._lock:
            item = ItemRead(
                id=self._next_id,
                name=data.name,
                description=data.description,
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1
            self._items[item.id] = item
        return item.model_copy()

    async def get(self, item_id: int) -> ItemRead:
        with self._lock:
            item = self._items.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item.model_copy()

    async def list(self) -> list[ItemRead]:
        with self._lock:
            items = list(self._items.values())
        return [item.model_copy() for item in items]

    async def update(self, item_id: int, patch: ItemUpdate) -> ItemRead:
        changes = patch.changes()
        now = self._clock()
        with self._lock:
            current = self._items.get(item_id)
            if current is None:
                raise ItemNotFound(item_id)
            updated = current.model_copy(update={**changes, "updated_at": now})
            self._items[item_id] = updated
        return updated.model_copy()

    async def delete(self, item_id: int) -> None:
        with self._lock:
            if self._items.pop(item_id, None) is None:
                raise ItemNotFound(item_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SqlItemStore:
    """Item store backed by the `items` table."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = database
        self._clock = clock

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncGenerator[AsyncSession, None]:
        """Session that turns driver/database failures into BackendTransientError."""
        try:
            async with self._db.session() as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Item {action} failed: {type(exc).__name__}: {exc}")
            raise BackendTransientError(f"Item {action} failed") from exc

    async def _load(self, session: AsyncSession, item_id: int) -> Item:
        item = await session.get(Item, item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    async def create(self, data: ItemCreate) -> ItemRead:
        now = self._clock()
        async with self._session("create") as session:
            item = Item(
                name=data.name,
                description=data.description,
                created_at=now,
                updated_at=now,
            )
            session.add(item)
            await session.flush()
            # Read back so the returned value matches what later reads see.
            await session.refresh(item)
            result = ItemRead.model_validate(item)
        return result

    async def get(self, item_id: int) -> ItemRead:
        async with self._session("read") as session:
            item = await self._load(session, item_id)
            result = ItemRead.model_validate(item)
        return result

    async def list(self) -> list[ItemRead]:
        async with self._session("list") as session:
            rows = (await session.execute(select(Item).order_by(Item.id))).scalars().all()
            result = [ItemRead.model_validate(row) for row in rows]
        return result

    async def update(self, item_id: int, patch: ItemUpdate) -> ItemRead:
        changes = patch.changes()
        now = self._clock()
        async with self._session("update") as session:
            item = await self._load(session, item_id)
            for field, value in changes.items():
                setattr(item, field, value)
            item.updated_at = now
            await session.flush()
            await session.refresh(item)
            result = ItemRead.model_validate(item)
        return result

    async def delete(self, item_id: int) -> None:
        async with self._session("delete") as session:
            item = await self._load(session, item_id)
            await session.delete(item)
