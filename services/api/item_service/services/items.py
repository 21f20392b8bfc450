"""Item service: the store plus the cache-aside read path.

Flow for GET /api/items/{id}:
1. Check the item cache -> return cached JSON bytes verbatim on hit
2. Read the store (ItemNotFound propagates)
3. Serialize, populate the cache with a fresh TTL, return the bytes

Writes:
- create: store only (no cache entry can exist for a new id)
- update/delete: store mutation first, then unconditional invalidation
- list: store only
"""

from item_service.schemas import ItemCreate, ItemRead, ItemUpdate
from item_service.services.cache import ItemCache
from item_service.stores.items import ItemStore


def serialize_item(item: ItemRead) -> bytes:
    return item.model_dump_json().encode()


class ItemService:
    def __init__(self, store: ItemStore, cache: ItemCache) -> None:
        self.store = store
        self.cache = cache

    async def create(self, data: ItemCreate) -> ItemRead:
        return await self.store.create(data)

    async def list(self) -> list[ItemRead]:
        return await self.store.list()

    async def get(self, item_id: int) -> ItemRead:
        """Read straight from the store, bypassing the cache."""
        return await self.store.get(item_id)

    async def get_json(self, item_id: int) -> bytes:
        """Read an item through the cache.

        A cached snapshot may be stale relative to a concurrent update that
        has not invalidated it yet; staleness is bounded by the TTL.

        Returns:
            JSON bytes of the item.

        Raises:
            ItemNotFound: the store has no such item.
        """
        cached = await self.cache.get(item_id)
        if cached is not None:
            return cached

        item = await self.store.get(item_id)
        payload = serialize_item(item)
        await self.cache.put(item_id, payload)
        return payload

    async def update(self, item_id: int, patch: ItemUpdate) -> ItemRead:
        item = await self.store.update(item_id, patch)
        await self.cache.invalidate(item_id)
        return item

    async def delete(self, item_id: int) -> None:
        await self.store.delete(item_id)
        await self.cache.invalidate(item_id)
