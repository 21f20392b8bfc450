import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from item_service.errors import ItemNotFound
from item_service.schemas import ItemCreate, ItemUpdate
from item_service.stores.items import MemoryItemStore


@pytest.mark.asyncio
async def test_create_assigns_increasing_ids_and_timestamps(memory_store: MemoryItemStore) -> None:
    """Ids increase from 1 and both timestamps are set."""
    first = await memory_store.create(ItemCreate(name="a"))
    second = await memory_store.create(ItemCreate(name="b", description="second"))

    assert (first.id, second.id) == (1, 2)
    assert first.created_at == first.updated_at
    assert second.description == "second"


@pytest.mark.asyncio
async def test_get_returns_what_create_returned(memory_store: MemoryItemStore) -> None:
    """Get returns the created item."""
    created = await memory_store.create(ItemCreate(name="a", description="x"))
    assert await memory_store.get(created.id) == created


@pytest.mark.asyncio
async def test_get_unknown_id_raises_not_found(memory_store: MemoryItemStore) -> None:
    """Unknown ids raise ItemNotFound."""
    with pytest.raises(ItemNotFound):
        await memory_store.get(99)


@pytest.mark.asyncio
async def test_list_keeps_insertion_order_and_returns_copies(memory_store: MemoryItemStore) -> None:
    """List is in insertion order and callers get copies."""
    assert await memory_store.list() == []
    for name in ("a", "b", "c"):
        await memory_store.create(ItemCreate(name=name))

    items = await memory_store.list()
    assert [item.name for item in items] == ["a", "b", "c"]

    items.clear()
    assert len(await memory_store.list()) == 3


@pytest.mark.asyncio
async def test_update_applies_patch_and_refreshes_updated_at(memory_store: MemoryItemStore) -> None:
    """Update applies present fields and bumps updated_at."""
    created = await memory_store.create(ItemCreate(name="a", description="keep me"))
    updated = await memory_store.update(created.id, ItemUpdate(name="a2"))

    assert updated.name == "a2"
    assert updated.description == "keep me"
    assert updated.created_at == created.created_at
    assert updated.updated_at > created.updated_at
    assert await memory_store.get(created.id) == updated


@pytest.mark.asyncio
async def test_update_unknown_id_raises_not_found(memory_store: MemoryItemStore) -> None:
    """Updating an unknown id raises ItemNotFound."""
    with pytest.raises(ItemNotFound):
        await memory_store.update(5, ItemUpdate(name="x"))


@pytest.mark.asyncio
async def test_delete_twice_raises_not_found(memory_store: MemoryItemStore) -> None:
    """A second delete raises ItemNotFound."""
    created = await memory_store.create(ItemCreate(name="a"))
    await memory_store.delete(created.id)

    with pytest.raises(ItemNotFound):
        await memory_store.get(created.id)
    with pytest.raises(ItemNotFound):
        await memory_store.delete(created.id)


@pytest.mark.asyncio
async def test_ids_are_not_reused_after_delete(memory_store: MemoryItemStore) -> None:
    """Deleted ids are never handed out again."""
    first = await memory_store.create(ItemCreate(name="a"))
    await memory_store.delete(first.id)
    second = await memory_store.create(ItemCreate(name="b"))
    assert second.id == first.id + 1


@pytest.mark.asyncio
async def test_concurrent_creates_get_unique_ids() -> None:
    """Concurrent coroutine creates get distinct ids."""
    store = MemoryItemStore()
    created = await asyncio.gather(*(store.create(ItemCreate(name=f"item-{n}")) for n in range(200)))

    ids = [item.id for item in created]
    assert len(set(ids)) == 200
    assert sorted(ids) == list(range(1, 201))
    assert len(store) == 200


def test_creates_from_many_threads_get_unique_ids() -> None:
    """Creates from many threads get distinct ids."""
    store = MemoryItemStore()

    def create(n: int) -> int:
        return asyncio.run(store.create(ItemCreate(name=f"item-{n}"))).id

    with ThreadPoolExecutor(max_workers=16) as pool:
        ids = list(pool.map(create, range(150)))

    assert len(set(ids)) == 150
    assert sorted(ids) == list(range(1, 151))
    listed = asyncio.run(store.list())
    assert len(listed) == 150
