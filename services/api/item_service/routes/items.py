"""Item CRUD endpoints.

POST   /api/items        -> 201 created item
GET    /api/items        -> 200 items in creation order
GET    /api/items/{id}   -> 200 item JSON (served from cache when present)
PUT    /api/items/{id}   -> 200 updated item
DELETE /api/items/{id}   -> 204

Routers are thin: ItemNotFound / validation / backend errors are mapped to
responses by the handlers registered in `item_service.main`.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response

from item_service.routes.deps import get_item_service
from item_service.schemas import ItemCreate, ItemRead, ItemUpdate
from item_service.services.items import ItemService

router = APIRouter()

# items.id is a 32-bit INTEGER column.
MAX_ITEM_ID = 2**31 - 1

ItemId = Annotated[int, Path(ge=1, le=MAX_ITEM_ID, description="Item identifier")]


@router.post("", response_model=ItemRead, status_code=201)
async def create_item(
    body: ItemCreate,
    items: ItemService = Depends(get_item_service),
) -> ItemRead:
    """Create an item. Timestamps and id are assigned by the store."""
    return await items.create(body)


@router.get("", response_model=list[ItemRead])
async def list_items(items: ItemService = Depends(get_item_service)) -> list[ItemRead]:
    return await items.list()


@router.get(
    "/{item_id}",
    response_model=ItemRead,
    responses={404: {"description": "Item not found"}},
)
async def get_item(
    item_id: ItemId,
    items: ItemService = Depends(get_item_service),
) -> Response:
    """Get one item.

    The body is the cached JSON snapshot on a cache hit, returned as-is.
    """
    payload = await items.get_json(item_id)
    return Response(content=payload, media_type="application/json")


@router.put("/{item_id}", response_model=ItemRead)
async def update_item(
    body: ItemUpdate,
    item_id: ItemId,
    items: ItemService = Depends(get_item_service),
) -> ItemRead:
    """Apply the fields present in the body and refresh updated_at."""
    return await items.update(item_id, body)


@router.delete("/{item_id}", status_code=204, response_class=Response)
async def delete_item(
    item_id: ItemId,
    items: ItemService = Depends(get_item_service),
) -> Response:
    await items.delete(item_id)
    return Response(status_code=204)
