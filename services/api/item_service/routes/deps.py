"""Request dependencies: service objects built at startup live on app.state."""

from fastapi import Request

from item_service.services.cache import KeyValueCache
from item_service.services.degradation import Backends
from item_service.services.items import ItemService


def get_backends(request: Request) -> Backends:
    backends = getattr(request.app.state, "backends", None)
    if backends is None:
        raise RuntimeError("Backends not initialized. Start the app through its lifespan.")
    return backends


def get_item_service(request: Request) -> ItemService:
    return get_backends(request).items


def get_kv_cache(request: Request) -> KeyValueCache:
    return get_backends(request).kv
