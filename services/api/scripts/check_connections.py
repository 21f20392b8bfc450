#!/usr/bin/env python3
"""Probe the configured backends and print the modes the service would use.

Runs the same startup sequence as the API (raw TCP check, retried liveness
probes, table creation) without serving requests. Useful when a deploy comes
up in degraded mode and it is unclear whether the network, credentials or
SSL settings are at fault.

Run (local / container):
  cd services/api
  python -m scripts.check_connections

Exit code is 0 when both backends are reachable, 1 otherwise.
"""

import asyncio
import logging
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from item_service.services.degradation import CacheMode, StoreMode, initialize_backends  # noqa: E402
from item_service.settings import get_settings  # noqa: E402


async def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = get_settings()

    backends = await initialize_backends(settings)
    try:
        policy = backends.policy
        print(f"store: {policy.store_mode.value}")
        print(f"cache: {policy.cache_mode.value}")
        healthy = policy.store_mode is StoreMode.PERSISTENT and policy.cache_mode is CacheMode.PRESENT
    finally:
        await backends.close()
    return 0 if healthy else 1


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
