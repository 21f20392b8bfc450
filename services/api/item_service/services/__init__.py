"""Business logic services.

- cache: best-effort item cache and generic key/value cache
- items: item operations with the cache-aside read path
- degradation: startup backend selection
"""
