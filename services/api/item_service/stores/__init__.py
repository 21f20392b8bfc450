"""Data stores for persistence and caching.

Stores handle:
- Connection establishment with retries (connection)
- PostgreSQL: engine, sessions, table creation (postgres)
- Item stores: SQL and in-memory backends (items)
- Redis: byte-level cache operations with TTL (redis)

No degradation decisions in stores - that belongs in services.
"""
