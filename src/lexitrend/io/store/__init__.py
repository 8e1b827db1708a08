"""Persistent key-value stores.

Backends:
    - MemoryStore: in-process (default)
    - RedisStore: redis.asyncio backend (requires lexitrend[redis])
"""

from .store import MemoryStore, PersistentStore

__all__ = ["PersistentStore", "MemoryStore", "RedisStore"]


def __getattr__(name: str) -> object:
    """Lazy import the Redis backend to avoid import-time dependency."""
    if name == "RedisStore":
        from .redis import RedisStore
        return RedisStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
