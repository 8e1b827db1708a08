"""Typed result cache on top of a PersistentStore.

Every store call runs under the cache-kind retry policy. Entries carry no
TTL and are never evicted: they live until remove() or clear(). Callers that
need fresh results change the key (the fingerprint embeds the model id) or
remove the entry explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from lexitrend.foundation.errors import ErrorKind, JsonDict, LexiTrendError
from lexitrend.io.store import PersistentStore
from lexitrend.runtime.retry import RetryPolicy, retry_with_backoff

logger = logging.getLogger("lexitrend.cache")

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """A stored key/value pair. Key is unique per store."""
    key: str
    value: T


class CacheService:
    """Key-value cache with uniform retry and error classification.

    Args:
        store: Backing persistent store
        policies: Retry policy table override (tests use zero-delay policies)

    Example:
        >>> cache = CacheService(MemoryStore())
        >>> await cache.set("insight:rizz:en:gemini-1.5-flash", insight.model_dump(by_alias=True))
        >>> await cache.get("insight:rizz:en:gemini-1.5-flash")
        {'definition': ...}
    """

    __slots__ = ("_store", "_policies")

    def __init__(self, store: PersistentStore, *, policies: Mapping[ErrorKind, RetryPolicy] | None = None) -> None:
        self._store = store
        self._policies = policies

    @property
    def store(self) -> PersistentStore:
        return self._store

    async def _run(self, operation: str, fn: Callable[[], Awaitable[T]], key: str | None = None) -> T:
        try:
            return await retry_with_backoff(fn, ErrorKind.CACHE, policies=self._policies, name=f"cache.{operation}")
        except LexiTrendError as e:
            if e.kind is ErrorKind.CACHE:
                raise
            raise LexiTrendError.cache(f"cache {operation} failed: {e.message}", operation=f"cache.{operation}", cause=e, key=key) from e
        except Exception as e:
            raise LexiTrendError.cache(f"cache {operation} failed: {e}", operation=f"cache.{operation}", cause=e, key=key) from e

    async def _read(self, key: str) -> Any | None:
        try:
            return await self._store.get(key)
        except LexiTrendError as e:
            # Undecodable entries are misses; anything else is a store failure
            if e.kind is ErrorKind.STORAGE and e.context.operation == "store.decode":
                logger.warning(f"Dropping corrupted cache entry {key!r}")
                return None
            raise

    async def get(self, key: str) -> Any | None:
        """Get stored value, or None if absent or corrupted."""
        return await self._run("get", lambda: self._read(key), key)

    async def get_model(self, key: str, model: type[M]) -> M | None:
        """Get stored value validated as model; entries that fail validation are misses."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError:
            logger.warning(f"Cached value under {key!r} does not match {model.__name__}, ignoring")
            return None

    async def set(self, key: str, value: Any) -> None:
        """Store value under key, overwriting any previous entry."""
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", by_alias=True)
        await self._run("set", lambda: self._store.set(key, value), key)

    async def remove(self, key: str) -> None:
        await self._run("remove", lambda: self._store.remove(key), key)

    async def clear(self) -> None:
        await self._run("clear", self._store.clear)

    async def size(self) -> int:
        return await self._run("size", self._store.count)

    async def entry(self, key: str) -> CacheEntry[Any] | None:
        value = await self.get(key)
        return None if value is None else CacheEntry(key, value)

    async def stats(self) -> JsonDict:
        return {"total_entries": await self.size(), "store": type(self._store).__name__}
