"""Durable key-value stores backing the cache and user settings.

All operations are async. Values are serialized with orjson on write, so a
value that cannot be encoded fails the same way on every backend. Backend
failures surface as storage-kind LexiTrendErrors.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import orjson

from lexitrend.foundation.errors import LexiTrendError


@runtime_checkable
class PersistentStore(Protocol):
    """Protocol for key-value store backends."""

    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def remove(self, key: str) -> None: ...
    async def clear(self) -> None: ...
    async def count(self) -> int: ...


def encode(key: str, value: Any) -> bytes:
    try:
        return orjson.dumps(value)
    except TypeError as e:
        raise LexiTrendError.storage(f"cannot serialize value for {key!r}: {e}", operation="store.set", cause=e, key=key) from e


def decode(key: str, raw: bytes | str) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise LexiTrendError.storage(f"corrupted value for {key!r}", operation="store.decode", cause=e, key=key) from e


class MemoryStore:
    """In-process store. Not durable across restarts.

    Holds encoded bytes rather than live objects so callers get an
    independent copy on every get(), as they would from a durable backend.

    Example:
        >>> store = MemoryStore()
        >>> await store.set("k", {"a": 1})
        >>> await store.get("k")
        {'a': 1}
    """

    __slots__ = ("_data", "_closed")

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._closed = False

    def _check(self, operation: str) -> None:
        if self._closed:
            raise LexiTrendError.storage("store is closed", operation=operation)

    async def get(self, key: str) -> Any | None:
        self._check("store.get")
        raw = self._data.get(key)
        return None if raw is None else decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        self._check("store.set")
        self._data[key] = encode(key, value)

    async def remove(self, key: str) -> None:
        self._check("store.remove")
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._check("store.clear")
        self._data.clear()

    async def count(self) -> int:
        self._check("store.count")
        return len(self._data)

    async def close(self) -> None:
        self._closed = True
