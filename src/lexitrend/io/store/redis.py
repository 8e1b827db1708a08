"""Redis-backed persistent store.

Adapts an existing redis.asyncio client. Keys are namespaced by prefix so
clear() and count() only touch this store's keys (via SCAN, production-safe).

Requires: pip install lexitrend[redis]
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from lexitrend.foundation.errors import JsonDict, LexiTrendError

from .store import decode, encode


@runtime_checkable
class AsyncRedisClient(Protocol):
    """Protocol for async Redis client (duck typing)."""
    async def get(self, key: str) -> bytes | None: ...
    async def set(self, name: str, value: bytes) -> bool: ...
    async def delete(self, *names: str) -> int: ...
    def scan_iter(self, match: str) -> object: ...
    async def ping(self) -> bool: ...


class RedisStore:
    """Durable store over redis.asyncio.

    Args:
        client: Existing async Redis client
        prefix: Key prefix for namespacing (default: "lexitrend:")
        owns_client: Whether close() closes the client

    Example:
        >>> store = RedisStore.from_url("redis://localhost:6379/0")
        >>> await store.set("insight:rizz:en:gemini-1.5-flash", {...})
    """

    __slots__ = ("_client", "_prefix", "_owns_client")

    def __init__(self, client: AsyncRedisClient, prefix: str = "lexitrend:", *, owns_client: bool = True) -> None:
        self._client = client
        self._prefix = prefix
        self._owns_client = owns_client

    @property
    def prefix(self) -> str:
        return self._prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "lexitrend:", **redis_kwargs: object) -> RedisStore:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "Redis store requires redis package. "
                "Install with: pip install lexitrend[redis]"
            ) from e
        return cls(aioredis.from_url(url, **redis_kwargs), prefix)  # type: ignore[arg-type]

    def sibling(self, prefix: str) -> RedisStore:
        """Store on the same client under another prefix. close() on it leaves the client open.

        Neither prefix may start with the other, or clear() and count() on one
        reach the keys of both.
        """
        if prefix.startswith(self._prefix) or self._prefix.startswith(prefix):
            raise ValueError(f"prefix {prefix!r} overlaps {self._prefix!r}")
        return RedisStore(self._client, prefix, owns_client=False)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _call(self, operation: str, coro: Any) -> Any:
        try:
            return await coro
        except LexiTrendError:
            raise
        except Exception as e:
            raise LexiTrendError.storage(f"redis {operation} failed: {e}", operation=f"store.{operation}", cause=e) from e

    async def _keys(self) -> list[str]:
        async def collect() -> list[str]:
            return [k async for k in self._client.scan_iter(match=f"{self._prefix}*")]  # type: ignore[attr-defined]
        return await self._call("scan", collect())

    async def get(self, key: str) -> Any | None:
        raw = await self._call("get", self._client.get(self._key(key)))
        return None if raw is None else decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        await self._call("set", self._client.set(self._key(key), encode(key, value)))

    async def remove(self, key: str) -> None:
        await self._call("remove", self._client.delete(self._key(key)))

    async def clear(self) -> None:
        if keys := await self._keys():
            await self._call("clear", self._client.delete(*keys))

    async def count(self) -> int:
        return len(await self._keys())

    async def ping(self) -> bool:
        """Check Redis connection health."""
        try:
            return bool(await self._client.ping())
        except Exception:
            return False

    async def stats(self) -> JsonDict:
        return {"backend": "redis", "prefix": self._prefix, "total_entries": await self.count()}

    async def close(self) -> None:
        if not self._owns_client:
            return
        aclose = getattr(self._client, "aclose", None)
        if aclose is not None:
            await aclose()
