"""Shared test doubles and fixtures."""

from __future__ import annotations

import asyncio
import fnmatch
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from lexitrend.capabilities import SearchResponse, SearchResult, ToolInvocation, ToolRunResult
from lexitrend.foundation.config import LexiTrendSettings
from lexitrend.foundation.errors import LexiTrendError
from lexitrend.io.cache import CacheService
from lexitrend.io.store import MemoryStore
from lexitrend.runtime.retry import DEFAULT_POLICIES, ConstantBackoff, RetryPolicy

# Same attempt counts as the defaults, without the waits
FAST_POLICIES = {
    kind: RetryPolicy(max_retries=p.max_retries, backoff=ConstantBackoff(0.0), retryable=p.retryable)
    for kind, p in DEFAULT_POLICIES.items()
}


class FakeGeneration:
    """Scriptable GenerationCapability.

    structured: list of results/exceptions returned by successive
    generate_structured calls (the last one repeats).
    """

    def __init__(
        self,
        structured: list[Any] | None = None,
        tool_result: ToolRunResult | Exception | None = None,
        *,
        gate: asyncio.Event | None = None,
        valid_key: bool = True,
    ) -> None:
        self.structured = structured or []
        self.tool_result = tool_result or ToolRunResult(text="")
        self.gate = gate
        self.valid_key = valid_key
        self.structured_calls: list[dict[str, Any]] = []
        self.tool_calls: list[dict[str, Any]] = []
        self.validations: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.structured_calls) + len(self.tool_calls)

    async def generate_structured(self, **kwargs: Any) -> Any:
        self.structured_calls.append(kwargs)
        if self.gate is not None:
            await self.gate.wait()
        index = min(len(self.structured_calls), len(self.structured)) - 1
        result = self.structured[index]
        if isinstance(result, Exception):
            raise result
        return kwargs["schema"].model_validate(result) if isinstance(result, dict) else result

    async def generate_with_tools(self, *, tools: Sequence[Any], **kwargs: Any) -> ToolRunResult:
        self.tool_calls.append({"tools": list(tools), **kwargs})
        if isinstance(self.tool_result, Exception):
            raise self.tool_result
        return self.tool_result

    async def validate_key(self, api_key: str) -> bool:
        self.validations.append(api_key)
        return self.valid_key


class FakeCredentials:
    def __init__(
        self,
        api_key: str | None = "test-key",
        language: str = "en",
        search_enabled: bool = True,
        search_key: str | None = "tvly-test",
    ) -> None:
        self.api_key = api_key
        self.language = language
        self.search_enabled = search_enabled
        self.search_key = search_key

    async def get_api_key(self) -> str | None:
        return self.api_key

    async def get_language(self) -> str:
        return self.language

    async def get_search_enabled(self) -> bool:
        return self.search_enabled

    async def get_search_api_key(self) -> str | None:
        return self.search_key


class FakeSearch:
    def __init__(self, results: list[SearchResult] | None = None, error: Exception | None = None) -> None:
        self.results = results or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str, depth: str = "advanced", max_results: int = 5, *_: Any) -> SearchResponse:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return SearchResponse(query=query, answer="answer", results=self.results)


class FailingStore(MemoryStore):
    """MemoryStore whose operations fail a set number of times first."""

    def __init__(self, failures: int = 0, *, fail_on: tuple[str, ...] = ("get", "set")) -> None:
        super().__init__()
        self.failures = failures
        self.fail_on = fail_on
        self.attempts: dict[str, int] = {}

    def _maybe_fail(self, op: str) -> None:
        self.attempts[op] = self.attempts.get(op, 0) + 1
        if op in self.fail_on and self.failures > 0:
            self.failures -= 1
            raise LexiTrendError.storage(f"{op} unavailable", operation=f"store.{op}")

    async def get(self, key: str) -> Any:
        self._maybe_fail("get")
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        self._maybe_fail("set")
        await super().set(key, value)


INSIGHT = {"definition": "A charm or appeal.", "culturalContext": "Popular on social media.", "confidence": 0.85}


def tool_call(query: str, sources: list[dict[str, Any]] | None = None, error: bool = False) -> ToolInvocation:
    result: dict[str, Any] = (
        {"error": "Search failed", "message": "boom"} if error
        else {"query": query, "answer": None, "sources": sources or []}
    )
    return ToolInvocation(name="tavily_search", args={"query": query}, result=result)


@pytest.fixture
def settings() -> LexiTrendSettings:
    return LexiTrendSettings(_env_file=None)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> CacheService:
    return CacheService(store, policies=FAST_POLICIES)


class MockAsyncRedisClient:
    """In-memory mock of the redis.asyncio client surface RedisStore uses."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.down = False
        self.closed = False

    def _check(self) -> None:
        if self.down:
            raise ConnectionError("redis unavailable")

    async def get(self, key: str) -> bytes | None:
        self._check()
        return self.data.get(key)

    async def set(self, name: str, value: bytes) -> bool:
        self._check()
        self.data[name] = value
        return True

    async def delete(self, *names: str) -> int:
        self._check()
        return sum(self.data.pop(n, None) is not None for n in names)

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        self._check()
        for k in list(self.data):
            if fnmatch.fnmatch(k, match):
                yield k

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True
