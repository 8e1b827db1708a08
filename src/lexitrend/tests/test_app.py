"""End-to-end wiring through build_app with scripted capabilities."""

from __future__ import annotations

import httpx
import pytest

from lexitrend import EnhancedInsight, build_app
from lexitrend.capabilities import GeminiClient, ToolRunResult
from lexitrend.foundation.config import LexiTrendSettings
from lexitrend.io.store import MemoryStore, RedisStore

from conftest import INSIGHT, FakeGeneration, MockAsyncRedisClient, tool_call


@pytest.mark.asyncio
async def test_build_app_defaults() -> None:
    app = build_app(LexiTrendSettings(_env_file=None))
    assert isinstance(app.store, MemoryStore)
    assert isinstance(app.settings_store, MemoryStore)
    assert app.store is not app.settings_store
    assert isinstance(app.generation, GeminiClient)
    await app.aclose()


@pytest.mark.asyncio
async def test_enhanced_analysis_through_app() -> None:
    gen = FakeGeneration(
        structured=[INSIGHT],
        tool_result=ToolRunResult(text="t", tool_calls=[tool_call("rizz", [{"title": "a", "url": "b", "score": 1}])]),
    )
    app = build_app(LexiTrendSettings(_env_file=None), generation=gen)
    await app.user_settings.set_api_key("AIza")
    await app.user_settings.set_search_api_key("tvly")

    result = await app.coordinator.analyze("rizz", "en", enhanced=True)
    assert isinstance(result, EnhancedInsight)
    assert result.search_metadata.search_performed
    assert await app.cache.get("enhanced-insight:rizz:en:gemini-1.5-flash") is not None
    assert await app.cache.size() == 1
    # api key and settings document
    assert await app.settings_store.count() == 2
    await app.aclose()


@pytest.mark.asyncio
async def test_search_goes_through_background_handler() -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"query": "q", "results": []})

    http = httpx.AsyncClient(transport=httpx.MockTransport(respond))
    app = build_app(LexiTrendSettings(_env_file=None), generation=FakeGeneration(), http_client=http)
    await app.user_settings.set_search_api_key("tvly")
    response = await app.search.search("q")
    assert response.query == "q"
    await app.aclose()
    await http.aclose()


@pytest.mark.asyncio
async def test_cache_clear_keeps_credentials_and_settings() -> None:
    app = build_app(LexiTrendSettings(_env_file=None), generation=FakeGeneration(structured=[INSIGHT]))
    await app.user_settings.set_api_key("AIza-secret")
    await app.user_settings.set_language("zh")
    assert await app.cache.size() == 0

    await app.coordinator.analyze("rizz", "en")
    assert await app.cache.size() == 1

    await app.cache.clear()
    assert await app.cache.size() == 0
    assert await app.user_settings.get_api_key() == "AIza-secret"
    assert await app.user_settings.get_language() == "zh"
    await app.aclose()


def test_build_app_rejects_shared_store() -> None:
    store = MemoryStore()
    with pytest.raises(ValueError, match="separate stores"):
        build_app(LexiTrendSettings(_env_file=None), store=store, settings_store=store, generation=FakeGeneration())


@pytest.mark.asyncio
async def test_redis_cache_and_settings_stores_share_client_not_keys() -> None:
    client = MockAsyncRedisClient()
    cache_store = RedisStore(client, prefix="lexitrend:cache:")
    settings_store = cache_store.sibling("lexitrend:settings:")
    app = build_app(
        LexiTrendSettings(_env_file=None), store=cache_store, settings_store=settings_store, generation=FakeGeneration(),
    )
    await app.user_settings.set_api_key("AIza-secret")
    await app.cache.set("insight:rizz:en:gemini-1.5-flash", {"definition": "d"})

    assert await app.cache.size() == 1
    await app.cache.clear()
    assert await app.user_settings.get_api_key() == "AIza-secret"

    await app.aclose()
    assert client.closed
