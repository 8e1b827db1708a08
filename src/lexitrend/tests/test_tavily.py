"""Tests for the Tavily client over httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from lexitrend.capabilities import TavilyClient
from lexitrend.foundation.errors import ErrorKind, LexiTrendError

RESPONSE = {
    "query": "rizz meaning",
    "answer": "Charm.",
    "results": [{"title": "Rizz", "url": "https://example.com", "content": "c", "score": 0.9, "raw_content": None}],
    "response_time": 1.2,
}


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_sends_bearer_and_snake_case_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=RESPONSE)

    async def key() -> str:
        return "tvly-1"

    tavily = TavilyClient(key, client=client_for(handler))
    response = await tavily.search("rizz meaning", "advanced", 5, include_domains=["example.com"])

    assert response.answer == "Charm."
    assert response.results[0].score == 0.9
    request = seen[0]
    assert str(request.url) == "https://api.tavily.com/search"
    assert request.headers["Authorization"] == "Bearer tvly-1"
    body = json.loads(request.content)
    assert body == {
        "query": "rizz meaning", "search_depth": "advanced", "max_results": 5,
        "include_answer": True, "include_domains": ["example.com"],
    }


@pytest.mark.asyncio
async def test_search_without_key_is_validation_error() -> None:
    tavily = TavilyClient(client=client_for(lambda r: httpx.Response(200, json=RESPONSE)))
    with pytest.raises(LexiTrendError) as exc_info:
        await tavily.search("q")
    assert exc_info.value.kind is ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_http_errors_map_to_kinds() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        status = {"unauthorized": 401, "limited": 429}[json.loads(request.content)["query"]]
        return httpx.Response(status, json={"detail": {"error": "nope"}})

    tavily = TavilyClient(client=client_for(handler))
    with pytest.raises(LexiTrendError) as exc_info:
        await tavily.search_with_key("k", "unauthorized")
    assert exc_info.value.kind is ErrorKind.VALIDATION
    with pytest.raises(LexiTrendError) as exc_info:
        await tavily.search_with_key("k", "limited")
    assert exc_info.value.kind is ErrorKind.API
    assert "429" in exc_info.value.message and "nope" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LexiTrendError) as exc_info:
        await TavilyClient(client=client_for(handler)).search_with_key("k", "q")
    assert exc_info.value.kind is ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_validate_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"query": "test", "search_depth": "basic", "max_results": 1}
        token = request.headers["Authorization"].removeprefix("Bearer ")
        return httpx.Response({"good": 200, "bad": 401, "down": 500}[token], json={"detail": "server"})

    tavily = TavilyClient(client=client_for(handler))
    assert await tavily.validate_key("good")
    assert not await tavily.validate_key("bad")
    with pytest.raises(LexiTrendError):
        await tavily.validate_key("down")
