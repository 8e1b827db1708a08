"""Tavily web search client over httpx."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

import httpx
import orjson
from pydantic import ValidationError

from lexitrend.foundation.errors import JsonDict, LexiTrendError

from .protocols import SearchDepth, SearchResponse

logger = logging.getLogger("lexitrend.tavily")

DEFAULT_BASE_URL = "https://api.tavily.com"
INVALID_KEY_MESSAGE = "The provided Tavily API key is invalid or has expired."


class TavilyClient:
    """Search capability backed by the Tavily REST API.

    The API key is resolved per call from key_provider, so a key saved in
    user settings is picked up without rebuilding the client.

    Args:
        key_provider: Async callable returning the current Tavily key (or None)
        base_url: API root
        timeout: Request timeout in seconds
        client: Pre-built httpx.AsyncClient
    """

    __slots__ = ("_key_provider", "_base_url", "_client", "_owns_client")

    def __init__(
        self,
        key_provider: Callable[[], Awaitable[str | None]] | None = None,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._key_provider = key_provider
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, api_key: str, payload: JsonDict) -> httpx.Response:
        try:
            return await self._client.post(
                f"{self._base_url}/search",
                content=orjson.dumps(payload),
                headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            raise LexiTrendError.network(f"Tavily request failed: {e}", operation="tavily.search", cause=e) from e

    @staticmethod
    def _detail(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.reason_phrase
        detail = body.get("detail") if isinstance(body, dict) else None
        if isinstance(detail, dict):
            detail = detail.get("error")
        return str(detail or resp.reason_phrase)

    async def search_with_key(
        self,
        api_key: str,
        query: str,
        depth: SearchDepth = "advanced",
        max_results: int = 5,
        include_domains: Sequence[str] = (),
        exclude_domains: Sequence[str] = (),
    ) -> SearchResponse:
        if not query or not query.strip():
            raise LexiTrendError.validation("Tavily search query cannot be empty.", operation="tavily.search")
        payload: JsonDict = {
            "query": query,
            "search_depth": depth,
            "max_results": max_results,
            "include_answer": True,
        }
        if include_domains:
            payload["include_domains"] = list(include_domains)
        if exclude_domains:
            payload["exclude_domains"] = list(exclude_domains)

        resp = await self._post(api_key, payload)
        if resp.status_code == 401:
            raise LexiTrendError.validation(INVALID_KEY_MESSAGE, operation="tavily.search", status=401)
        if resp.status_code >= 400:
            raise LexiTrendError.api(
                f"Tavily API error ({resp.status_code}): {self._detail(resp)}",
                operation="tavily.search", status=resp.status_code,
            )
        try:
            return SearchResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise LexiTrendError.api("Tavily returned an unexpected response", operation="tavily.search", cause=e) from e

    async def search(
        self,
        query: str,
        depth: SearchDepth = "advanced",
        max_results: int = 5,
        include_domains: Sequence[str] = (),
        exclude_domains: Sequence[str] = (),
    ) -> SearchResponse:
        api_key = await self._key_provider() if self._key_provider else None
        if not api_key:
            raise LexiTrendError.validation(
                "Tavily API key not found. Please set it in the extension settings.", operation="tavily.search",
            )
        return await self.search_with_key(api_key, query, depth, max_results, include_domains, exclude_domains)

    async def validate_key(self, api_key: str) -> bool:
        """Low-cost query with the key. False on 401; other failures raise.

        Raises:
            LexiTrendError: api kind on non-auth HTTP errors, network kind on transport failure
        """
        resp = await self._post(api_key, {"query": "test", "search_depth": "basic", "max_results": 1})
        if resp.status_code == 401:
            logger.info("Tavily key rejected (401)")
            return False
        if resp.status_code >= 400:
            raise LexiTrendError.api(
                f"Tavily API validation failed ({resp.status_code}): {self._detail(resp)}",
                operation="tavily.validate_key", status=resp.status_code,
            )
        return True
