"""Message boundary between the engine and the privileged search context.

The search key never leaves the background side: the engine sends typed
request messages through a transport callable and gets plain JSON replies.

Requests and replies:
    TAVILY_SEARCH       {query, searchDepth, maxResults, includeDomains, excludeDomains}
                        -> {"data": <search response>} | {"error": {"message", "name"}}
    VALIDATE_TAVILY_KEY {apiKey} -> {"isValid": bool, "error"?: str}
    anything else       -> {"success": False, "error": "Unknown message type: <type>"}
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum

import orjson
from pydantic import ValidationError

from lexitrend.foundation.errors import JsonDict, LexiTrendError

from .protocols import SearchDepth, SearchResponse
from .tavily import INVALID_KEY_MESSAGE, TavilyClient

logger = logging.getLogger("lexitrend.messaging")

Transport = Callable[[JsonDict], Awaitable[JsonDict]]


class MessageType(StrEnum):
    TAVILY_SEARCH = "TAVILY_SEARCH"
    VALIDATE_TAVILY_KEY = "VALIDATE_TAVILY_KEY"


def _error_body(exc: BaseException) -> JsonDict:
    message = exc.message if isinstance(exc, LexiTrendError) else str(exc)
    return {"message": message or "An unknown error occurred.", "name": type(exc).__name__}


class BackgroundHandler:
    """Serves messages with the search client and stored search key.

    Never raises: every failure becomes an error reply.

    Args:
        search_key: Async callable returning the stored Tavily key
        tavily: Tavily client used for searches and key checks
    """

    __slots__ = ("_search_key", "_tavily")

    def __init__(self, search_key: Callable[[], Awaitable[str | None]], tavily: TavilyClient) -> None:
        self._search_key = search_key
        self._tavily = tavily

    async def handle(self, message: JsonDict) -> JsonDict:
        kind = message.get("type")
        payload = message.get("payload") or {}
        logger.debug(f"Message received: {kind}")
        match kind:
            case MessageType.TAVILY_SEARCH:
                return await self._search(payload)
            case MessageType.VALIDATE_TAVILY_KEY:
                return await self._validate(payload)
            case _:
                logger.warning(f"Unknown message type received: {kind!r}")
                label = kind if isinstance(kind, str) else orjson.dumps(kind).decode()
                return {"success": False, "error": f"Unknown message type: {label}"}

    async def _search(self, payload: JsonDict) -> JsonDict:
        try:
            api_key = await self._search_key()
            if not api_key:
                raise LexiTrendError.validation(
                    "Tavily API key not found. Please set it in the extension settings.", operation="tavily.search",
                )
            response = await self._tavily.search_with_key(
                api_key,
                payload.get("query", ""),
                payload.get("searchDepth") or "advanced",
                payload.get("maxResults") or 5,
                payload.get("includeDomains") or (),
                payload.get("excludeDomains") or (),
            )
        except Exception as e:
            logger.error(f"Tavily search error in background: {e}")
            return {"error": _error_body(e)}
        return {"data": response.model_dump(mode="json")}

    async def _validate(self, payload: JsonDict) -> JsonDict:
        api_key = payload.get("apiKey")
        if not api_key:
            return {"isValid": False, "error": "API key is missing."}
        try:
            valid = await self._tavily.validate_key(api_key)
        except Exception as e:
            logger.error(f"Tavily key validation error in background: {e}")
            return {"isValid": False, "error": _error_body(e)["message"]}
        return {"isValid": True} if valid else {"isValid": False, "error": INVALID_KEY_MESSAGE}


class MessagingSearchClient:
    """Engine-side search capability that only talks through a transport.

    Args:
        transport: Async callable delivering a request message and returning the reply
    """

    __slots__ = ("_transport",)

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def _send(self, message: JsonDict, operation: str) -> JsonDict:
        try:
            reply = await self._transport(message)
        except LexiTrendError:
            raise
        except Exception as e:
            raise LexiTrendError.api(f"Tavily search failed: {e}", operation=operation, cause=e) from e
        return reply or {}

    async def search(
        self,
        query: str,
        depth: SearchDepth = "advanced",
        max_results: int = 5,
        include_domains: Sequence[str] = (),
        exclude_domains: Sequence[str] = (),
    ) -> SearchResponse:
        if not query:
            raise LexiTrendError.validation("Tavily search query cannot be empty.", operation="messaging.search")
        reply = await self._send(
            {
                "type": MessageType.TAVILY_SEARCH.value,
                "payload": {
                    "query": query,
                    "searchDepth": depth,
                    "maxResults": max_results,
                    "includeDomains": list(include_domains),
                    "excludeDomains": list(exclude_domains),
                },
            },
            "messaging.search",
        )
        if error := reply.get("error"):
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LexiTrendError.api(
                message or "An unknown error occurred during the Tavily search.",
                operation="messaging.search", name=error.get("name") if isinstance(error, dict) else None,
            )
        try:
            return SearchResponse.model_validate(reply.get("data") or {"query": query})
        except ValidationError as e:
            raise LexiTrendError.api("malformed search reply", operation="messaging.search", cause=e) from e

    async def validate_key(self, api_key: str) -> bool:
        """False on an invalid key, an error reply or a transport failure."""
        try:
            reply = await self._send(
                {"type": MessageType.VALIDATE_TAVILY_KEY.value, "payload": {"apiKey": api_key}},
                "messaging.validate_key",
            )
        except LexiTrendError as e:
            logger.warning(f"Search key validation failed: {e.message}")
            return False
        if not reply.get("isValid"):
            logger.info(f"Search key rejected: {reply.get('error', 'unknown reason')}")
            return False
        return True
