"""Web search tool offered to the model during enhanced analysis."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from lexitrend.capabilities.protocols import SearchCapability, SearchDepth
from lexitrend.foundation.errors import JsonDict, LexiTrendError

from .base import BaseTool, ToolMetadata

logger = logging.getLogger("lexitrend.tools")

SEARCH_TOOL_NAME = "tavily_search"


class SearchParams(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    query: str = Field(..., min_length=1, description="A specific and context-rich search query for the keyword.")


class WebSearchTool(BaseTool[SearchParams]):
    """Real-time search. Search failures are returned as error objects, not raised,
    so the model can continue without evidence.

    Args:
        search: Search capability
        depth: Search depth requested from the provider
        max_results: Result count requested
        content_limit: Characters of content kept per result
    """

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name=SEARCH_TOOL_NAME,
        description="Search for real-time information about keywords, companies, or trending topics.",
        category="search",
        requires_api_key=True,
    )
    params_schema: ClassVar[type[SearchParams]] = SearchParams

    __slots__ = ("_search", "_depth", "_max_results", "_content_limit")

    def __init__(
        self,
        search: SearchCapability,
        *,
        depth: SearchDepth = "advanced",
        max_results: int = 5,
        content_limit: int = 500,
    ) -> None:
        self._search = search
        self._depth = depth
        self._max_results = max_results
        self._content_limit = content_limit

    async def _arun(self, params: SearchParams) -> JsonDict:
        try:
            response = await self._search.search(params.query, self._depth, self._max_results)
        except LexiTrendError as e:
            logger.warning(f"Search failed for {params.query!r}: {e.message}")
            return {"error": "Search failed", "message": e.message}
        except Exception as e:
            logger.warning(f"Search failed for {params.query!r}: {e}")
            return {"error": "Search failed", "message": str(e) or type(e).__name__}
        return {
            "query": response.query,
            "answer": response.answer,
            "sources": [
                {
                    "title": r.title,
                    "url": r.url,
                    "content": r.content[: self._content_limit],
                    "score": r.score,
                }
                for r in response.results
            ],
        }
