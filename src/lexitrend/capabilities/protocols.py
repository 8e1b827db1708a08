"""Capability interfaces the engine consumes.

The engine never talks to a model or search provider directly; it goes
through these protocols. Concrete clients live beside this module.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Literal, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from lexitrend.foundation.errors import JsonDict

if TYPE_CHECKING:
    from lexitrend.tools import BaseTool

M = TypeVar("M", bound=BaseModel)
SearchDepth = Literal["basic", "advanced"]


class ToolInvocation(BaseModel):
    """One tool call made during tool-augmented generation, with its result."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: JsonDict = Field(default_factory=dict)
    result: JsonDict = Field(default_factory=dict)


class ToolRunResult(BaseModel):
    """Final text of a tool-augmented generation plus every tool call made."""

    text: str = ""
    tool_calls: list[ToolInvocation] = Field(default_factory=list)
    steps: int = 0


class SearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0.0


class SearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str
    answer: str | None = None
    results: list[SearchResult] = Field(default_factory=list)
    response_time: str | float | None = None


@runtime_checkable
class GenerationCapability(Protocol):
    """Language model access. Failures raise api- or network-kind LexiTrendErrors."""

    async def generate_structured(
        self,
        *,
        api_key: str,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        schema: type[M],
        temperature: float,
    ) -> M: ...

    async def generate_with_tools(
        self,
        *,
        api_key: str,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        tools: Sequence[BaseTool[Any]],
        max_steps: int,
        temperature: float,
    ) -> ToolRunResult: ...

    async def validate_key(self, api_key: str) -> bool: ...


@runtime_checkable
class SearchCapability(Protocol):
    """Web search. Failures raise api- or network-kind LexiTrendErrors."""

    async def search(
        self,
        query: str,
        depth: SearchDepth = "advanced",
        max_results: int = 5,
        include_domains: Sequence[str] = (),
        exclude_domains: Sequence[str] = (),
    ) -> SearchResponse: ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Read-only view of credentials and user preferences."""

    async def get_api_key(self) -> str | None: ...
    async def get_language(self) -> str: ...
    async def get_search_enabled(self) -> bool: ...
    async def get_search_api_key(self) -> str | None: ...


@runtime_checkable
class SearchKeyValidator(Protocol):
    """Checks a search provider key without exposing the stored one."""

    async def validate_key(self, api_key: str) -> bool: ...
