"""Tool-augmented generation.

AugmentedGenerationWorkflow runs a strictly linear state machine:

    INIT -> GENERATE_WITH_TOOLS -> STRUCTURE -> FINALIZE

INIT checks the credential, GENERATE_WITH_TOOLS lets the model call the
search tool a bounded number of times, STRUCTURE asks for schema-conformant
output (falling back to the local parser on any failure) and FINALIZE
attaches language, timestamp and search provenance.

generate_basic() is the single-call path used for plain analysis and for
enhanced analysis when search is unavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from lexitrend.capabilities.protocols import CredentialProvider, GenerationCapability, ToolInvocation
from lexitrend.foundation.errors import LexiTrendError
from lexitrend.tools import SEARCH_TOOL_NAME, BaseTool

from .models import EnhancedInsight, Insight, InsightContent, SearchMetadata, Source, StructuredInsight
from .parsing import parse_text_insight
from .prompts import basic_prompt, enhanced_prompt, structuring_prompt

logger = logging.getLogger("lexitrend.workflow")

BASIC_TEMPERATURE = 0.3
TOOL_TEMPERATURE = 0.3
STRUCTURE_TEMPERATURE = 0.2
DEFAULT_MAX_STEPS = 3


class WorkflowState(StrEnum):
    INIT = "init"
    GENERATE_WITH_TOOLS = "generate_with_tools"
    STRUCTURE = "structure"
    FINALIZE = "finalize"


@dataclass(slots=True)
class WorkflowRun:
    """Trace of one workflow execution."""

    insight: EnhancedInsight | None = None
    states: list[WorkflowState] = field(default_factory=list)
    degraded: bool = False
    tool_calls: list[ToolInvocation] = field(default_factory=list)

    def enter(self, state: WorkflowState) -> None:
        self.states.append(state)


def missing_key_error(operation: str) -> LexiTrendError:
    return LexiTrendError.validation("API key is not set", operation=operation)


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_score(score: Any) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score))
    return str(score)


def extract_sources(tool_calls: list[ToolInvocation]) -> list[Source]:
    """Sources from successful search tool results, in call order."""
    sources: list[Source] = []
    for call in tool_calls:
        if call.name != SEARCH_TOOL_NAME:
            continue
        for item in call.result.get("sources") or []:
            if not isinstance(item, dict):
                continue
            sources.append(Source(
                title=str(item.get("title", "")),
                url=str(item.get("url", "")),
                relevance=f"Search relevance score: {_format_score(item.get('score'))}",
            ))
    return sources


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


async def generate_basic(
    generation: GenerationCapability,
    *,
    api_key: str,
    term: str,
    language: str,
    model_id: str,
) -> Insight:
    """One structured-output call producing a basic insight."""
    prompt = basic_prompt(term, language)
    content = await generation.generate_structured(
        api_key=api_key,
        model_id=model_id,
        system_prompt=prompt.system,
        user_prompt=prompt.user,
        schema=InsightContent,
        temperature=BASIC_TEMPERATURE,
    )
    return Insight(
        definition=content.definition,
        cultural_context=content.cultural_context,
        confidence=_clamp(content.confidence),
        language=language,
    )


class AugmentedGenerationWorkflow:
    """Search-augmented analysis of one term.

    Args:
        generation: Generation capability
        credentials: Source of the generation API key
        tools: Tools offered to the model (normally the web search tool)
        max_steps: Model-call budget for the tool loop
    """

    __slots__ = ("_generation", "_credentials", "_tools", "_max_steps")

    def __init__(
        self,
        generation: GenerationCapability,
        credentials: CredentialProvider,
        tools: list[BaseTool[Any]],
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._generation = generation
        self._credentials = credentials
        self._tools = tools
        self._max_steps = max_steps

    async def run(self, term: str, language: str, model_id: str) -> EnhancedInsight:
        return (await self.execute(term, language, model_id)).insight  # type: ignore[return-value]

    async def execute(self, term: str, language: str, model_id: str) -> WorkflowRun:
        """Run all states and return the result with its trace.

        Raises:
            LexiTrendError: validation kind when no API key is set; errors from
                the tool loop propagate unchanged
        """
        run = WorkflowRun()

        run.enter(WorkflowState.INIT)
        api_key = await self._credentials.get_api_key()
        if not api_key:
            raise missing_key_error("analyze_keyword_enhanced")

        run.enter(WorkflowState.GENERATE_WITH_TOOLS)
        prompt = enhanced_prompt(term, language)
        result = await self._generation.generate_with_tools(
            api_key=api_key,
            model_id=model_id,
            system_prompt=prompt.system,
            user_prompt=prompt.user,
            tools=self._tools,
            max_steps=self._max_steps,
            temperature=TOOL_TEMPERATURE,
        )
        run.tool_calls = list(result.tool_calls)
        search_performed = bool(result.tool_calls)
        sources = extract_sources(result.tool_calls)
        search_query = None
        if search_performed:
            search_query = str(result.tool_calls[0].args.get("query") or "") or None

        run.enter(WorkflowState.STRUCTURE)
        structure = structuring_prompt(
            result.text, term, language,
            search_performed=search_performed, search_query=search_query, sources=sources,
        )
        try:
            structured = await self._generation.generate_structured(
                api_key=api_key,
                model_id=model_id,
                system_prompt=structure.system,
                user_prompt=structure.user,
                schema=StructuredInsight,
                temperature=STRUCTURE_TEMPERATURE,
            )
        except Exception as e:
            logger.warning(f"Structured output failed for {term!r}, using text parser: {e}")
            run.degraded = True
            structured = parse_text_insight(
                result.text, search_performed=search_performed, search_query=search_query, sources=sources,
            )

        run.enter(WorkflowState.FINALIZE)
        run.insight = EnhancedInsight(
            definition=structured.definition,
            cultural_context=structured.cultural_context,
            confidence=_clamp(structured.confidence),
            language=language,
            search_metadata=SearchMetadata(
                search_performed=search_performed,
                search_query=search_query,
                last_updated=utc_now_iso() if search_performed else None,
                sources=sources,
            ),
        )
        return run
