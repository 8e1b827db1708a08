"""Tests for tool-augmented generation."""

from __future__ import annotations

import re

import pytest

from lexitrend.capabilities import ToolRunResult
from lexitrend.foundation.errors import ErrorKind, LexiTrendError
from lexitrend.insight.workflow import (
    AugmentedGenerationWorkflow,
    WorkflowState,
    extract_sources,
    generate_basic,
    utc_now_iso,
)
from lexitrend.tools import WebSearchTool

from conftest import INSIGHT, FakeCredentials, FakeGeneration, FakeSearch, tool_call

SOURCES = [
    {"title": "Rizz explained", "url": "https://example.com/rizz", "content": "...", "score": 0.95},
    {"title": "Slang 2023", "url": "https://example.com/slang", "content": "...", "score": 1.0},
]
STRUCTURED = {**INSIGHT, "searchPerformed": True, "searchQuery": "rizz meaning"}


def make_workflow(generation: FakeGeneration, credentials: FakeCredentials | None = None) -> AugmentedGenerationWorkflow:
    return AugmentedGenerationWorkflow(generation, credentials or FakeCredentials(), [WebSearchTool(FakeSearch())])


@pytest.mark.asyncio
async def test_full_run_with_search() -> None:
    gen = FakeGeneration(
        structured=[STRUCTURED],
        tool_result=ToolRunResult(text="Rizz is charm.", tool_calls=[tool_call("rizz meaning", SOURCES)], steps=2),
    )
    run = await make_workflow(gen).execute("rizz", "en", "gemini-1.5-flash")

    assert run.states == [
        WorkflowState.INIT, WorkflowState.GENERATE_WITH_TOOLS, WorkflowState.STRUCTURE, WorkflowState.FINALIZE,
    ]
    assert not run.degraded
    insight = run.insight
    assert insight is not None
    assert insight.definition == "A charm or appeal."
    assert insight.language == "en"
    meta = insight.search_metadata
    assert meta.search_performed
    assert meta.search_query == "rizz meaning"
    assert [s.relevance for s in meta.sources] == ["Search relevance score: 0.95", "Search relevance score: 1"]
    assert meta.last_updated is not None

    tools_call = gen.tool_calls[0]
    assert tools_call["max_steps"] == 3
    assert tools_call["temperature"] == 0.3
    assert [t.metadata.name for t in tools_call["tools"]] == ["tavily_search"]
    assert gen.structured_calls[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_no_tool_calls_means_no_search_metadata() -> None:
    gen = FakeGeneration(structured=[INSIGHT], tool_result=ToolRunResult(text="Synergy is teamwork."))
    insight = await make_workflow(gen).run("synergy", "en", "gemini-1.5-flash")
    meta = insight.search_metadata
    assert not meta.search_performed
    assert meta.search_query is None
    assert meta.sources == []
    assert meta.last_updated is None


@pytest.mark.asyncio
async def test_structure_failure_falls_back_to_parser() -> None:
    gen = FakeGeneration(
        structured=[LexiTrendError.api("schema mismatch")],
        tool_result=ToolRunResult(
            text="Rizz means charm. It spread on TikTok.",
            tool_calls=[tool_call("rizz", SOURCES[:1])],
        ),
    )
    run = await make_workflow(gen).execute("rizz", "en", "gemini-1.5-flash")
    assert run.degraded
    assert run.states[-1] is WorkflowState.FINALIZE
    assert run.insight.definition == "Rizz means charm."
    assert run.insight.cultural_context == "It spread on TikTok."
    assert run.insight.confidence == 0.9


@pytest.mark.asyncio
async def test_fallback_without_sources_has_base_confidence() -> None:
    gen = FakeGeneration(
        structured=[RuntimeError("boom")],
        tool_result=ToolRunResult(text="Definition: teamwork", tool_calls=[tool_call("synergy", error=True)]),
    )
    insight = await make_workflow(gen).run("synergy", "en", "gemini-1.5-flash")
    assert insight.confidence == 0.7
    assert insight.search_metadata.search_performed
    assert insight.search_metadata.sources == []
    assert insight.cultural_context


@pytest.mark.asyncio
async def test_missing_api_key_stops_at_init() -> None:
    gen = FakeGeneration(structured=[INSIGHT])
    workflow = make_workflow(gen, FakeCredentials(api_key=None))
    with pytest.raises(LexiTrendError) as exc_info:
        await workflow.run("rizz", "en", "gemini-1.5-flash")
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert gen.calls == 0


@pytest.mark.asyncio
async def test_tool_loop_failure_propagates() -> None:
    gen = FakeGeneration(structured=[INSIGHT], tool_result=LexiTrendError.network("offline"))
    with pytest.raises(LexiTrendError) as exc_info:
        await make_workflow(gen).run("rizz", "en", "gemini-1.5-flash")
    assert exc_info.value.kind is ErrorKind.NETWORK
    assert gen.structured_calls == []


def test_extract_sources_skips_other_tools_and_errors() -> None:
    calls = [tool_call("a", SOURCES[:1]), tool_call("b", error=True)]
    sources = extract_sources(calls)
    assert [s.url for s in sources] == ["https://example.com/rizz"]


def test_utc_now_iso_format() -> None:
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", utc_now_iso())


@pytest.mark.asyncio
async def test_generate_basic() -> None:
    gen = FakeGeneration(structured=[INSIGHT])
    insight = await generate_basic(gen, api_key="k", term="rizz", language="zh", model_id="gemini-1.5-flash")
    assert insight.language == "zh"
    assert insight.cultural_context == "Popular on social media."
    call = gen.structured_calls[0]
    assert call["temperature"] == 0.3
    assert call["model_id"] == "gemini-1.5-flash"
    assert '"rizz"' in call["user_prompt"]
    assert call["system_prompt"].endswith("Please respond in 中文.")
