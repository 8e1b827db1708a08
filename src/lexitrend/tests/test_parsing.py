"""Tests for the free-text fallback parser."""

from __future__ import annotations

from lexitrend.insight.models import Source
from lexitrend.insight.parsing import (
    DEFAULT_CONTEXT,
    DEFAULT_DEFINITION,
    fallback_confidence,
    parse_text_insight,
    split_sentences,
)


def test_labelled_lines() -> None:
    text = "Definition: Rizz is charm.\nCultural context: Popular with Gen Z."
    result = parse_text_insight(text)
    assert result.definition == "Rizz is charm."
    assert result.cultural_context == "Popular with Gen Z."


def test_heading_followed_by_content() -> None:
    text = "## Definition\nRizz is charm.\n## Cultural context\nUsed on TikTok."
    result = parse_text_insight(text)
    assert result.definition == "Rizz is charm."
    assert result.cultural_context == "Used on TikTok."


def test_chinese_labels() -> None:
    result = parse_text_insight("定义：内卷是指过度竞争。\n文化背景：常见于职场讨论。")
    assert result.definition == "内卷是指过度竞争。"
    assert result.cultural_context == "常见于职场讨论。"


def test_sentence_split_when_unlabelled() -> None:
    result = parse_text_insight("Rizz means charm. It spread on TikTok! Now it is everywhere.")
    assert result.definition == "Rizz means charm."
    assert result.cultural_context == "It spread on TikTok! Now it is everywhere."


def test_defaults_are_non_empty() -> None:
    result = parse_text_insight("")
    assert result.definition == DEFAULT_DEFINITION
    assert result.cultural_context == DEFAULT_CONTEXT
    assert parse_text_insight("Just one sentence.").cultural_context == DEFAULT_CONTEXT


def test_split_sentences_handles_cjk_punctuation() -> None:
    assert split_sentences("第一句。第二句！Third?") == ["第一句。", "第二句！", "Third?"]


def test_confidence() -> None:
    source = Source(title="t", url="https://example.com")
    assert fallback_confidence(False, None) == 0.7
    assert fallback_confidence(True, []) == 0.7
    assert fallback_confidence(True, [source]) == 0.9
    result = parse_text_insight("A. B.", search_performed=True, search_query="q", sources=[source])
    assert result.confidence == 0.9
    assert result.search_query == "q"
    assert result.sources == [source]
