"""Local fallback that turns free-form analysis text into a structured insight.

Used when the structured-output call fails. Labelled lines ("Definition: ...",
"Cultural context: ...") are taken when present; otherwise the first
sentence becomes the definition and the rest the cultural context.
"""

from __future__ import annotations

import re

from .models import Source, StructuredInsight

BASE_CONFIDENCE = 0.7
SEARCH_BONUS = 0.2
MAX_FALLBACK_CONFIDENCE = 0.9

DEFAULT_DEFINITION = "Definition unavailable."
DEFAULT_CONTEXT = "More cultural context is needed."

_DEFINITION_MARKERS = ("定义", "definition", "是指", "refers to")
_CONTEXT_MARKERS = ("文化", "cultural", "背景", "context")
_SENTENCE_END = re.compile(r"(?<=[。！？.!?])\s*")
_COLON = re.compile(r"[:：]")


def _after_label(lines: list[str], index: int) -> str:
    """Content after the first colon on lines[index].

    A bare heading line ("Definition", "Cultural context:") yields the next
    line; any other line without a colon is content itself.
    """
    line = lines[index]
    parts = _COLON.split(line, maxsplit=1)
    if len(parts) == 2 and parts[1].strip():
        return parts[1].strip()
    if len(parts) == 2 or len(line.split()) <= 3:
        return lines[index + 1].strip() if index + 1 < len(lines) else ""
    return line


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_END.split(text) if s.strip() and not re.fullmatch(r"[。！？.!?]+", s.strip())]


def fallback_confidence(search_performed: bool, sources: list[Source] | None) -> float:
    if search_performed and sources:
        return min(MAX_FALLBACK_CONFIDENCE, BASE_CONFIDENCE + SEARCH_BONUS)
    return BASE_CONFIDENCE


def parse_text_insight(
    text: str,
    *,
    search_performed: bool = False,
    search_query: str | None = None,
    sources: list[Source] | None = None,
) -> StructuredInsight:
    """Heuristically structure free text. definition and cultural_context are never empty."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    definition = context = ""
    for i, line in enumerate(lines):
        lowered = line.lower()
        if not definition and any(m in lowered for m in _DEFINITION_MARKERS):
            definition = _after_label(lines, i)
        elif not context and any(m in lowered for m in _CONTEXT_MARKERS):
            context = _after_label(lines, i)

    if not definition and not context:
        sentences = split_sentences(text)
        definition = sentences[0] if sentences else text.strip()[:200]
        context = " ".join(sentences[1:])

    return StructuredInsight(
        definition=definition or DEFAULT_DEFINITION,
        cultural_context=context or DEFAULT_CONTEXT,
        confidence=fallback_confidence(search_performed, sources),
        search_performed=search_performed,
        search_query=search_query,
        sources=sources or None,
    )
