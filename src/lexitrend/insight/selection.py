"""Model selection and request keys.

All functions here are pure: no I/O, no state. Cache keys derived from them
are persisted, so their format must stay stable across versions.
"""

from __future__ import annotations

import re
from enum import StrEnum


class ModelTier(StrEnum):
    FAST = "fast"
    CAPABLE = "capable"


MODEL_IDS: dict[ModelTier, str] = {
    ModelTier.FAST: "gemini-1.5-flash",
    ModelTier.CAPABLE: "gemini-2.0-flash-lite",
}
SUPPORTED_MODELS: tuple[str, ...] = tuple(MODEL_IDS.values())

LONG_TERM_THRESHOLD = 20
_UPPER_RUN = re.compile(r"[A-Z]{2,}")


def select_tier(term: str) -> ModelTier:
    """Long terms and terms with acronym-like uppercase runs go to the capable tier."""
    if len(term) > LONG_TERM_THRESHOLD or _UPPER_RUN.search(term):
        return ModelTier.CAPABLE
    return ModelTier.FAST


def select_model(term: str) -> str:
    return MODEL_IDS[select_tier(term)]


def normalize_term(term: str) -> str:
    return term.strip()


def fingerprint(term: str, language: str, model_id: str, *, enhanced: bool = False) -> str:
    """Cache key for an analysis, e.g. ``insight:rizz:en:gemini-1.5-flash``."""
    prefix = "enhanced-insight" if enhanced else "insight"
    return f"{prefix}:{normalize_term(term)}:{language}:{model_id}"


def request_key(term: str, language: str, *, enhanced: bool = False) -> str:
    """In-flight dedup key. Excludes the model: one generation per (term, language)."""
    key = f"{normalize_term(term)}-{language}"
    return f"enhanced-{key}" if enhanced else key
