"""Tests for model selection and request keys."""

from __future__ import annotations

import pytest

from lexitrend.insight.selection import (
    SUPPORTED_MODELS,
    ModelTier,
    fingerprint,
    normalize_term,
    request_key,
    select_model,
    select_tier,
)


@pytest.mark.parametrize(
    ("term", "model"),
    [
        ("rizz", "gemini-1.5-flash"),
        ("synergy", "gemini-1.5-flash"),
        ("NASA", "gemini-2.0-flash-lite"),
        ("iPhone", "gemini-1.5-flash"),
        ("aI", "gemini-1.5-flash"),
        ("a" * 20, "gemini-1.5-flash"),
        ("a" * 21, "gemini-2.0-flash-lite"),
        ("内卷", "gemini-1.5-flash"),
    ],
)
def test_select_model(term: str, model: str) -> None:
    assert select_model(term) == model


def test_select_tier_and_supported_models() -> None:
    assert select_tier("GPT") is ModelTier.CAPABLE
    assert select_tier("vibe") is ModelTier.FAST
    assert SUPPORTED_MODELS == ("gemini-1.5-flash", "gemini-2.0-flash-lite")


def test_fingerprint_format() -> None:
    assert fingerprint("synergy", "en", "gemini-1.5-flash") == "insight:synergy:en:gemini-1.5-flash"
    assert fingerprint("  synergy ", "zh", "m", enhanced=True) == "enhanced-insight:synergy:zh:m"


def test_fingerprint_is_deterministic() -> None:
    assert fingerprint("Rizz", "en", "m") == fingerprint("Rizz", "en", "m")
    assert fingerprint("Rizz", "en", "m") != fingerprint("rizz", "en", "m")


def test_request_key_excludes_model() -> None:
    assert request_key("synergy", "en") == "synergy-en"
    assert request_key(" synergy", "en", enhanced=True) == "enhanced-synergy-en"


def test_normalize_term_keeps_case() -> None:
    assert normalize_term("  NASA \n") == "NASA"
