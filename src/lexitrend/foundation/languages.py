"""Languages the engine can answer in."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True, slots=True)
class Language:
    value: str
    label: str
    native_name: str  # used in prompts to name the answer language


# Fully supported: prompt templates and answers
CORE_LANGUAGES: tuple[Language, ...] = (
    Language("zh", "中文", "中文"),
    Language("en", "English", "English"),
    Language("ja", "日本語", "日本語"),
    Language("ko", "한국어", "한국어"),
)

# Displayable, but prompts fall back to the default language
EXTENDED_LANGUAGES: tuple[Language, ...] = (
    *CORE_LANGUAGES,
    Language("es", "Español", "Español"),
    Language("fr", "Français", "Français"),
    Language("de", "Deutsch", "Deutsch"),
    Language("pt", "Português", "Português"),
)

SUPPORTED_PROMPT_LANGUAGES: frozenset[str] = frozenset(lang.value for lang in CORE_LANGUAGES)
_BY_CODE = {lang.value: lang for lang in EXTENDED_LANGUAGES}


def is_core_language(code: str) -> bool:
    return code in SUPPORTED_PROMPT_LANGUAGES


def resolve_language(code: str | None) -> str:
    """Map a requested language to a supported prompt language (default if unsupported)."""
    return code if code and code in SUPPORTED_PROMPT_LANGUAGES else DEFAULT_LANGUAGE


def native_name(code: str) -> str:
    lang = _BY_CODE.get(code) or _BY_CODE[DEFAULT_LANGUAGE]
    return lang.native_name


def label(code: str) -> str:
    lang = _BY_CODE.get(code) or _BY_CODE[DEFAULT_LANGUAGE]
    return lang.label
