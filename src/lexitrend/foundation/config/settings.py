"""Process settings read from LEXITREND_* variables and an optional .env file.

Each group reads its own prefix (LEXITREND_CACHE_FAIL_OPEN=true).
Per-user values such as the search toggle live in UserSettingsService instead.

Example:
    >>> from lexitrend.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.search.max_steps
    3

    # Environment overrides:
    # LEXITREND_GEMINI_API_KEY=...
    # LEXITREND_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, PositiveFloat, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..languages import DEFAULT_LANGUAGE


class CacheSettings(BaseSettings):
    """Result cache configuration. Entries never expire; see DESIGN.md."""

    model_config = SettingsConfigDict(env_prefix="LEXITREND_CACHE_", extra="ignore")

    enabled: bool = True
    fail_open: bool = Field(default=False, description="Treat cache failures as misses instead of surfacing them")
    redis_url: SecretStr | None = Field(default=None, description="Redis URL for a durable store")
    key_prefix: str = "lexitrend:"

    @computed_field
    @property
    def backend(self) -> Literal["memory", "redis"]:
        return "redis" if self.redis_url else "memory"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LEXITREND_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"


class GeminiSettings(BaseSettings):
    """Generation backend configuration."""

    model_config = SettingsConfigDict(env_prefix="LEXITREND_GEMINI_", extra="ignore")

    api_key: SecretStr | None = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: PositiveFloat = Field(default=30.0, description="Request timeout in seconds")


class TavilySettings(BaseSettings):
    """Search backend configuration."""

    model_config = SettingsConfigDict(env_prefix="LEXITREND_TAVILY_", extra="ignore")

    api_key: SecretStr | None = None
    base_url: str = "https://api.tavily.com"
    timeout: PositiveFloat = 20.0
    search_depth: Literal["basic", "advanced"] = "advanced"
    max_results: Annotated[int, Field(ge=1, le=20)] = 5


class SearchSettings(BaseSettings):
    """Tool-augmented generation configuration."""

    model_config = SettingsConfigDict(env_prefix="LEXITREND_SEARCH_", extra="ignore")

    enabled: bool = True
    max_steps: Annotated[int, Field(ge=1, le=10)] = 3
    content_limit: Annotated[int, Field(ge=50)] = 500


class LexiTrendSettings(BaseSettings):
    """Root settings.

    Loads configuration from environment variables with LEXITREND_ prefix.

    Example environment variables:
        LEXITREND_ENVIRONMENT=production
        LEXITREND_DEFAULT_LANGUAGE=zh
        LEXITREND_CACHE_REDIS_URL=redis://localhost:6379/0
        LEXITREND_TAVILY_API_KEY=tvly-...
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXITREND_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    default_language: str = DEFAULT_LANGUAGE

    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    tavily: TavilySettings = Field(default_factory=TavilySettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> LexiTrendSettings:
    """Get the process settings instance (cached)."""
    return LexiTrendSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
