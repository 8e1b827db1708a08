"""Configuration: environment settings (pydantic-settings) and persisted user settings."""

from .settings import (
    CacheSettings,
    GeminiSettings,
    LexiTrendSettings,
    LoggingSettings,
    SearchSettings,
    TavilySettings,
    clear_settings_cache,
    get_settings,
)
from .user import UserSettings, UserSettingsService

__all__ = [
    "LexiTrendSettings", "CacheSettings", "LoggingSettings", "GeminiSettings", "TavilySettings", "SearchSettings",
    "get_settings", "clear_settings_cache",
    "UserSettings", "UserSettingsService",
]
