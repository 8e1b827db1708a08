"""Persisted user settings and credentials.

Stores the user's choices (answer language, search toggle, search key) and
the generation API key on a PersistentStore, under the storage-kind retry
policy. Values missing from the store fall back to the environment settings.
Implements the CredentialProvider protocol the coordinator reads from.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lexitrend.foundation.errors import ErrorKind, LexiTrendError
from lexitrend.foundation.languages import SUPPORTED_PROMPT_LANGUAGES
from lexitrend.io.store import PersistentStore
from lexitrend.runtime.retry import RetryPolicy, retry_with_backoff

from .settings import LexiTrendSettings

logger = logging.getLogger("lexitrend.settings")

T = TypeVar("T")

API_KEY = "lexitrend_api_key"
USER_SETTINGS = "userSettings"
ONBOARDING_COMPLETE = "lexitrend_onboarding_complete"
LANGUAGE = "lexitrend_language"


class UserSettings(BaseModel):
    """User-editable settings as persisted (camelCase keys on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    language: str = "en"
    onboarding_complete: bool = Field(default=False, alias="onboardingComplete")
    cache_enabled: bool = Field(default=True, alias="cacheEnabled")
    search_enabled: bool = Field(default=True, alias="searchEnabled")
    tavily_api_key: str | None = Field(default=None, alias="tavilyApiKey")


def _obfuscate(value: str) -> str:
    # Obfuscation only; the store is trusted
    return base64.b64encode(value.encode()).decode()


def _reveal(value: str) -> str:
    return base64.b64decode(value.encode()).decode()


class UserSettingsService:
    """Settings and credential access backed by a PersistentStore.

    Args:
        store: Backing store, separate from the cache store (cache.clear() empties its whole store)
        settings: Environment settings providing defaults
        policies: Retry policy table override
    """

    __slots__ = ("_store", "_env", "_policies")

    def __init__(
        self,
        store: PersistentStore,
        settings: LexiTrendSettings | None = None,
        *,
        policies: Mapping[ErrorKind, RetryPolicy] | None = None,
    ) -> None:
        self._store = store
        self._env = settings or LexiTrendSettings()
        self._policies = policies

    def _defaults(self) -> UserSettings:
        key = self._env.tavily.api_key
        return UserSettings(
            language=self._env.default_language,
            cache_enabled=self._env.cache.enabled,
            search_enabled=self._env.search.enabled,
            tavily_api_key=key.get_secret_value() if key else None,
        )

    async def _retry(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await retry_with_backoff(fn, ErrorKind.STORAGE, policies=self._policies, name=f"settings.{operation}")
        except LexiTrendError:
            raise
        except Exception as e:
            raise LexiTrendError.storage(f"{operation} failed: {e}", operation=operation, cause=e) from e

    # ── API key ──────────────────────────────────────────────────────────

    async def set_api_key(self, key: str) -> None:
        if not key or not key.strip():
            raise LexiTrendError.validation("API key must not be empty", operation="set_api_key")
        await self._retry("set_api_key", lambda: self._store.set(API_KEY, _obfuscate(key.strip())))

    async def get_api_key(self) -> str | None:
        stored = await self._retry("get_api_key", lambda: self._store.get(API_KEY))
        if stored:
            try:
                return _reveal(stored)
            except ValueError as e:
                raise LexiTrendError.storage("stored API key is unreadable", operation="get_api_key", cause=e) from e
        env_key = self._env.gemini.api_key
        return env_key.get_secret_value() if env_key else None

    async def has_api_key(self) -> bool:
        try:
            key = await self.get_api_key()
        except LexiTrendError as e:
            logger.warning(f"API key lookup failed: {e.message}")
            return False
        return bool(key and key.strip())

    async def clear_api_key(self) -> None:
        await self._retry("clear_api_key", lambda: self._store.remove(API_KEY))

    # ── settings document ────────────────────────────────────────────────

    async def get_settings(self) -> UserSettings:
        """Stored settings merged over defaults. Read failures yield defaults."""
        defaults = self._defaults()
        try:
            stored = await self._retry("get_settings", lambda: self._store.get(USER_SETTINGS))
        except LexiTrendError as e:
            logger.warning(f"Reading settings failed, using defaults: {e.message}")
            return defaults
        if not stored:
            return defaults
        try:
            return UserSettings.model_validate({**defaults.model_dump(by_alias=True), **stored})
        except ValidationError:
            logger.warning("Stored settings are invalid, using defaults")
            return defaults

    async def update_settings(self, **changes: object) -> UserSettings:
        current = await self.get_settings()
        try:
            updated = current.model_copy()
            for name, value in changes.items():
                setattr(updated, name, value)
        except (ValidationError, ValueError) as e:
            raise LexiTrendError.validation(f"invalid settings: {e}", operation="update_settings", cause=e) from e
        payload = updated.model_dump(by_alias=True)
        await self._retry("update_settings", lambda: self._store.set(USER_SETTINGS, payload))
        return updated

    async def reset_settings(self) -> None:
        payload = self._defaults().model_dump(by_alias=True)
        await self._retry("reset_settings", lambda: self._store.set(USER_SETTINGS, payload))

    # ── individual settings ──────────────────────────────────────────────

    async def set_language(self, language: str) -> None:
        if language not in SUPPORTED_PROMPT_LANGUAGES:
            raise LexiTrendError.validation(f"unsupported language: {language!r}", operation="set_language", language=language)
        await self.update_settings(language=language)

    async def get_language(self) -> str:
        return (await self.get_settings()).language

    async def set_onboarding_complete(self, complete: bool) -> None:
        await self.update_settings(onboarding_complete=complete)

    async def is_onboarding_complete(self) -> bool:
        return (await self.get_settings()).onboarding_complete

    async def set_search_api_key(self, key: str) -> None:
        await self.update_settings(tavily_api_key=key.strip() or None)

    async def get_search_api_key(self) -> str | None:
        return (await self.get_settings()).tavily_api_key or None

    async def set_search_enabled(self, enabled: bool) -> None:
        await self.update_settings(search_enabled=enabled)

    async def get_search_enabled(self) -> bool:
        return (await self.get_settings()).search_enabled

    async def clear_all(self) -> None:
        for key in (API_KEY, USER_SETTINGS, ONBOARDING_COMPLETE, LANGUAGE):
            await self._retry("clear_all", lambda key=key: self._store.remove(key))
