"""Application wiring.

build_app() constructs every service once from settings and returns them in
an AppContext; there are no module-level service singletons.

Example:
    >>> app = build_app()
    >>> await app.user_settings.set_api_key("AIza...")
    >>> insight = await app.coordinator.analyze("rizz", "en", enhanced=True)
    >>> await app.aclose()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from lexitrend.capabilities import (
    BackgroundHandler,
    GeminiClient,
    GenerationCapability,
    MessagingSearchClient,
    TavilyClient,
    Transport,
)
from lexitrend.foundation.config import LexiTrendSettings, UserSettingsService, get_settings
from lexitrend.foundation.errors import ErrorLog
from lexitrend.insight import RequestCoordinator
from lexitrend.io.cache import CacheService
from lexitrend.io.store import MemoryStore, PersistentStore
from lexitrend.runtime.observability import configure_from_settings

logger = logging.getLogger("lexitrend.app")


@dataclass(slots=True)
class AppContext:
    """Every service of one engine instance."""

    settings: LexiTrendSettings
    store: PersistentStore
    settings_store: PersistentStore
    cache: CacheService
    user_settings: UserSettingsService
    generation: GenerationCapability
    tavily: TavilyClient
    background: BackgroundHandler
    search: MessagingSearchClient
    error_log: ErrorLog
    coordinator: RequestCoordinator

    async def aclose(self) -> None:
        """Close HTTP clients and both stores."""
        if isinstance(self.generation, GeminiClient):
            await self.generation.aclose()
        await self.tavily.aclose()
        for store in (self.store, self.settings_store):
            if (close := getattr(store, "close", None)) is not None:
                await close()


def _default_stores(settings: LexiTrendSettings) -> tuple[PersistentStore, PersistentStore]:
    """Cache store and settings store. Under Redis both share one client with disjoint prefixes."""
    if settings.cache.backend == "redis":
        from lexitrend.io.store import RedisStore

        prefix = settings.cache.key_prefix
        cache_store = RedisStore.from_url(settings.cache.redis_url.get_secret_value(), prefix=f"{prefix}cache:")  # type: ignore[union-attr]
        return cache_store, cache_store.sibling(f"{prefix}settings:")
    return MemoryStore(), MemoryStore()


def build_app(
    settings: LexiTrendSettings | None = None,
    *,
    store: PersistentStore | None = None,
    settings_store: PersistentStore | None = None,
    generation: GenerationCapability | None = None,
    transport: Transport | None = None,
    http_client: httpx.AsyncClient | None = None,
    configure_logs: bool = False,
) -> AppContext:
    """Wire the engine.

    Args:
        settings: Environment settings (default: get_settings())
        store: Cache store (default: Redis when configured, else in-memory)
        settings_store: Store for credentials and user settings; never the cache store
        generation: Generation capability (default: GeminiClient)
        transport: Message transport to the search side (default: in-process BackgroundHandler)
        http_client: HTTP client shared by the Gemini and Tavily clients (caller closes it)
        configure_logs: Install the lexitrend log handler from settings.logging

    Raises:
        ValueError: If store and settings_store are the same object
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_from_settings(settings.logging)

    if store is None and settings_store is None:
        store, settings_store = _default_stores(settings)
    store = store if store is not None else MemoryStore()
    settings_store = settings_store if settings_store is not None else MemoryStore()
    if store is settings_store:
        raise ValueError("cache and user settings need separate stores; cache.clear() would erase credentials")
    user_settings = UserSettingsService(settings_store, settings)
    cache = CacheService(store)
    if generation is None:
        generation = GeminiClient(settings.gemini.base_url, timeout=settings.gemini.timeout, client=http_client)

    tavily = TavilyClient(
        user_settings.get_search_api_key, settings.tavily.base_url, timeout=settings.tavily.timeout, client=http_client,
    )
    background = BackgroundHandler(user_settings.get_search_api_key, tavily)
    search = MessagingSearchClient(transport or background.handle)
    error_log = ErrorLog(verbose=settings.is_development and settings.debug)

    coordinator = RequestCoordinator(
        cache,
        generation,
        user_settings,
        search=search,
        search_keys=search,
        settings=settings,
        error_log=error_log,
    )
    logger.debug(f"Built app: store={type(store).__name__} cache_enabled={settings.cache.enabled}")
    return AppContext(
        settings=settings,
        store=store,
        settings_store=settings_store,
        cache=cache,
        user_settings=user_settings,
        generation=generation,
        tavily=tavily,
        background=background,
        search=search,
        error_log=error_log,
        coordinator=coordinator,
    )
