"""Analysis entry point: cache lookup, request coalescing and error surfacing.

RequestCoordinator.analyze() is the only public way to produce an insight.
For a given term and language it:

1. rejects an empty term before any external call
2. resolves the language (unknown codes fall back to "en")
3. selects the model from the term
4. returns a cached result if one exists (no freshness check)
5. otherwise joins the in-flight generation for the same request key, or
   starts one; the generation task writes the cache on success
6. surfaces any failure as a localized LexiTrendError

The generation task is shared by every concurrent caller and released from
the pending map on every exit path. Abandoning an await does not cancel it.
"""

from __future__ import annotations

import logging
import math
import re
import time
from collections import deque
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from pydantic import BaseModel

from lexitrend.capabilities.protocols import (
    CredentialProvider,
    GenerationCapability,
    SearchCapability,
    SearchKeyValidator,
)
from lexitrend.foundation.config import LexiTrendSettings
from lexitrend.foundation.errors import ErrorKind, ErrorLog, LexiTrendError, normalize_exception
from lexitrend.foundation.languages import DEFAULT_LANGUAGE, resolve_language
from lexitrend.io.cache import CacheService
from lexitrend.runtime import PendingRequests
from lexitrend.tools import WebSearchTool

from .models import EnhancedInsight, Insight, SearchMetadata
from .selection import SUPPORTED_MODELS, fingerprint, normalize_term, request_key, select_model
from .workflow import AugmentedGenerationWorkflow, generate_basic, missing_key_error

logger = logging.getLogger("lexitrend.coordinator")

R = TypeVar("R", bound=BaseModel)

INVALID_KEY_MARKER = "API key not valid"
VALIDATION_RATE_LIMIT = 5
VALIDATION_WINDOW_SECONDS = 60.0

_CJK = re.compile(r"[一-鿿]")


def estimate_tokens(text: str) -> int:
    """Rough token count: 1.5 per CJK ideograph, 1 per other whitespace-separated word."""
    cjk = len(_CJK.findall(text))
    words = len(_CJK.sub("", text).split())
    return math.ceil(cjk * 1.5) + words


class RequestCoordinator:
    """Cache-first, coalescing analysis service.

    Args:
        cache: Result cache
        generation: Generation capability
        credentials: API key, language and search preferences
        search: Search capability offered to the model as a tool (enhanced analysis)
        search_keys: Validator for search provider keys
        settings: Environment settings (cache toggles, search limits)
        error_log: Record of surfaced errors
        clock: Monotonic clock for key-validation rate limiting
    """

    def __init__(
        self,
        cache: CacheService,
        generation: GenerationCapability,
        credentials: CredentialProvider,
        *,
        search: SearchCapability | None = None,
        search_keys: SearchKeyValidator | None = None,
        settings: LexiTrendSettings | None = None,
        error_log: ErrorLog | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or LexiTrendSettings()
        self._cache = cache
        self._generation = generation
        self._credentials = credentials
        self._search_keys = search_keys
        self._error_log = error_log if error_log is not None else ErrorLog()
        self._clock = clock
        self._validations: deque[float] = deque()
        self._basic: PendingRequests[Insight] = PendingRequests()
        self._enhanced: PendingRequests[EnhancedInsight] = PendingRequests()
        self._workflow: AugmentedGenerationWorkflow | None = None
        if search is not None:
            tavily, opts = self._settings.tavily, self._settings.search
            tool = WebSearchTool(
                search, depth=tavily.search_depth, max_results=tavily.max_results, content_limit=opts.content_limit,
            )
            self._workflow = AugmentedGenerationWorkflow(generation, credentials, [tool], max_steps=opts.max_steps)

    @property
    def error_log(self) -> ErrorLog:
        return self._error_log

    @property
    def pending(self) -> dict[str, list[str]]:
        """Request keys currently in flight, by analysis kind."""
        return {"basic": self._basic.keys(), "enhanced": self._enhanced.keys()}

    # ── analysis ─────────────────────────────────────────────────────────

    async def analyze(self, term: str, language: str, enhanced: bool = False) -> Insight | EnhancedInsight:
        """Analyze term in language, enriched with web search when enhanced.

        Raises:
            LexiTrendError: validation kind for an empty term or missing/invalid
                API key; api kind for generation failures; cache kind for cache
                failures (unless the cache fails open)
        """
        operation = "analyze_keyword_enhanced" if enhanced else "analyze_keyword"
        try:
            if enhanced:
                return await self._analyze(term, language, operation, True, self._enhanced, EnhancedInsight, self._run_enhanced)
            return await self._analyze(term, language, operation, False, self._basic, Insight, self._run_basic)
        except Exception as e:
            error = await self._surface(e, operation)
            if error is e:
                raise
            raise error from e

    async def analyze_enhanced(self, term: str, language: str) -> EnhancedInsight:
        return await self.analyze(term, language, enhanced=True)  # type: ignore[return-value]

    async def _analyze(
        self,
        term: str,
        language: str,
        operation: str,
        enhanced: bool,
        pending: PendingRequests[R],
        model: type[R],
        run: Callable[[str, str, str, str], Coroutine[Any, Any, R]],
    ) -> R:
        if not term or not term.strip():
            raise LexiTrendError.validation("Keyword must not be empty", operation=operation)
        term = normalize_term(term)
        lang = resolve_language(language)
        model_id = select_model(term)
        cache_key = fingerprint(term, lang, model_id, enhanced=enhanced)

        if (cached := await self._cache_get(cache_key, model)) is not None:
            logger.debug(f"Cache hit {cache_key}")
            return cached

        key = request_key(term, lang, enhanced=enhanced)
        return await pending.join(key, lambda: self._generate_and_store(run, term, lang, model_id, operation, cache_key))

    async def _generate_and_store(
        self,
        run: Callable[[str, str, str, str], Coroutine[Any, Any, R]],
        term: str,
        language: str,
        model_id: str,
        operation: str,
        cache_key: str,
    ) -> R:
        try:
            result = await run(term, language, model_id, operation)
        except Exception as e:
            error = self._wrap_generation_error(e, operation, term, language)
            if error is e:
                raise
            raise error from e
        await self._cache_set(cache_key, result)
        return result

    @staticmethod
    def _wrap_generation_error(exc: Exception, operation: str, term: str, language: str) -> LexiTrendError:
        message = exc.message if isinstance(exc, LexiTrendError) else str(exc) or type(exc).__name__
        if INVALID_KEY_MARKER in message:
            return LexiTrendError.validation("API key is invalid or expired", operation=operation, cause=exc)
        if isinstance(exc, LexiTrendError) and exc.kind is ErrorKind.VALIDATION:
            return exc
        return LexiTrendError.api(
            f"Keyword analysis failed: {message}", operation=operation, cause=exc, term=term, language=language,
        )

    async def _run_basic(self, term: str, language: str, model_id: str, operation: str) -> Insight:
        api_key = await self._credentials.get_api_key()
        if not api_key:
            raise missing_key_error(operation)
        return await generate_basic(self._generation, api_key=api_key, term=term, language=language, model_id=model_id)

    async def _run_enhanced(self, term: str, language: str, model_id: str, operation: str) -> EnhancedInsight:
        if self._workflow is None or not await self._search_available():
            logger.info(f"Search unavailable, degrading {term!r} to basic analysis")
            basic = await self._run_basic(term, language, model_id, operation)
            return EnhancedInsight(
                **basic.model_dump(),
                search_metadata=SearchMetadata(search_performed=False, sources=[]),
            )
        return await self._workflow.run(term, language, model_id)

    async def _search_available(self) -> bool:
        if not self._settings.search.enabled or not await self._credentials.get_search_enabled():
            return False
        return bool(await self._credentials.get_search_api_key())

    # ── cache access ─────────────────────────────────────────────────────

    async def _cache_get(self, key: str, model: type[R]) -> R | None:
        if not self._settings.cache.enabled:
            return None
        try:
            return await self._cache.get_model(key, model)
        except LexiTrendError as e:
            if not self._settings.cache.fail_open:
                raise
            logger.warning(f"Cache read failed for {key!r}, treating as miss: {e.message}")
            return None

    async def _cache_set(self, key: str, value: BaseModel) -> None:
        if not self._settings.cache.enabled:
            return
        try:
            await self._cache.set(key, value)
        except LexiTrendError as e:
            if not self._settings.cache.fail_open:
                raise
            logger.warning(f"Cache write failed for {key!r}, result not cached: {e.message}")

    async def invalidate(self, term: str, language: str, enhanced: bool = False) -> None:
        """Drop the cached result for term so the next analyze() regenerates it."""
        term = normalize_term(term)
        lang = resolve_language(language)
        await self._cache.remove(fingerprint(term, lang, select_model(term), enhanced=enhanced))

    # ── errors ───────────────────────────────────────────────────────────

    async def _surface(self, exc: Exception, operation: str) -> LexiTrendError:
        error = normalize_exception(exc, operation=operation)
        try:
            language = await self._credentials.get_language()
        except Exception:
            language = DEFAULT_LANGUAGE
        error.localize(language)
        # Coalesced waiters share one error instance; record and log it once
        if self._error_log.record(error) and error.kind is not ErrorKind.VALIDATION:
            logger.error(f"{operation} failed ({error.kind}): {error.message}")
        return error

    # ── helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def supported_models() -> list[str]:
        return list(SUPPORTED_MODELS)

    @staticmethod
    def estimate_tokens(text: str) -> int:
        return estimate_tokens(text)

    def _rate_limited(self) -> bool:
        now = self._clock()
        while self._validations and now - self._validations[0] >= VALIDATION_WINDOW_SECONDS:
            self._validations.popleft()
        return len(self._validations) >= VALIDATION_RATE_LIMIT

    async def validate_api_key(self, api_key: str) -> bool:
        """Check a generation key with a minimal call.

        At most five checks run per sliding minute; excess checks return False
        without calling out.
        """
        if not api_key or not api_key.strip():
            return False
        if self._rate_limited():
            logger.warning("Rate limit exceeded for API key validation")
            return False
        self._validations.append(self._clock())
        try:
            return await self._generation.validate_key(api_key.strip())
        except Exception as e:
            logger.warning(f"API key validation failed: {e}")
            return False

    async def validate_search_key(self, api_key: str) -> bool:
        if not api_key or not api_key.strip() or self._search_keys is None:
            return False
        try:
            return await self._search_keys.validate_key(api_key.strip())
        except Exception as e:
            logger.warning(f"Search key validation failed: {e}")
            return False
