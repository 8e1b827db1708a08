"""Error taxonomy for the insight engine.

Every failure that crosses the coordinator boundary is a LexiTrendError
carrying one of six kinds. Kinds drive retry policy (see runtime.retry) and
the localized user-facing message.
"""

from __future__ import annotations

import json
import time
from enum import StrEnum
from functools import lru_cache
from typing import Self

import httpx
from pydantic import ValidationError

from .types import ErrorContext, JsonDict, JsonValue, context


class ErrorKind(StrEnum):
    """Error categories. Values are stable and appear in serialized errors."""
    NETWORK = "network"
    API = "api"
    VALIDATION = "validation"
    STORAGE = "storage"
    CACHE = "cache"
    UNKNOWN = "unknown"


# Kinds that are retryable when raised through the factories
RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.NETWORK, ErrorKind.API, ErrorKind.STORAGE, ErrorKind.CACHE,
})

DEFAULT_LOCALE = "en"

ERROR_MESSAGES: dict[str, dict[ErrorKind, str]] = {
    "en": {
        ErrorKind.NETWORK: "Network connection failed, please check your connection and try again",
        ErrorKind.API: "API service temporarily unavailable, please try again later",
        ErrorKind.VALIDATION: "Input validation failed, please check your input.",
        ErrorKind.STORAGE: "Storage operation failed, please check storage permissions.",
        ErrorKind.CACHE: "Cache operation failed.",
        ErrorKind.UNKNOWN: "An unknown error occurred.",
    },
    "zh": {
        ErrorKind.NETWORK: "网络连接失败，请检查网络设置后重试",
        ErrorKind.API: "API服务暂时不可用，请稍后重试",
        ErrorKind.VALIDATION: "输入验证失败，请检查您的输入。",
        ErrorKind.STORAGE: "存储操作失败，请检查存储权限。",
        ErrorKind.CACHE: "缓存操作失败。",
        ErrorKind.UNKNOWN: "发生未知错误。",
    },
}


def localized_message(kind: ErrorKind, language: str | None) -> str:
    """Resolve user-facing message for kind, falling back to the default locale."""
    messages = ERROR_MESSAGES.get(language or DEFAULT_LOCALE) or ERROR_MESSAGES[DEFAULT_LOCALE]
    return messages.get(kind) or messages.get(ErrorKind.UNKNOWN) or "Unknown error occurred"


class LexiTrendError(Exception):
    """Structured engine error.

    Attributes:
        kind: Error category
        message: Technical message (kept for diagnostics)
        context: Operation name and details
        retryable: Whether retrying the operation may succeed
        user_message: Localized message, resolved once via localize()
        timestamp: Creation time in epoch milliseconds
    """

    __slots__ = ("kind", "message", "context", "retryable", "user_message", "timestamp")

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        ctx: ErrorContext | None = None,
        *,
        retryable: bool = False,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = ctx or context()
        self.retryable = retryable
        self.user_message = ""
        self.timestamp = int(time.time() * 1000)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def localize(self, language: str | None) -> Self:
        """Set the user-facing message for language. Returns self."""
        self.user_message = localized_message(self.kind, language)
        return self

    def to_dict(self) -> JsonDict:
        return {
            "name": type(self).__name__,
            "type": self.kind.value,
            "message": self.message,
            "userMessage": self.user_message,
            "context": self.context.model_dump(),
            "isRetryable": self.retryable,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"LexiTrendError(kind={self.kind.value!r}, message={self.message!r}, context={str(self.context)!r})"

    # ── factories, retryability fixed per kind ───────────────────────────

    @classmethod
    def _make(cls, kind: ErrorKind, message: str, operation: str, cause: BaseException | None, details: dict[str, JsonValue]) -> Self:
        return cls(kind, message, context(operation, **details), retryable=kind in RETRYABLE_KINDS, cause=cause)

    @classmethod
    def network(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.NETWORK, message, operation, cause, details)

    @classmethod
    def api(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.API, message, operation, cause, details)

    @classmethod
    def validation(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.VALIDATION, message, operation, cause, details)

    @classmethod
    def storage(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.STORAGE, message, operation, cause, details)

    @classmethod
    def cache(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.CACHE, message, operation, cause, details)

    @classmethod
    def unknown(cls, message: str, *, operation: str = "", cause: BaseException | None = None, **details: JsonValue) -> Self:
        return cls._make(ErrorKind.UNKNOWN, message, operation, cause, details)


# Pattern -> kind, checked in order against "<TypeName> <message>"
_PATTERN_KINDS: dict[str, ErrorKind] = {
    "timeout": ErrorKind.NETWORK,
    "connection": ErrorKind.NETWORK,
    "network": ErrorKind.NETWORK,
    "api key": ErrorKind.VALIDATION,
    "validation": ErrorKind.VALIDATION,
    "quota": ErrorKind.STORAGE,
    "storage": ErrorKind.STORAGE,
    "redis": ErrorKind.STORAGE,
    "rate": ErrorKind.API,
    "http": ErrorKind.API,
    "status": ErrorKind.API,
}
_PATTERN_KEYS = tuple(_PATTERN_KINDS)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorKind:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_KINDS[pattern]
    return ErrorKind.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map an exception onto an ErrorKind by type, then by name/message pattern."""
    if isinstance(exc, LexiTrendError):
        return exc.kind
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK
    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorKind.API
    if isinstance(exc, (ValidationError, json.JSONDecodeError)):
        return ErrorKind.API
    return _classify_cached(f"{type(exc).__name__} {exc}")


def normalize_exception(exc: BaseException, *, operation: str = "", **details: JsonValue) -> LexiTrendError:
    """Convert any exception into a LexiTrendError; LexiTrendErrors pass through unchanged."""
    if isinstance(exc, LexiTrendError):
        return exc
    kind = classify_exception(exc)
    return LexiTrendError(
        kind, str(exc) or type(exc).__name__, context(operation, **details),
        retryable=kind in RETRYABLE_KINDS, cause=exc,
    )
