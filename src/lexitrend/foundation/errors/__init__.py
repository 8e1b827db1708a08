"""Unified error handling for lexitrend.

- ErrorKind: the six error categories (network, api, validation, storage, cache, unknown)
- LexiTrendError: structured exception with context, retryability and localized message
- classify_exception/normalize_exception: fold foreign exceptions into the taxonomy
- ErrorLog: bounded record of recent errors
"""

from .errors import (
    DEFAULT_LOCALE,
    ERROR_MESSAGES,
    RETRYABLE_KINDS,
    ErrorKind,
    LexiTrendError,
    classify_exception,
    localized_message,
    normalize_exception,
)
from .log import ErrorLog
from .types import ErrorContext, JsonDict, JsonValue, context

__all__ = [
    "ErrorKind", "LexiTrendError", "RETRYABLE_KINDS", "classify_exception", "normalize_exception",
    "ERROR_MESSAGES", "DEFAULT_LOCALE", "localized_message",
    "ErrorContext", "context", "JsonDict", "JsonValue",
    "ErrorLog",
]
