"""Bounded in-memory record of surfaced errors."""

from __future__ import annotations

import logging
from collections import deque

from .errors import ErrorKind, LexiTrendError

logger = logging.getLogger("lexitrend.errors")

MAX_LOGS = 100


class ErrorLog:
    """Keeps the most recent errors, newest first.

    Args:
        max_logs: Capacity; older entries are dropped
        verbose: Emit each recorded error at DEBUG level (development mode)
    """

    __slots__ = ("_logs", "_verbose")

    def __init__(self, max_logs: int = MAX_LOGS, *, verbose: bool = False) -> None:
        self._logs: deque[LexiTrendError] = deque(maxlen=max_logs)
        self._verbose = verbose

    def record(self, error: LexiTrendError) -> bool:
        """Add error unless this same instance is already held. Returns whether it was added."""
        if any(e is error for e in self._logs):
            return False
        self._logs.appendleft(error)
        if self._verbose:
            logger.debug(f"Recorded error {error.to_dict()}")
        return True

    def entries(self) -> list[LexiTrendError]:
        return list(self._logs)

    def by_kind(self, kind: ErrorKind) -> list[LexiTrendError]:
        return [e for e in self._logs if e.kind is kind]

    def clear(self) -> None:
        self._logs.clear()

    def __len__(self) -> int:
        return len(self._logs)
