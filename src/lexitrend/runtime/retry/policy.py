"""Per-error-kind retry policies.

Each ErrorKind maps to a RetryPolicy. retry_with_backoff() runs an async
operation under the policy for a kind: non-retryable kinds run exactly
once, retryable kinds re-run up to max_retries more times with the policy's
backoff between attempts. The last error is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from functools import wraps
from typing import Annotated, ParamSpec, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from lexitrend.foundation.errors import ErrorKind

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff, LinearBackoff

logger = logging.getLogger("lexitrend.retry")

P = ParamSpec("P")
T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Retry configuration for one error kind.

    Attributes:
        max_retries: Additional attempts after the first (0 = run once)
        backoff: Delay strategy, called with the 0-indexed retry number
        retryable: Whether failures of this kind are retried at all
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        extra="forbid",
        revalidate_instances="never",
    )

    max_retries: Annotated[int, Field(ge=0, le=10)] = 0
    backoff: Backoff = Field(default_factory=ConstantBackoff, repr=False)
    retryable: bool = False

    @computed_field
    @property
    def is_disabled(self) -> bool:
        return not self.retryable or self.max_retries == 0

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first."""
        return 1 if self.is_disabled else self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        return self.backoff.delay(attempt)

    def __hash__(self) -> int:
        return hash((self.max_retries, self.retryable))


NO_RETRY = RetryPolicy(max_retries=0, retryable=False)

DEFAULT_POLICIES: Mapping[ErrorKind, RetryPolicy] = {
    ErrorKind.NETWORK: RetryPolicy(max_retries=3, backoff=ExponentialBackoff(base=1.0, multiplier=2.0), retryable=True),
    ErrorKind.API: RetryPolicy(max_retries=2, backoff=LinearBackoff(base=0.0, increment=2.0), retryable=True),
    ErrorKind.VALIDATION: NO_RETRY,
    ErrorKind.STORAGE: RetryPolicy(max_retries=2, backoff=ConstantBackoff(1.0), retryable=True),
    ErrorKind.CACHE: RetryPolicy(max_retries=1, backoff=ConstantBackoff(0.5), retryable=True),
    ErrorKind.UNKNOWN: NO_RETRY,
}


def policy_for(kind: ErrorKind, policies: Mapping[ErrorKind, RetryPolicy] | None = None) -> RetryPolicy:
    return (policies or DEFAULT_POLICIES).get(kind, NO_RETRY)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    kind: ErrorKind,
    *,
    policies: Mapping[ErrorKind, RetryPolicy] | None = None,
    name: str = "",
) -> T:
    """Run operation under the retry policy registered for kind.

    Args:
        operation: Zero-arg async callable, invoked once per attempt
        kind: Error kind selecting the policy
        policies: Policy table override (defaults to DEFAULT_POLICIES)
        name: Operation name for log lines

    Returns:
        Result of the first successful attempt
    """
    policy = policy_for(kind, policies)
    if policy.is_disabled:
        return await operation()

    label = name or getattr(operation, "__qualname__", "operation")
    for attempt in range(policy.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.max_retries:
                raise
            delay = policy.get_delay(attempt)
            logger.info(
                f"[{label}] Retry {attempt + 1}/{policy.max_retries} "
                f"after {delay:.1f}s ({kind}): {e}"
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover


def with_retry(
    kind: ErrorKind,
    *,
    policies: Mapping[ErrorKind, RetryPolicy] | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator form of retry_with_backoff for async functions.

    Example:
        >>> @with_retry(ErrorKind.STORAGE)
        ... async def load(key: str) -> bytes | None:
        ...     return await client.get(key)
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await retry_with_backoff(
                lambda: func(*args, **kwargs), kind, policies=policies, name=func.__qualname__,
            )
        return wrapper

    return decorator
