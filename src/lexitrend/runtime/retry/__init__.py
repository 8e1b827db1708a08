"""Retry policies keyed by error kind.

Example:
    >>> from lexitrend.runtime.retry import retry_with_backoff
    >>> from lexitrend.foundation.errors import ErrorKind
    >>> value = await retry_with_backoff(lambda: store.get("k"), ErrorKind.CACHE)
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff, LinearBackoff, schedule
from .policy import DEFAULT_POLICIES, NO_RETRY, RetryPolicy, policy_for, retry_with_backoff, with_retry

__all__ = [
    "Backoff", "ExponentialBackoff", "LinearBackoff", "ConstantBackoff", "schedule",
    "RetryPolicy", "DEFAULT_POLICIES", "NO_RETRY", "policy_for",
    "retry_with_backoff", "with_retry",
]
