"""Delay ramps used by the per-kind retry policies.

network errors ramp exponentially (1s, 2s, 4s), api errors linearly
(0s, 2s) and storage/cache errors wait a constant interval. Retry numbers
passed to delay() start at 0 for the wait before the first retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    def delay(self, attempt: int) -> float: ...


def schedule(backoff: Backoff, retries: int) -> list[float]:
    """Every wait a policy with this backoff and retry count would sleep, in order."""
    return [backoff.delay(n) for n in range(retries)]


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """base * multiplier**attempt, capped at max_delay."""

    base: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        if attempt < 0:
            return 0.0
        return min(self.max_delay, self.base * self.multiplier ** attempt)


@dataclass(frozen=True, slots=True)
class LinearBackoff:
    """base + increment * attempt, capped at max_delay."""

    base: float = 0.0
    increment: float = 2.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(self.max_delay, self.base + self.increment * max(attempt, 0))


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.seconds
