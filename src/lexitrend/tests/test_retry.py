"""Tests for retry policies and backoff."""

from __future__ import annotations

import pytest

from lexitrend.foundation.errors import ErrorKind, LexiTrendError
from lexitrend.runtime.retry import (
    DEFAULT_POLICIES,
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    RetryPolicy,
    policy_for,
    retry_with_backoff,
    schedule,
    with_retry,
)

from conftest import FAST_POLICIES


class Flaky:
    """Async operation failing `failures` times before returning 'ok'."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or RuntimeError("transient")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


# ─────────────────────────────────────────────────────────────────────────────
# Backoff
# ─────────────────────────────────────────────────────────────────────────────


def test_exponential_backoff() -> None:
    b = ExponentialBackoff(base=1.0, multiplier=2.0)
    assert [b.delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert ExponentialBackoff(base=1.0, max_delay=5.0).delay(10) == 5.0


def test_default_policy_wait_schedules() -> None:
    def waits(kind: ErrorKind) -> list[float]:
        policy = DEFAULT_POLICIES[kind]
        return schedule(policy.backoff, policy.max_retries)

    assert waits(ErrorKind.NETWORK) == [1.0, 2.0, 4.0]
    assert waits(ErrorKind.API) == [0.0, 2.0]
    assert waits(ErrorKind.STORAGE) == [1.0, 1.0]
    assert waits(ErrorKind.CACHE) == [0.5]


def test_linear_and_constant_backoff() -> None:
    assert [LinearBackoff(base=0.0, increment=2.0).delay(n) for n in range(3)] == [0.0, 2.0, 4.0]
    assert ConstantBackoff(0.5).delay(7) == 0.5


# ─────────────────────────────────────────────────────────────────────────────
# Policies
# ─────────────────────────────────────────────────────────────────────────────


def test_default_policy_table() -> None:
    assert DEFAULT_POLICIES[ErrorKind.NETWORK].max_retries == 3
    assert DEFAULT_POLICIES[ErrorKind.NETWORK].get_delay(2) == 4.0
    assert DEFAULT_POLICIES[ErrorKind.API].get_delay(1) == 2.0
    assert DEFAULT_POLICIES[ErrorKind.STORAGE].get_delay(0) == 1.0
    assert DEFAULT_POLICIES[ErrorKind.CACHE].max_attempts == 2
    assert DEFAULT_POLICIES[ErrorKind.VALIDATION].is_disabled
    assert DEFAULT_POLICIES[ErrorKind.UNKNOWN].max_attempts == 1


def test_policy_bounds_validated() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=11)


def test_policy_for_falls_back_to_no_retry() -> None:
    assert policy_for(ErrorKind.CACHE, {}).max_retries == 1  # empty table means defaults
    assert policy_for(ErrorKind.CACHE, {ErrorKind.API: DEFAULT_POLICIES[ErrorKind.API]}).is_disabled


# ─────────────────────────────────────────────────────────────────────────────
# retry_with_backoff
# ─────────────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_first_success_returns_immediately() -> None:
    op = Flaky(0)
    assert await retry_with_backoff(op, ErrorKind.NETWORK, policies=FAST_POLICIES) == "ok"
    assert op.calls == 1


@pytest.mark.asyncio
async def test_retries_until_success() -> None:
    op = Flaky(2)
    assert await retry_with_backoff(op, ErrorKind.NETWORK, policies=FAST_POLICIES) == "ok"
    assert op.calls == 3


@pytest.mark.asyncio
async def test_exhausted_retries_reraise_last_error() -> None:
    policies = {ErrorKind.CACHE: RetryPolicy(max_retries=2, backoff=ConstantBackoff(0.0), retryable=True)}
    op = Flaky(10, LexiTrendError.cache("store down"))
    with pytest.raises(LexiTrendError) as exc_info:
        await retry_with_backoff(op, ErrorKind.CACHE, policies=policies)
    assert op.calls == 3
    assert exc_info.value.kind is ErrorKind.CACHE


@pytest.mark.asyncio
async def test_non_retryable_kind_runs_once() -> None:
    error = LexiTrendError.validation("bad input")
    op = Flaky(5, error)
    with pytest.raises(LexiTrendError) as exc_info:
        await retry_with_backoff(op, ErrorKind.VALIDATION, policies=FAST_POLICIES)
    assert op.calls == 1
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_waits_use_policy_delays(monkeypatch: pytest.MonkeyPatch) -> None:
    slept: list[float] = []

    async def fake_sleep(delay: float) -> None:
        slept.append(delay)

    monkeypatch.setattr("lexitrend.runtime.retry.policy.asyncio.sleep", fake_sleep)
    op = Flaky(3)
    assert await retry_with_backoff(op, ErrorKind.NETWORK) == "ok"
    assert slept == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_with_retry_decorator() -> None:
    calls = 0

    @with_retry(ErrorKind.STORAGE, policies=FAST_POLICIES)
    async def load(key: str) -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise LexiTrendError.storage("busy")
        return key.upper()

    assert await load("k") == "K"
    assert calls == 3
    assert load.__name__ == "load"
