"""Tests for resilience/retry.py: RetryPolicy."""

from __future__ import annotations

import pytest

from rpm_builder.core.exceptions import (
    APIConnectionError,
    AuthenticationError,
    GatewayError,
    ResourceNotFoundError,
    ServerError,
)
from rpm_builder.resilience.retry import RetryPolicy


def _policy(**kwargs: object) -> RetryPolicy:
    return RetryPolicy(backoff_base=0.0, jitter=False, **kwargs)  # type: ignore[arg-type]


async def test_succeeds_first_try() -> None:
    async def ok() -> str:
        return "ok"

    assert await _policy().execute(ok) == "ok"


async def test_retries_server_errors_then_succeeds() -> None:
    calls = 0

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise ServerError("503 from api", status_code=503)
        return "recovered"

    assert await _policy(max_retries=3).execute(flaky) == "recovered"
    assert calls == 3


async def test_exhausts_retries() -> None:
    calls = 0

    async def down() -> None:
        nonlocal calls
        calls += 1
        raise APIConnectionError("connection refused")

    with pytest.raises(APIConnectionError):
        await _policy(max_retries=2).execute(down)
    # 1 initial + 2 retries
    assert calls == 3


@pytest.mark.parametrize(
    "error",
    [
        ResourceNotFoundError("missing", status_code=404),
        AuthenticationError("forbidden", status_code=403),
        GatewayError("bad request", status_code=400),
        ValueError("not a gateway error"),
    ],
)
async def test_non_retryable_raised_immediately(error: Exception) -> None:
    calls = 0

    async def fail() -> None:
        nonlocal calls
        calls += 1
        raise error

    with pytest.raises(type(error)):
        await _policy(max_retries=3).execute(fail)
    assert calls == 1


async def test_passes_arguments_through() -> None:
    async def add(a: int, b: int = 0) -> int:
        return a + b

    assert await _policy().execute(add, 2, b=3) == 5


def test_compute_delay_is_capped() -> None:
    policy = RetryPolicy(backoff_base=1.0, backoff_max=4.0, jitter=False)
    assert [policy._compute_delay(i) for i in range(4)] == [1.0, 2.0, 4.0, 4.0]


def test_compute_delay_with_jitter_in_range() -> None:
    policy = RetryPolicy(backoff_base=1.0, backoff_max=8.0, jitter=True)
    for _ in range(50):
        assert 0.0 <= policy._compute_delay(2) <= 4.0


def test_custom_retryable_exceptions() -> None:
    policy = RetryPolicy(retryable_exceptions=(TimeoutError, ResourceNotFoundError))
    assert policy._is_retryable(TimeoutError())
    assert policy._is_retryable(ResourceNotFoundError("x"))
    assert not policy._is_retryable(GatewayError("x"))


def test_error_class_decision_overrides_list() -> None:
    policy = RetryPolicy(retryable_exceptions=(AuthenticationError,))
    assert not policy._is_retryable(AuthenticationError("x"))
    # ServerError declares itself retryable even when not listed.
    assert policy._is_retryable(ServerError("x"))
