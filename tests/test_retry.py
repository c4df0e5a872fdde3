"""Tests for retry and timeout combinators."""

import asyncio

import pytest

from regress.browser.retry import RetryPolicy, with_retry, with_timeout


class TestRetryPolicy:
    """Tests for RetryPolicy delays."""

    def test_fixed_delay_by_default(self):
        policy = RetryPolicy(delay_seconds=2.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 2.0, 2.0]

    def test_backoff_is_capped(self):
        policy = RetryPolicy(delay_seconds=1.0, backoff_factor=2.0, max_delay_seconds=3)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]


class TestWithRetry:
    """Tests for with_retry."""

    async def test_returns_first_success(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            return "ok"

        assert await with_retry(func, RetryPolicy(delay_seconds=0)) == "ok"
        assert calls == 1

    async def test_succeeds_on_third_attempt(self):
        calls = 0
        retries: list[int] = []

        async def func():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RuntimeError(f"failure {calls}")
            return calls

        result = await with_retry(
            func,
            RetryPolicy(max_attempts=3, delay_seconds=0),
            on_retry=lambda attempt, _e, _d: retries.append(attempt),
        )
        assert result == 3
        assert retries == [1, 2]

    async def test_raises_last_error_when_exhausted(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise RuntimeError(f"failure {calls}")

        with pytest.raises(RuntimeError, match="failure 3"):
            await with_retry(func, RetryPolicy(max_attempts=3, delay_seconds=0))
        assert calls == 3

    async def test_non_retryable_error_is_raised_immediately(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await with_retry(
                func,
                RetryPolicy(max_attempts=3, delay_seconds=0),
                should_retry=lambda e: not isinstance(e, ValueError),
            )
        assert calls == 1


class TestWithTimeout:
    """Tests for with_timeout."""

    async def test_returns_result_within_bound(self):
        async def quick():
            return 42

        assert await with_timeout(quick(), 1) == 42

    async def test_raises_timeout_error_by_default(self):
        with pytest.raises(TimeoutError):
            await with_timeout(asyncio.sleep(1), 0.01)

    async def test_raises_custom_error(self):
        class Expired(Exception):
            pass

        with pytest.raises(Expired):
            await with_timeout(asyncio.sleep(1), 0.01, on_timeout=Expired)

    async def test_timeout_wins_over_remaining_attempts(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise RuntimeError("still failing")

        with pytest.raises(TimeoutError):
            await with_timeout(
                with_retry(func, RetryPolicy(max_attempts=100, delay_seconds=0.05)),
                0.12,
            )
        assert calls < 100
