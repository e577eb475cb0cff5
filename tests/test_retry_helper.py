"""
Unit tests for exponential backoff retries.
"""

import pytest

from pool_monitor.services.retry_helper import RetryHelper


class Flaky:
    """Fails a fixed number of times before succeeding."""

    def __init__(self, failures, result="ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"failure {self.calls}")
        return self.result


class TestRetryHelper:

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, retry_helper, sleeps):
        operation = Flaky(failures=0)

        assert await retry_helper.with_backoff(operation) == "ok"
        assert operation.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_two_failures_then_success(self, retry_helper, sleeps):
        operation = Flaky(failures=2, result=42)

        assert await retry_helper.with_backoff(operation) == 42
        assert operation.calls == 3
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_always_failing_raises_last_error(self, retry_helper, sleeps):
        operation = Flaky(failures=10)

        with pytest.raises(RuntimeError, match="failure 3"):
            await retry_helper.with_backoff(operation)

        assert operation.calls == 3
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_max_retries_override(self, retry_helper, sleeps):
        operation = Flaky(failures=10)

        with pytest.raises(RuntimeError, match="failure 4"):
            await retry_helper.with_backoff(operation, max_retries=4)

        assert operation.calls == 4
        assert sleeps == [1, 2, 4]

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_sleep(self, sleeps):
        async def fake_sleep(seconds):
            sleeps.append(seconds)

        helper = RetryHelper(max_retries=1, sleep=fake_sleep)
        operation = Flaky(failures=1)

        with pytest.raises(RuntimeError):
            await helper.with_backoff(operation)

        assert operation.calls == 1
        assert sleeps == []
