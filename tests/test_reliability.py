"""
Test suite for reliability helpers.

Validates bounded retry, timeouts, and performance tracking.
"""

import asyncio

import pytest

from revintel.core.exceptions import ResearchTimeoutError
from revintel.utils.reliability import call_with_retry, elapsed_ms, track_performance, with_timeout


class TestCallWithRetry:
    """Test retry logic."""

    @pytest.mark.asyncio
    async def test_success_after_retry(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 2:
                raise ConnectionError("reset")
            return "ok"

        result = await call_with_retry(flaky, max_attempts=3, backoff_min=0, backoff_max=0)

        assert result == "ok"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_last_error_reraised(self):
        attempts = []

        async def failing():
            attempts.append(1)
            raise ConnectionError(f"attempt {len(attempts)}")

        with pytest.raises(ConnectionError, match="attempt 2"):
            await call_with_retry(failing, max_attempts=2, backoff_min=0, backoff_max=0)

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_predicate_limits_retries(self):
        attempts = []

        async def failing():
            attempts.append(1)
            raise ValueError("permanent")

        with pytest.raises(ValueError):
            await call_with_retry(
                failing,
                max_attempts=5,
                retry_if=lambda exc: isinstance(exc, ConnectionError),
                backoff_min=0,
                backoff_max=0,
            )

        assert len(attempts) == 1


class TestWithTimeout:
    """Test timeout bounding."""

    @pytest.mark.asyncio
    async def test_fast_call_passes_through(self):
        async def fast():
            return 42

        assert await with_timeout(fast(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self):
        with pytest.raises(ResearchTimeoutError) as exc_info:
            await with_timeout(asyncio.sleep(5), 0.01, operation="synthesis")

        assert exc_info.value.details["operation"] == "synthesis"


@pytest.mark.asyncio
async def test_track_performance_preserves_result_and_errors():
    @track_performance("double")
    async def double(x):
        return x * 2

    @track_performance("explode")
    async def explode():
        raise RuntimeError("boom")

    assert await double(4) == 8
    with pytest.raises(RuntimeError):
        await explode()


def test_elapsed_ms():
    assert elapsed_ms(10.0, now=10.25) == 250
