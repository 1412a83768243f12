# SPDX-License-Identifier: MIT
"""Tests for the retry helper."""

from unittest.mock import AsyncMock, patch

import pytest

from elective_sync.retry_utils import call_with_backoff


@pytest.fixture
def sleep():
    """Replace backoff sleeps with a recorder."""
    with patch("elective_sync.retry_utils.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        yield mock_sleep


class TestCallWithBackoff:
    """Test cases for call_with_backoff."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, sleep):
        """Test that a successful call is not retried."""
        operation = AsyncMock(return_value="rows")

        assert await call_with_backoff(operation) == "rows"
        operation.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_until_success(self, sleep):
        """Test that listed errors are retried."""
        operation = AsyncMock(side_effect=[ConnectionError(), ConnectionError(), "rows"])

        result = await call_with_backoff(
            operation, max_retries=2, retry_on=(ConnectionError,)
        )

        assert result == "rows"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_delays_grow_exponentially(self, sleep):
        """Test the backoff schedule and its cap."""
        operation = AsyncMock(side_effect=[OSError()] * 4 + ["rows"])

        await call_with_backoff(
            operation,
            max_retries=4,
            initial_delay=1.0,
            max_delay=5.0,
            exponential_base=2.0,
            retry_on=(OSError,),
        )

        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, sleep):
        """Test that the last error propagates."""
        operation = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(ConnectionError, match="reset"):
            await call_with_backoff(operation, max_retries=2, retry_on=(ConnectionError,))

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_unlisted_errors_are_not_retried(self, sleep):
        """Test that other exceptions propagate immediately."""
        operation = AsyncMock(side_effect=ValueError("bad filter"))

        with pytest.raises(ValueError):
            await call_with_backoff(operation, retry_on=(ConnectionError,))

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_retries(self, sleep):
        """Test that max_retries=0 makes a single attempt."""
        operation = AsyncMock(side_effect=ConnectionError())

        with pytest.raises(ConnectionError):
            await call_with_backoff(operation, max_retries=0)

        operation.assert_awaited_once()
