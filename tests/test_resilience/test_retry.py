"""Tests for the retry decorator and backoff formula."""

from unittest.mock import AsyncMock, patch

import pytest

from channel_notifier.resilience.retry import backoff_delay, retry_async


class TestBackoffDelay:
    def test_exponential_without_jitter(self):
        assert backoff_delay(0, 1.0, 60.0, jitter=0) == 1.0
        assert backoff_delay(1, 1.0, 60.0, jitter=0) == 2.0
        assert backoff_delay(3, 1.0, 60.0, jitter=0) == 8.0

    def test_capped_at_max_delay(self):
        assert backoff_delay(10, 1.0, 8.0, jitter=0) == 8.0

    def test_jitter_stays_in_range(self):
        for _ in range(50):
            delay = backoff_delay(2, 1.0, 60.0, jitter=0.1)
            assert 3.6 <= delay <= 4.4


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        fn = AsyncMock(return_value="ok")
        wrapped = retry_async(max_attempts=3, base_delay=0)(fn)

        assert await wrapped() == "ok"
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_listed_exceptions(self):
        fn = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        wrapped = retry_async(max_attempts=3, base_delay=0, retry_on=(ConnectionError,))(fn)

        with patch("channel_notifier.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await wrapped() == "ok"

        assert fn.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        fn = AsyncMock(side_effect=ConnectionError("down"))
        wrapped = retry_async(max_attempts=2, base_delay=0, retry_on=(ConnectionError,))(fn)

        with pytest.raises(ConnectionError):
            await wrapped()
        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate_immediately(self):
        fn = AsyncMock(side_effect=ValueError("bad"))
        wrapped = retry_async(max_attempts=5, base_delay=0, retry_on=(ConnectionError,))(fn)

        with pytest.raises(ValueError):
            await wrapped()
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_parameters_resolved_from_instance(self):
        class Client:
            attempts = 4

            def __init__(self):
                self.calls = 0

            @retry_async(
                max_attempts=lambda self: self.attempts,
                base_delay=0,
                retry_on=(ConnectionError,),
            )
            async def fetch(self):
                self.calls += 1
                raise ConnectionError("nope")

        client = Client()
        with pytest.raises(ConnectionError):
            await client.fetch()
        assert client.calls == 4
