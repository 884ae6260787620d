"""Tests for the exponential backoff executor."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from basilisk_stream.backoff import compute_delay_ms, with_exponential_backoff
from basilisk_stream.config import BackoffSpec


class Boom(Exception):
    pass


class TestComputeDelay:
    def test_monotonic_without_jitter(self):
        delays = [compute_delay_ms(n, 1000, 0) for n in range(3)]
        assert delays == [1000, 2000, 4000]
        assert delays[1] / delays[0] == 2
        assert delays[2] / delays[1] == 2

    def test_jitter_added_before_scaling(self):
        assert compute_delay_ms(2, 1000, 250) == (1000 + 250) * 4


class TestWithExponentialBackoff:
    async def test_returns_on_first_success(self):
        fn = AsyncMock(return_value="ok")
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await with_exponential_backoff(fn)
        assert result == "ok"
        assert fn.call_count == 1
        sleep.assert_not_called()

    async def test_retries_until_success(self):
        fn = AsyncMock(side_effect=[Boom("1"), Boom("2"), "recovered"])
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock):
            result = await with_exponential_backoff(fn, BackoffSpec(max_retries=3))
        assert result == "recovered"
        assert fn.call_count == 3

    async def test_retry_budget_surfaces_original_error(self):
        err = Boom("always")
        fn = AsyncMock(side_effect=err)
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(Boom) as exc_info:
                await with_exponential_backoff(fn, BackoffSpec(max_retries=2))
        assert exc_info.value is err
        assert fn.call_count == 3

    async def test_zero_retries_attempts_once(self):
        fn = AsyncMock(side_effect=Boom("nope"))
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(Boom):
                await with_exponential_backoff(fn, BackoffSpec(max_retries=0))
        assert fn.call_count == 1
        sleep.assert_not_called()

    async def test_zero_jitter_is_pure_exponential(self):
        fn = AsyncMock(side_effect=Boom("x"))
        spec = BackoffSpec(max_retries=3, initial_retry_delay_ms=100, max_jitter_ms=0)
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(Boom):
                await with_exponential_backoff(fn, spec)
        waits = [call.args[0] for call in sleep.call_args_list]
        assert waits == [0.1, 0.2, 0.4]

    async def test_jitter_stays_bounded(self):
        fn = AsyncMock(side_effect=Boom("x"))
        spec = BackoffSpec(max_retries=2, initial_retry_delay_ms=1000, max_jitter_ms=500)
        with patch("basilisk_stream.backoff.asyncio.sleep", new_callable=AsyncMock) as sleep, \
             patch("basilisk_stream.backoff.random.randrange", return_value=499) as rand:
            with pytest.raises(Boom):
                await with_exponential_backoff(fn, spec)
        rand.assert_called_with(500)
        waits = [call.args[0] for call in sleep.call_args_list]
        assert waits == [1.499, 2.998]
