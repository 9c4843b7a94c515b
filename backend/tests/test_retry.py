"""Tests for retry_async and RetryPolicy."""
from unittest.mock import AsyncMock, patch

import pytest

from eats_notify.domain.common.errors import StoreError, TransientStoreError
from eats_notify.services.retry import RetryPolicy, retry_async


def test_delay_doubles_and_caps():
    policy = RetryPolicy(attempts=5, base_delay=0.2, max_delay=0.5)
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [0.2, 0.4, 0.5, 0.5]


def test_from_settings_defaults():
    policy = RetryPolicy.from_settings()
    assert policy == RetryPolicy(attempts=3, base_delay=0.2, max_delay=2.0)


async def test_transient_errors_are_retried_with_backoff():
    operation = AsyncMock(side_effect=[TransientStoreError("op", "timeout"), TransientStoreError("op", "timeout"), 7])
    with patch("eats_notify.services.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await retry_async(operation, RetryPolicy(attempts=3, base_delay=0.1, max_delay=1.0), "op")

    assert result == 7
    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]


async def test_last_transient_error_propagates():
    operation = AsyncMock(side_effect=TransientStoreError("op", "timeout"))
    with patch("eats_notify.services.retry.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(TransientStoreError):
            await retry_async(operation, RetryPolicy(attempts=2), "op")
    assert operation.await_count == 2


async def test_permanent_errors_are_not_retried():
    operation = AsyncMock(side_effect=StoreError("op", "constraint"))
    with pytest.raises(StoreError):
        await retry_async(operation, RetryPolicy(attempts=3), "op", user_id="user-a")
    assert operation.await_count == 1
