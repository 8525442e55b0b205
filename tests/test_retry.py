import asyncio

import pytest

from tooncraft.cancellation import CancellationToken
from tooncraft.errors import (
    Cancelled,
    PermanentError,
    QuotaExceeded,
    TransientServerError,
)
from tooncraft.retry import RetryPolicy


def _flaky(*errors, result="ok"):
    calls = []

    async def operation():
        calls.append(len(calls))
        if len(calls) <= len(errors):
            raise errors[len(calls) - 1]
        return result

    operation.calls = calls
    return operation


@pytest.mark.asyncio
async def test_success_returns_immediately(pool):
    policy = RetryPolicy(pool, initial_delay=0)
    operation = _flaky()
    assert await policy.execute(operation) == "ok"
    assert len(operation.calls) == 1


@pytest.mark.asyncio
async def test_quota_rotates_credential_then_retries(pool):
    policy = RetryPolicy(pool, initial_delay=0)
    before = pool.current()
    operation = _flaky(RuntimeError("429 RESOURCE_EXHAUSTED"))
    assert await policy.execute(operation) == "ok"
    assert pool.current() != before
    assert len(operation.calls) == 2


@pytest.mark.asyncio
async def test_transient_retries_without_rotation(pool):
    policy = RetryPolicy(pool, initial_delay=0)
    operation = _flaky(RuntimeError("503 overloaded"), RuntimeError("500 internal error"))
    assert await policy.execute(operation) == "ok"
    assert pool.cursor == 0
    assert len(operation.calls) == 3


@pytest.mark.asyncio
async def test_permanent_error_is_not_retried(pool):
    policy = RetryPolicy(pool, initial_delay=0)
    operation = _flaky(RuntimeError("unexpected payload"))
    with pytest.raises(PermanentError):
        await policy.execute(operation)
    assert len(operation.calls) == 1


@pytest.mark.asyncio
async def test_budget_exhaustion_reraises_last_classified_error(pool):
    policy = RetryPolicy(pool, initial_delay=0)
    operation = _flaky(*(TransientServerError(f"503 #{i}") for i in range(5)))
    with pytest.raises(TransientServerError, match="#1"):
        await policy.execute(operation, max_retries=1)
    assert len(operation.calls) == 2


@pytest.mark.asyncio
async def test_backoff_doubles(pool, monkeypatch):
    delays = []

    async def fake_wait(seconds, token=None):
        delays.append(seconds)

    monkeypatch.setattr("tooncraft.retry.wait", fake_wait)
    policy = RetryPolicy(pool, max_retries=3, initial_delay=1.0)
    operation = _flaky(*(QuotaExceeded("quota") for _ in range(3)))
    assert await policy.execute(operation) == "ok"
    assert delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_cancelled_before_start_never_calls(pool):
    token = CancellationToken()
    token.cancel()
    operation = _flaky()
    with pytest.raises(Cancelled):
        await RetryPolicy(pool).execute(operation, cancel_token=token)
    assert operation.calls == []


@pytest.mark.asyncio
async def test_cancel_during_backoff_aborts_wait(pool):
    token = CancellationToken()
    policy = RetryPolicy(pool, initial_delay=30)
    operation = _flaky(TransientServerError("503"))
    asyncio.get_running_loop().call_later(0.01, token.cancel)
    with pytest.raises(Cancelled):
        await asyncio.wait_for(policy.execute(operation, cancel_token=token), timeout=2)
    assert len(operation.calls) == 1


@pytest.mark.asyncio
async def test_rotation_invariant_with_single_credential():
    from tooncraft.credentials import CredentialPool

    single = CredentialPool(["only"])
    policy = RetryPolicy(single, initial_delay=0)
    await policy.execute(_flaky(QuotaExceeded("quota")))
    assert single.current() == "only"
