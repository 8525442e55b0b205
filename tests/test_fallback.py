import pytest

from tooncraft.cancellation import CancellationToken
from tooncraft.errors import (
    AllProvidersFailedError,
    Cancelled,
    ContentSafetyRejected,
    InvalidCredentialOrRequest,
    MalformedUpstreamResponse,
)
from tooncraft.fallback import FallbackExecutor
from tooncraft.instrumentation import telemetry_store
from tooncraft.retry import RetryPolicy


@pytest.fixture
def executor(pool):
    return FallbackExecutor(RetryPolicy(pool, initial_delay=0), initial_delay=0)


@pytest.mark.asyncio
async def test_first_success_wins(executor):
    invoked = []

    async def operation(provider):
        invoked.append(provider)
        return f"{provider}-result"

    assert await executor.execute_with_fallback(["A", "B"], operation, "Test") == "A-result"
    assert invoked == ["A"]


@pytest.mark.asyncio
async def test_falls_through_in_order(executor):
    invoked = []
    failures = {"A": ContentSafetyRejected("Safety block"), "B": MalformedUpstreamResponse("no data")}

    async def operation(provider):
        invoked.append(provider)
        if provider in failures:
            raise failures[provider]
        return "C-result"

    assert await executor.execute_with_fallback(["A", "B", "C"], operation, "Test") == "C-result"
    assert invoked == ["A", "B", "C"]
    assert telemetry_store.counts()["provider_failed"] == 2


@pytest.mark.asyncio
async def test_each_provider_gets_one_local_retry(executor):
    invoked = []

    async def operation(provider):
        invoked.append(provider)
        if provider == "A":
            raise RuntimeError("503 unavailable")
        return "B-result"

    assert await executor.execute_with_fallback(["A", "B"], operation, "Test") == "B-result"
    assert invoked == ["A", "A", "B"]


@pytest.mark.asyncio
async def test_invalid_credential_short_circuits(executor):
    invoked = []

    async def operation(provider):
        invoked.append(provider)
        raise RuntimeError("400 API key not valid")

    with pytest.raises(InvalidCredentialOrRequest):
        await executor.execute_with_fallback(["A", "B"], operation, "Test")
    assert invoked == ["A"]


@pytest.mark.asyncio
async def test_exhaustion_wraps_last_error(executor):
    async def operation(provider):
        raise MalformedUpstreamResponse(f"bad {provider}")

    with pytest.raises(AllProvidersFailedError) as excinfo:
        await executor.execute_with_fallback(["A", "B"], operation, "Script")
    assert excinfo.value.category == "Script"
    assert str(excinfo.value.last_error) == "bad B"
    assert telemetry_store.list_events(name="provider_chain_exhausted")


@pytest.mark.asyncio
async def test_cancel_stops_chain(executor):
    token = CancellationToken()
    invoked = []

    async def operation(provider):
        invoked.append(provider)
        token.cancel()
        raise Cancelled()

    with pytest.raises(Cancelled):
        await executor.execute_with_fallback(["A", "B"], operation, "Test", token)
    assert invoked == ["A"]


@pytest.mark.asyncio
async def test_empty_chain_is_rejected(executor):
    async def operation(provider):
        return provider

    with pytest.raises(ValueError):
        await executor.execute_with_fallback([], operation, "Test")
