"""Ordered provider fallback on top of :class:`RetryPolicy`."""

from __future__ import annotations

from typing import Awaitable, Callable, Sequence, TypeVar

from .cancellation import CancellationToken
from .errors import AllProvidersFailedError, Cancelled, InvalidCredentialOrRequest, OperationError
from .instrumentation import TelemetryEvent, emit_event, get_logger
from .retry import RetryPolicy

logger = get_logger()

P = TypeVar("P")
T = TypeVar("T")


class FallbackExecutor:
    """Try each provider of a chain in order until one succeeds.

    Every provider gets a short local retry (``per_provider_retries``) before
    the executor moves on. Invalid credentials or malformed requests abort the
    chain immediately because they would fail the same way everywhere.
    """

    def __init__(
        self,
        retry_policy: RetryPolicy,
        *,
        per_provider_retries: int = 1,
        initial_delay: float | None = None,
    ) -> None:
        self.retry_policy = retry_policy
        self.per_provider_retries = per_provider_retries
        self.initial_delay = initial_delay

    async def execute_with_fallback(
        self,
        providers: Sequence[P],
        operation: Callable[[P], Awaitable[T]],
        category: str,
        cancel_token: CancellationToken | None = None,
    ) -> T:
        if not providers:
            raise ValueError(f"{category}: provider chain is empty")

        last_error: OperationError | None = None
        for provider in providers:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                return await self.retry_policy.execute(
                    lambda provider=provider: operation(provider),
                    max_retries=self.per_provider_retries,
                    initial_delay=self.initial_delay,
                    cancel_token=cancel_token,
                    label=f"[{category}] {provider}",
                )
            except Cancelled:
                raise
            except InvalidCredentialOrRequest as error:
                logger.error("[%s] provider %s rejected the request: %s", category, provider, error)
                raise
            except OperationError as error:
                logger.warning("[%s] provider %s failed: %s", category, provider, error)
                emit_event(
                    TelemetryEvent(
                        name="provider_failed",
                        attributes={
                            "category": category,
                            "provider": str(provider),
                            "error": error.__class__.__name__,
                        },
                    )
                )
                last_error = error

        emit_event(TelemetryEvent(name="provider_chain_exhausted", attributes={"category": category}))
        raise AllProvidersFailedError(category, last_error) from last_error
