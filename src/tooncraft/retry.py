"""Bounded exponential-backoff retry for a single provider call."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from .cancellation import CancellationToken, wait
from .credentials import CredentialPool
from .errors import Cancelled, OperationError, QuotaExceeded, classify_error
from .instrumentation import get_logger

logger = get_logger()

T = TypeVar("T")


@dataclass(slots=True)
class RetryPolicy:
    """Retry transient failures, rotating credentials on quota errors.

    ``max_retries`` counts retries after the first call, so an operation is
    invoked at most ``max_retries + 1`` times. The backoff delay starts at
    ``initial_delay`` and doubles on every retry.
    """

    credentials: CredentialPool
    max_retries: int = 2
    initial_delay: float = 1.0

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        cancel_token: CancellationToken | None = None,
        label: str = "operation",
    ) -> T:
        retries_left = self.max_retries if max_retries is None else max_retries
        delay = self.initial_delay if initial_delay is None else initial_delay

        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                if cancel_token is not None:
                    return await cancel_token.guard(operation())
                return await operation()
            except (Cancelled, asyncio.CancelledError):
                raise
            except Exception as exc:  # classified below
                error: OperationError = classify_error(exc)

            if isinstance(error, QuotaExceeded):
                self.credentials.rotate()

            if not error.retryable or retries_left <= 0:
                raise error

            logger.warning(
                "%s failed (%s: %s); retrying in %.1fs (%d left)",
                label,
                error.__class__.__name__,
                error,
                delay,
                retries_left,
            )
            retries_left -= 1
            await wait(delay, cancel_token)
            delay *= 2
