"""Cooperative cancellation for production runs."""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, TypeVar

from .errors import Cancelled

T = TypeVar("T")


class CancellationToken:
    """One token per production run, threaded through every wait and provider call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()

    async def sleep(self, seconds: float) -> None:
        """Suspend for ``seconds``; raises :class:`Cancelled` the moment the token fires."""
        self.raise_if_cancelled()
        if seconds <= 0:
            await asyncio.sleep(0)
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise Cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Race ``awaitable`` against cancellation, abandoning its result if cancelled first."""
        if self._event.is_set():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise Cancelled()

        operation = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({operation, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            operation.cancel()
            raise
        finally:
            watcher.cancel()

        if operation.done():
            return operation.result()

        operation.cancel()
        try:
            await operation
        except (asyncio.CancelledError, Exception):
            pass
        raise Cancelled()


async def wait(seconds: float, token: CancellationToken | None = None) -> None:
    """Cancellable delay; a plain sleep when no token is supplied."""
    if token is None:
        await asyncio.sleep(max(seconds, 0))
        return
    await token.sleep(seconds)
