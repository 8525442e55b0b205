"""API credential pool with rotation on quota exhaustion."""

from __future__ import annotations

from typing import Iterable

from .instrumentation import TelemetryEvent, emit_event, get_logger

logger = get_logger()


class CredentialPool:
    """Ordered credentials plus an optional primary override.

    The cursor is the only mutable field, so rotation is safe to call from any
    call site that shares the pool.
    """

    def __init__(self, credentials: Iterable[str] = (), *, override: str | None = None) -> None:
        self._credentials: list[str] = [item for item in credentials if item]
        self._override = override or None
        self._cursor = 0

    @classmethod
    def from_settings(cls, config) -> "CredentialPool":
        return cls(config.credential_pool_keys, override=config.primary_api_key)

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> str:
        """Return the override if set, else the credential under the cursor, else ``""``."""
        if self._override:
            return self._override
        if not self._credentials:
            return ""
        return self._credentials[self._cursor % len(self._credentials)]

    def rotate(self) -> None:
        if not self._credentials:
            return
        self._cursor = (self._cursor + 1) % len(self._credentials)
        logger.info("Rotated to API key %d/%d", self._cursor + 1, len(self._credentials))
        emit_event(
            TelemetryEvent(
                name="credential_rotated",
                attributes={"cursor": self._cursor, "pool_size": len(self._credentials)},
            )
        )

    def add(self, credential: str) -> None:
        """Append a credential; the pool never shrinks."""
        if credential and credential not in self._credentials:
            self._credentials.append(credential)
