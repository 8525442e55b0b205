"""Failure taxonomy for provider calls and its classifier.

Every exception raised by a backend SDK or HTTP client is funnelled through
:func:`classify_error` so retry and fallback logic only ever reason about the
classes defined here.
"""

from __future__ import annotations

import re

import httpx
from google.genai import errors as genai_errors


class OperationError(Exception):
    """Base class for classified provider failures."""

    retryable: bool = False
    fatal: bool = False


class Cancelled(OperationError):
    """The caller cancelled the run; never retried, never reported as failure."""

    def __init__(self, message: str = "Aborted") -> None:
        super().__init__(message)


class QuotaExceeded(OperationError):
    retryable = True


class TransientServerError(OperationError):
    retryable = True


class PermanentError(OperationError):
    """Anything that will not succeed by retrying the same provider."""


class ContentSafetyRejected(PermanentError):
    """Provider-specific safety gate; worth trying elsewhere."""


class MalformedUpstreamResponse(PermanentError):
    pass


class MalformedScriptError(MalformedUpstreamResponse):
    pass


class InvalidCredentialOrRequest(PermanentError):
    """Recurs identically on every provider, so it aborts the whole chain."""

    fatal = True


class ProviderNotConfigured(PermanentError):
    pass


class AllProvidersFailedError(OperationError):
    """Every provider in a capability chain was exhausted."""

    def __init__(self, category: str, last_error: BaseException | None = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"{category} generation failed on all providers{detail}")
        self.category = category
        self.last_error = last_error


_QUOTA_MARKERS = ("quota", "resource_exhausted", "rate limit", "too many requests")
_TRANSIENT_MARKERS = ("unavailable", "overloaded", "internal error", "deadline_exceeded")
_SAFETY_MARKERS = ("safety", "blocked", "usage guidelines", "content polic", "responsible ai", "prohibited")
_INVALID_MARKERS = ("api key", "api_key_invalid", "invalid_argument", "permission_denied", "unauthenticated")
_TRANSIENT_STATUS = {500, 502, 503, 504}
_INVALID_STATUS = {400, 401, 403}


def _status_code(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    if isinstance(exc, genai_errors.APIError):
        return exc.code
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def _message_codes(message: str) -> set[int]:
    return {int(match) for match in re.findall(r"\b([45]\d\d)\b", message)}


def _wrap(cls: type[OperationError], exc: BaseException) -> OperationError:
    error = cls(str(exc) or exc.__class__.__name__)
    error.__cause__ = exc
    return error


def classify_error(exc: BaseException) -> OperationError:
    """Map an arbitrary exception onto the failure taxonomy."""
    if isinstance(exc, OperationError):
        return exc
    if isinstance(exc, httpx.TransportError):
        return _wrap(TransientServerError, exc)

    message = str(exc)
    lowered = message.lower()
    status = _status_code(exc)
    codes = _message_codes(message)
    if status is not None:
        codes.add(status)

    if 429 in codes or any(marker in lowered for marker in _QUOTA_MARKERS):
        return _wrap(QuotaExceeded, exc)
    if codes & _TRANSIENT_STATUS or any(marker in lowered for marker in _TRANSIENT_MARKERS):
        return _wrap(TransientServerError, exc)
    if any(marker in lowered for marker in _SAFETY_MARKERS):
        return _wrap(ContentSafetyRejected, exc)
    if codes & _INVALID_STATUS or any(marker in lowered for marker in _INVALID_MARKERS):
        return _wrap(InvalidCredentialOrRequest, exc)
    return _wrap(PermanentError, exc)
