"""Shared pieces of the capability adapters."""

from __future__ import annotations

from typing import Any

from ..errors import ContentSafetyRejected, MalformedUpstreamResponse

_SAFETY_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "IMAGE_SAFETY", "BLOCKLIST", "SPII"}


def _enum_name(value: Any) -> str:
    if value is None:
        return ""
    return str(getattr(value, "name", None) or getattr(value, "value", None) or value).upper()


def first_candidate(response: Any) -> Any:
    """Return the first candidate, raising on prompt-level safety blocks."""
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = _enum_name(getattr(feedback, "block_reason", None))
    if block_reason and block_reason != "BLOCKED_REASON_UNSPECIFIED":
        raise ContentSafetyRejected(f"Prompt blocked: {block_reason}")

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise MalformedUpstreamResponse("Response contained no candidates")
    candidate = candidates[0]
    if _enum_name(getattr(candidate, "finish_reason", None)) in _SAFETY_REASONS:
        raise ContentSafetyRejected("Safety block")
    return candidate


def inline_payload(candidate: Any) -> bytes | str | None:
    """First inline-data payload among the candidate's parts."""
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if data:
            return data
    return None
