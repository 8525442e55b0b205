"""Base64 payload helpers and model-output JSON extraction.

Binary assets cross the public boundary as base64 strings that the UI embeds
directly in data URIs.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any

from .errors import MalformedUpstreamResponse

_IMAGE_SIGNATURES = (
    ("/9j/", "image/jpeg"),
    ("iVBORw0KGgo", "image/png"),
    ("UklGR", "image/webp"),
)


def encode_base64(payload: bytes) -> str:
    return base64.b64encode(payload).decode("ascii")


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(re.sub(r"\s", "", payload), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedUpstreamResponse(f"Invalid base64 payload: {exc}") from exc


def as_bytes(payload: bytes | str) -> bytes:
    """SDK inline data arrives as raw bytes, REST payloads as base64 text."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return decode_base64(payload)


def sniff_image_mime(payload_b64: str) -> str:
    """Guess an image MIME type from the base64 prefix; JPEG when unknown."""
    for prefix, mime in _IMAGE_SIGNATURES:
        if payload_b64.startswith(prefix):
            return mime
    return "image/jpeg"


def to_data_uri(payload_b64: str, mime_type: str | None = None) -> str:
    return f"data:{mime_type or sniff_image_mime(payload_b64)};base64,{payload_b64}"


def extract_json_object(text: str) -> str:
    """Strip markdown fences and keep the outermost ``{...}`` block."""
    if not text:
        return ""
    clean = text.strip()
    clean = re.sub(r"^```(?:json)?\s*", "", clean, flags=re.IGNORECASE)
    clean = re.sub(r"\s*```$", "", clean)
    start = clean.find("{")
    end = clean.rfind("}")
    if start != -1 and end > start:
        clean = clean[start : end + 1]
    return clean.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    raw = extract_json_object(text)
    if not raw:
        raise MalformedUpstreamResponse("Empty response")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedUpstreamResponse(f"Response is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise MalformedUpstreamResponse("Parsed JSON but not an object")
    return parsed
