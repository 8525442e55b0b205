"""Speech-to-text for the microphone fallback path."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from ..errors import Cancelled, ProviderNotConfigured
from ..instrumentation import TelemetryEvent, emit_event, get_logger
from ..providers import HuggingFaceBackend

logger = get_logger()


@dataclass(slots=True)
class TranscriptionAdapter:
    """Never raises for provider trouble: an empty string means "the kid said nothing".

    Callers cannot tell silence from an outage, so the reason is logged and
    recorded as a ``transcription_failed`` event instead.
    """

    backend: HuggingFaceBackend
    model: str = "openai/whisper-large-v3"
    category: str = "Transcription"

    async def transcribe(self, audio: bytes) -> str:
        try:
            response = await self.backend.post(self.model, content=audio, content_type="audio/wav")
            response.raise_for_status()
            result = response.json()
        except (Cancelled, asyncio.CancelledError):
            raise
        except ProviderNotConfigured as exc:
            return self._failed("not_configured", exc)
        except (httpx.TransportError, httpx.HTTPStatusError) as exc:
            return self._failed("service_unreachable", exc)
        except Exception as exc:  # any other failure reads as silence
            return self._failed("upstream_error", exc)

        text = result.get("text", "") if isinstance(result, dict) else ""
        text = (text or "").strip()
        if not text:
            logger.info("Transcription returned no speech")
            emit_event(TelemetryEvent(name="transcription_failed", attributes={"reason": "no_speech"}))
        return text

    def _failed(self, reason: str, exc: BaseException) -> str:
        logger.error("Whisper transcription failed (%s): %s", reason, exc)
        emit_event(
            TelemetryEvent(
                name="transcription_failed",
                attributes={"reason": reason, "error": exc.__class__.__name__},
            )
        )
        return ""
