"""Speech synthesis wrapped into playable WAV."""

from __future__ import annotations

from dataclasses import dataclass

from google.genai import types

from ..audio import NARRATION_SAMPLE_RATE, pcm_to_wav
from ..errors import MalformedUpstreamResponse
from ..payloads import as_bytes, encode_base64
from ..prompts import narration_prompt
from ..providers import GeminiBackend, ProviderDescriptor
from .base import first_candidate, inline_payload


@dataclass(slots=True)
class NarrationAdapter:
    """Returns base64 WAV; the provider emits headerless 16-bit mono PCM at 24 kHz."""

    backend: GeminiBackend
    voice: str = "Kore"
    sample_rate: int = NARRATION_SAMPLE_RATE
    category: str = "Narration"

    async def invoke(self, provider: ProviderDescriptor, text: str, age: int) -> str:
        response = await self.backend.generate_content(
            model=provider.model,
            contents=[types.Content(parts=[types.Part(text=narration_prompt(text, age))])],
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice)
                    )
                ),
            ),
        )
        pcm = inline_payload(first_candidate(response))
        if not pcm:
            raise MalformedUpstreamResponse("No audio returned")
        return encode_base64(pcm_to_wav(as_bytes(pcm), sample_rate=self.sample_rate))
