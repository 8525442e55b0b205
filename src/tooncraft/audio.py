"""WAV container helpers for synthesized narration."""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass

NARRATION_SAMPLE_RATE = 24000
NARRATION_CHANNELS = 1
NARRATION_SAMPLE_WIDTH = 2  # 16-bit


@dataclass(frozen=True, slots=True)
class WavHeader:
    channels: int
    sample_rate: int
    sample_width: int
    frame_count: int


def pcm_to_wav(
    pcm: bytes,
    *,
    sample_rate: int = NARRATION_SAMPLE_RATE,
    channels: int = NARRATION_CHANNELS,
    sample_width: int = NARRATION_SAMPLE_WIDTH,
) -> bytes:
    """Wrap a headerless little-endian PCM stream in a RIFF/WAVE container."""
    frame_size = channels * sample_width
    if len(pcm) % frame_size:
        # drop a trailing partial frame rather than emit a corrupt file
        pcm = pcm[: len(pcm) - len(pcm) % frame_size]

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def read_wav_header(payload: bytes) -> WavHeader:
    with wave.open(io.BytesIO(payload), "rb") as wav_file:
        return WavHeader(
            channels=wav_file.getnchannels(),
            sample_rate=wav_file.getframerate(),
            sample_width=wav_file.getsampwidth(),
            frame_count=wav_file.getnframes(),
        )
