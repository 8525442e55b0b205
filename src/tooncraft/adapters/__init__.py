"""Capability adapters: one media capability against one provider."""

from .chat import ChatAdapter, build_chat_prompt
from .image import ImageAdapter
from .narration import NarrationAdapter
from .script import ScriptAdapter, build_script, unwrap_script_payload
from .transcription import TranscriptionAdapter
from .video import VideoAdapter, huggingface_payload

__all__ = [
    "ChatAdapter",
    "ImageAdapter",
    "NarrationAdapter",
    "ScriptAdapter",
    "TranscriptionAdapter",
    "VideoAdapter",
    "build_chat_prompt",
    "build_script",
    "huggingface_payload",
    "unwrap_script_payload",
]
