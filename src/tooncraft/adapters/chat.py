"""Text-only director chat, used when the duplex speech session is unavailable."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from google.genai import types

from ..models import ChatMessage
from ..prompts import CHAT_FALLBACK_REPLY, brainstorm_system_instruction
from ..providers import GeminiBackend, ProviderDescriptor


def build_chat_prompt(history: Sequence[ChatMessage], utterance: str, age: int) -> str:
    transcript = "\n".join(
        f"{'Kid' if message.role == 'user' else 'Director'}: {message.text}" for message in history
    )
    return (
        f"{brainstorm_system_instruction(age)}\n\n"
        f"Existing Conversation:\n{transcript}\n\n"
        f'Kid says: "{utterance}"\n\n'
        "Director response:"
    )


@dataclass(slots=True)
class ChatAdapter:
    backend: GeminiBackend
    category: str = "Director Chat"

    async def invoke(
        self,
        provider: ProviderDescriptor,
        history: Sequence[ChatMessage],
        utterance: str,
        age: int,
    ) -> str:
        response = await self.backend.generate_content(
            model=provider.model,
            contents=[types.Content(role="user", parts=[types.Part(text=build_chat_prompt(history, utterance, age))])],
        )
        return (getattr(response, "text", None) or "").strip() or CHAT_FALLBACK_REPLY
