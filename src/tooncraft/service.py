"""Generative media service: every capability behind retry and provider fallback."""

from __future__ import annotations

from typing import Sequence

from .adapters import (
    ChatAdapter,
    ImageAdapter,
    NarrationAdapter,
    ScriptAdapter,
    TranscriptionAdapter,
    VideoAdapter,
)
from .cancellation import CancellationToken
from .config import Settings, settings
from .credentials import CredentialPool
from .errors import AllProvidersFailedError, Cancelled, InvalidCredentialOrRequest, OperationError
from .fallback import FallbackExecutor
from .instrumentation import get_logger
from .models import ChatMessage, Script
from .providers import ProviderDescriptor, build_backends, parse_chain
from .retry import RetryPolicy

logger = get_logger()


class GenerativeMediaService:
    """Outbound operations used by the production pipeline and the chat UI.

    Binary results (narration, images, video) are returned as base64 strings.
    """

    def __init__(
        self,
        *,
        credentials: CredentialPool,
        script_adapter: ScriptAdapter,
        narration_adapter: NarrationAdapter,
        image_adapter: ImageAdapter,
        video_adapter: VideoAdapter,
        transcription_adapter: TranscriptionAdapter,
        chat_adapter: ChatAdapter,
        script_chain: Sequence[ProviderDescriptor],
        image_chain: Sequence[ProviderDescriptor],
        video_chain: Sequence[ProviderDescriptor],
        tts_chain: Sequence[ProviderDescriptor],
        retry_initial_delay: float = 1.0,
        narration_retry_initial_delay: float = 2.0,
        image_fallback_retry_initial_delay: float = 2.0,
    ) -> None:
        self.credentials = credentials
        self.script_adapter = script_adapter
        self.narration_adapter = narration_adapter
        self.image_adapter = image_adapter
        self.video_adapter = video_adapter
        self.transcription_adapter = transcription_adapter
        self.chat_adapter = chat_adapter
        self.script_chain = tuple(script_chain)
        self.image_chain = tuple(image_chain)
        self.video_chain = tuple(video_chain)
        self.tts_chain = tuple(tts_chain)

        self.retry_policy = RetryPolicy(credentials, max_retries=2, initial_delay=retry_initial_delay)
        self.image_fallback_retry_initial_delay = image_fallback_retry_initial_delay
        self.executor = FallbackExecutor(self.retry_policy, per_provider_retries=1, initial_delay=retry_initial_delay)
        # single-model capabilities lean on a longer local retry instead of a chain
        self.narration_executor = FallbackExecutor(
            self.retry_policy, per_provider_retries=2, initial_delay=narration_retry_initial_delay
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "GenerativeMediaService":
        config = config or settings
        credentials = CredentialPool.from_settings(config)
        if not credentials.current():
            logger.warning("API_KEY is missing from environment and key pool is empty.")
        gemini, huggingface = build_backends(credentials, config)
        timings = config.timings
        return cls(
            credentials=credentials,
            script_adapter=ScriptAdapter(gemini),
            narration_adapter=NarrationAdapter(gemini, voice=config.narration_voice),
            image_adapter=ImageAdapter(gemini, fallback_model=config.imagen_model),
            video_adapter=VideoAdapter(
                gemini,
                huggingface,
                poll_interval=timings.video_poll_interval,
                model_loading_default_wait=timings.model_loading_default_wait,
                max_model_loading_waits=timings.max_model_loading_waits,
            ),
            transcription_adapter=TranscriptionAdapter(huggingface, model=config.stt_model),
            chat_adapter=ChatAdapter(gemini),
            script_chain=parse_chain(config.script_models),
            image_chain=parse_chain(config.image_models),
            video_chain=parse_chain(config.video_models),
            tts_chain=parse_chain(config.tts_models),
            retry_initial_delay=timings.retry_initial_delay,
            narration_retry_initial_delay=timings.narration_retry_initial_delay,
            image_fallback_retry_initial_delay=timings.image_fallback_retry_initial_delay,
        )

    async def generate_script(
        self,
        brief: str,
        age: int,
        movie_mode: bool = False,
        scene_count: int = 6,
        cancel_token: CancellationToken | None = None,
    ) -> Script:
        return await self.executor.execute_with_fallback(
            self.script_chain,
            lambda provider: self.script_adapter.invoke(provider, brief, age, movie_mode, scene_count),
            self.script_adapter.category,
            cancel_token,
        )

    async def generate_narration(
        self, text: str, age: int, cancel_token: CancellationToken | None = None
    ) -> str:
        """Base64 WAV narration for one line of the script."""
        return await self.narration_executor.execute_with_fallback(
            self.tts_chain,
            lambda provider: self.narration_adapter.invoke(provider, text, age),
            self.narration_adapter.category,
            cancel_token,
        )

    async def generate_scene_image(
        self,
        prompt: str,
        age: int,
        reference_image: str | None = None,
        safety_retry: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """Base64 scene image; falls back to the text-to-image model when the chain is exhausted."""
        try:
            return await self.executor.execute_with_fallback(
                self.image_chain,
                lambda provider: self.image_adapter.invoke(
                    provider, prompt, age, reference_image, safety_retry
                ),
                self.image_adapter.category,
                cancel_token,
            )
        except AllProvidersFailedError as exc:
            logger.warning("Multimodal image chain failed, falling back to %s: %s", self.image_adapter.fallback_model, exc)

        try:
            return await self.retry_policy.execute(
                lambda: self.image_adapter.invoke_fallback(prompt, age, safety_retry),
                max_retries=2,
                initial_delay=self.image_fallback_retry_initial_delay,
                cancel_token=cancel_token,
                label=f"[{self.image_adapter.category}] {self.image_adapter.fallback_model}",
            )
        except (Cancelled, InvalidCredentialOrRequest):
            raise
        except OperationError as exc:
            raise AllProvidersFailedError(self.image_adapter.category, exc) from exc

    async def generate_video(
        self, prompt: str, seed_image: str, cancel_token: CancellationToken | None = None
    ) -> str:
        """Base64 video seeded from a still frame."""
        return await self.executor.execute_with_fallback(
            self.video_chain,
            lambda provider: self.video_adapter.invoke(provider, prompt, seed_image, cancel_token),
            self.video_adapter.category,
            cancel_token,
        )

    async def transcribe_audio(self, audio: bytes) -> str:
        return await self.transcription_adapter.transcribe(audio)

    async def chat_turn(
        self,
        history: Sequence[ChatMessage],
        utterance: str,
        age: int,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return await self.executor.execute_with_fallback(
            self.script_chain,
            lambda provider: self.chat_adapter.invoke(provider, history, utterance, age),
            self.chat_adapter.category,
            cancel_token,
        )
