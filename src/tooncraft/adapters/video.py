"""Image-to-video generation across the Veo and hosted-inference families.

Polling and cold-start waits live entirely inside :meth:`VideoAdapter.invoke`
so the fallback chain only ever sees pass or fail for a provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from google.genai import types

from ..cancellation import CancellationToken, wait
from ..errors import (
    ContentSafetyRejected,
    MalformedUpstreamResponse,
    OperationError,
    PermanentError,
    TransientServerError,
    classify_error,
)
from ..instrumentation import get_logger
from ..payloads import decode_base64, encode_base64, sniff_image_mime
from ..providers import GeminiBackend, HuggingFaceBackend, ProviderDescriptor, ProviderFamily

logger = get_logger()

# Hybrid text+image models take a prompt plus an explicit image parameter
_HYBRID_MODEL_MARKERS = ("LTX", "Wan")


def is_hybrid_model(model_id: str) -> bool:
    return any(marker in model_id for marker in _HYBRID_MODEL_MARKERS)


def huggingface_payload(model_id: str, prompt: str, image_b64: str, *, simple: bool = False) -> dict[str, Any]:
    if simple or not is_hybrid_model(model_id):
        return {"inputs": image_b64}
    return {
        "inputs": prompt,
        "parameters": {"image": image_b64, "num_inference_steps": 25},
    }


def _huggingface_error(model_id: str, response: httpx.Response) -> OperationError:
    message = f"HF API Error {response.status_code} ({model_id}): {response.text[:200]}"
    # a 4xx here is about this model's payload contract, not the shared credential
    if response.status_code == 429 or response.status_code >= 500:
        return TransientServerError(message)
    return PermanentError(message)


def _estimated_wait(response: httpx.Response, default: float) -> float:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("estimated_time"), (int, float)):
        return float(body["estimated_time"])
    return default


@dataclass(slots=True)
class VideoAdapter:
    gemini: GeminiBackend
    huggingface: HuggingFaceBackend
    poll_interval: float = 10.0
    model_loading_default_wait: float = 20.0
    max_model_loading_waits: int = 3
    category: str = "Video"

    async def invoke(
        self,
        provider: ProviderDescriptor,
        prompt: str,
        seed_image: str,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        if provider.family is ProviderFamily.HUGGINGFACE:
            return await self._invoke_huggingface(provider.model, prompt, seed_image, cancel_token)
        return await self._invoke_veo(provider.model, prompt, seed_image, cancel_token)

    async def _invoke_veo(
        self,
        model: str,
        prompt: str,
        seed_image: str,
        cancel_token: CancellationToken | None,
    ) -> str:
        operation = await self.gemini.generate_videos(
            model=model,
            prompt=prompt,
            image=types.Image(image_bytes=decode_base64(seed_image), mime_type=sniff_image_mime(seed_image)),
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                resolution="720p",
                aspect_ratio="16:9",
            ),
        )

        polls = 0
        while not getattr(operation, "done", False):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            await wait(self.poll_interval, cancel_token)
            operation = await self.gemini.get_video_operation(operation)
            polls += 1
            logger.debug("[%s] %s still rendering after %d polls", self.category, model, polls)

        error = getattr(operation, "error", None)
        if error:
            raise classify_error(RuntimeError(f"Video operation failed: {error}"))

        response = getattr(operation, "response", None) or getattr(operation, "result", None)
        videos = getattr(response, "generated_videos", None) or []
        if not videos:
            reasons = getattr(response, "rai_media_filtered_reasons", None)
            if reasons:
                raise ContentSafetyRejected("; ".join(reasons))
            raise MalformedUpstreamResponse("No video URI returned")

        video = getattr(videos[0], "video", None)
        payload = getattr(video, "video_bytes", None)
        if not payload:
            uri = getattr(video, "uri", None)
            if not uri:
                raise MalformedUpstreamResponse("No video URI returned")
            payload = await self.gemini.download(uri)
        if not payload:
            raise MalformedUpstreamResponse("Empty video payload")
        return encode_base64(payload)

    async def _invoke_huggingface(
        self,
        model_id: str,
        prompt: str,
        seed_image: str,
        cancel_token: CancellationToken | None,
    ) -> str:
        simple = False
        loading_waits = 0
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            response = await self.huggingface.post(
                model_id, json=huggingface_payload(model_id, prompt, seed_image, simple=simple)
            )

            if response.status_code == 503:
                if loading_waits >= self.max_model_loading_waits:
                    raise TransientServerError(f"{model_id} is still loading after {loading_waits} waits")
                delay = _estimated_wait(response, self.model_loading_default_wait)
                loading_waits += 1
                logger.info("HF model %s loading... waiting %.0fs (attempt %d)", model_id, delay, loading_waits)
                await wait(delay, cancel_token)
                continue

            if response.is_success:
                if not response.content:
                    raise MalformedUpstreamResponse(f"{model_id} returned an empty video")
                return encode_base64(response.content)

            if not simple and is_hybrid_model(model_id):
                logger.warning("HF %s rejected the prompt+image payload; retrying with image only", model_id)
                simple = True
                continue

            raise _huggingface_error(model_id, response)
