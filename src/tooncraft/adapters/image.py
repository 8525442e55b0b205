"""Scene illustration with character-consistency references.

Two tiers: the multimodal chain (which can take the previous scene as a
reference) and a single text-to-image model used only once that whole chain
has failed. A safety rejection on either tier triggers exactly one retry with
a sanitized prompt; the ``safety_retry`` flag stops any further recursion.
"""

from __future__ import annotations

from dataclasses import dataclass

from google.genai import types

from ..errors import ContentSafetyRejected, MalformedUpstreamResponse, classify_error
from ..instrumentation import get_logger
from ..payloads import as_bytes, encode_base64, sniff_image_mime
from ..prompts import SANITIZED_IMAGE_PROMPT, build_image_prompt, image_style_suffix
from ..providers import GeminiBackend, ProviderDescriptor
from .base import first_candidate, inline_payload

logger = get_logger()

REFERENCE_INSTRUCTION = "Use this previous scene as a reference. Maintain character design."


@dataclass(slots=True)
class ImageAdapter:
    backend: GeminiBackend
    fallback_model: str = "imagen-4.0-generate-001"
    category: str = "Image"

    async def invoke(
        self,
        provider: ProviderDescriptor,
        prompt: str,
        age: int,
        reference_image: str | None = None,
        safety_retry: bool = False,
    ) -> str:
        try:
            return await self._generate(provider, prompt, age, reference_image, safety_retry)
        except Exception as exc:  # classified below
            error = classify_error(exc)
            if not isinstance(error, ContentSafetyRejected) or safety_retry:
                raise error
        logger.warning("[%s] %s hit the safety gate; retrying with a sanitized prompt", self.category, provider)
        return await self.invoke(provider, SANITIZED_IMAGE_PROMPT, age, None, safety_retry=True)

    async def _generate(
        self,
        provider: ProviderDescriptor,
        prompt: str,
        age: int,
        reference_image: str | None,
        safety_retry: bool,
    ) -> str:
        parts: list[types.Part] = []
        if reference_image and not safety_retry:
            parts.append(
                types.Part.from_bytes(data=as_bytes(reference_image), mime_type=sniff_image_mime(reference_image))
            )
            parts.append(types.Part(text=REFERENCE_INSTRUCTION))
        parts.append(types.Part(text=build_image_prompt(prompt, age, safety_retry=safety_retry)))

        config = None
        if "pro" in provider.model:
            config = types.GenerateContentConfig(
                image_config=types.ImageConfig(image_size="2K", aspect_ratio="16:9")
            )

        response = await self.backend.generate_content(
            model=provider.model,
            contents=types.Content(role="user", parts=parts),
            config=config,
        )
        data = inline_payload(first_candidate(response))
        if not data:
            raise MalformedUpstreamResponse("No image data in response")
        return data if isinstance(data, str) else encode_base64(data)

    async def invoke_fallback(self, prompt: str, age: int, safety_retry: bool = False) -> str:
        """Text-to-image tier; it cannot take a reference image."""
        try:
            return await self._generate_fallback(prompt, age, safety_retry)
        except Exception as exc:  # classified below
            error = classify_error(exc)
            if not isinstance(error, ContentSafetyRejected) or safety_retry:
                raise error
        logger.warning("[%s] %s hit the safety gate; retrying with a sanitized prompt", self.category, self.fallback_model)
        return await self.invoke_fallback(SANITIZED_IMAGE_PROMPT, age, safety_retry=True)

    async def _generate_fallback(self, prompt: str, age: int, safety_retry: bool) -> str:
        final_prompt = f"{build_image_prompt(prompt, age, safety_retry=safety_retry)} {image_style_suffix(age)}"
        response = await self.backend.generate_images(
            model=self.fallback_model,
            prompt=final_prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type="image/jpeg",
                aspect_ratio="16:9",
            ),
        )
        generated = getattr(response, "generated_images", None) or []
        image = getattr(generated[0], "image", None) if generated else None
        data = getattr(image, "image_bytes", None)
        if not data:
            if generated and getattr(generated[0], "rai_filtered_reason", None):
                raise ContentSafetyRejected(generated[0].rai_filtered_reason)
            raise MalformedUpstreamResponse("No Imagen data")
        return data if isinstance(data, str) else encode_base64(data)
