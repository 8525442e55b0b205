"""Backend clients for the primary (Gemini) and secondary (Hugging Face) families."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

import httpx
from google import genai

from .config import Settings, settings
from .credentials import CredentialPool
from .errors import InvalidCredentialOrRequest, ProviderNotConfigured
from .instrumentation import get_logger

logger = get_logger()

HF_PREFIX = "hf:"


class ProviderFamily(str, Enum):
    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """One concrete model able to service a capability."""

    identifier: str
    family: ProviderFamily
    model: str

    @classmethod
    def parse(cls, identifier: str) -> "ProviderDescriptor":
        identifier = identifier.strip()
        if identifier.startswith(HF_PREFIX):
            return cls(identifier, ProviderFamily.HUGGINGFACE, identifier[len(HF_PREFIX):])
        return cls(identifier, ProviderFamily.GEMINI, identifier)

    def __str__(self) -> str:
        return self.identifier


def parse_chain(identifiers: Iterable[str]) -> tuple[ProviderDescriptor, ...]:
    chain = tuple(ProviderDescriptor.parse(item) for item in identifiers if item and item.strip())
    if not chain:
        raise ValueError("Provider chain must contain at least one provider")
    return chain


def _client_kwargs(timeout: float, proxy: str | None) -> dict[str, Any]:
    client_kwargs: dict[str, Any] = {"timeout": timeout}
    if proxy:
        client_kwargs["proxy"] = proxy
    return client_kwargs


@dataclass(slots=True)
class GeminiBackend:
    """Thin async wrapper over ``google-genai``.

    One client is cached per credential and looked up on every call, so a
    rotation takes effect on the very next request without rebuilding the
    connection pool of keys already seen.
    """

    credentials: CredentialPool
    download_timeout: float = 300.0
    proxy: str | None = None
    name: str = "gemini"
    _clients: dict[str, genai.Client] = field(default_factory=dict, repr=False)

    def _api_key(self) -> str:
        api_key = (self.credentials.current() or "").strip()
        if not api_key:
            raise InvalidCredentialOrRequest(
                "Gemini API key is missing: set API_KEY/GEMINI_API_KEY or GEMINI_API_KEY_1..5"
            )
        return api_key

    def _client(self) -> genai.Client:
        api_key = self._api_key()
        client = self._clients.get(api_key)
        if client is None:
            client = self._clients[api_key] = genai.Client(api_key=api_key)
        return client

    async def generate_content(self, *, model: str, contents: Any, config: Any = None) -> Any:
        return await self._client().aio.models.generate_content(model=model, contents=contents, config=config)

    async def generate_images(self, *, model: str, prompt: str, config: Any = None) -> Any:
        return await self._client().aio.models.generate_images(model=model, prompt=prompt, config=config)

    async def generate_videos(self, *, model: str, prompt: str, image: Any = None, config: Any = None) -> Any:
        return await self._client().aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=image,
            config=config,
        )

    async def get_video_operation(self, operation: Any) -> Any:
        return await self._client().aio.operations.get(operation=operation)

    async def download(self, uri: str) -> bytes:
        headers = {"x-goog-api-key": self._api_key()}
        async with httpx.AsyncClient(**_client_kwargs(self.download_timeout, self.proxy)) as client:
            response = await client.get(uri, headers=headers, follow_redirects=True)
            response.raise_for_status()
            return response.content


@dataclass(slots=True)
class HuggingFaceBackend:
    """Hosted inference API; callers inspect the raw response for cold-start signals."""

    token: str | None
    base_url: str = "https://api-inference.huggingface.co/models"
    timeout: float = 120.0
    proxy: str | None = None
    name: str = "huggingface"

    def _headers(self, content_type: str) -> dict[str, str]:
        if not self.token:
            raise ProviderNotConfigured("HUGGINGFACE_API_KEY not configured")
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": content_type,
        }

    async def post(
        self,
        model_id: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        content_type: str = "application/json",
    ) -> httpx.Response:
        headers = self._headers(content_type)
        url = f"{self.base_url.rstrip('/')}/{model_id}"
        async with httpx.AsyncClient(**_client_kwargs(self.timeout, self.proxy)) as client:
            if content is not None:
                return await client.post(url, content=content, headers=headers)
            return await client.post(url, json=json, headers=headers)


def build_backends(
    credentials: CredentialPool, config: Settings | None = None
) -> tuple[GeminiBackend, HuggingFaceBackend]:
    config = config or settings
    if not config.huggingface_api_key:
        logger.warning("HUGGINGFACE_API_KEY missing; secondary providers will be skipped.")
    gemini = GeminiBackend(
        credentials=credentials,
        download_timeout=config.download_timeout_seconds,
        proxy=config.httpx_proxies,
    )
    huggingface = HuggingFaceBackend(
        token=config.huggingface_api_key,
        base_url=config.huggingface_base_url,
        timeout=config.request_timeout_seconds,
        proxy=config.httpx_proxies,
    )
    return gemini, huggingface
