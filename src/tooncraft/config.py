"""Configuration model for the ToonCraft orchestration core."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductionTimings(BaseModel):
    """Delays (seconds) that smooth the request rate against provider limits."""

    retry_initial_delay: float = 1.0
    narration_retry_initial_delay: float = 2.0
    image_fallback_retry_initial_delay: float = 2.0
    narration_scene_delay: float = 0.2
    still_scene_delay: float = 1.5
    pre_video_delay: float = 2.0
    mixed_scene_delay: float = 1.0
    video_poll_interval: float = 10.0
    model_loading_default_wait: float = 20.0
    max_model_loading_waits: int = 3


class EntitlementSettings(BaseModel):
    free_video_trials: int = 3
    premium_daily_video_cap: int = 6
    daily_reset_hours: int = 24
    image_generation_cap: int = 10
    premium_daily_image_cap: int = 3
    image_cooldown_hours: int = 24


class Settings(BaseSettings):
    """Global orchestration settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    environment: Literal["development", "staging", "production"] = Field(
        default="development", alias="APP_ENV"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", alias="LOG_LEVEL")

    # Credential pool, rotated on quota exhaustion
    gemini_api_key_1: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY_1", "VITE_GEMINI_API_KEY_1")
    )
    gemini_api_key_2: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY_2", "VITE_GEMINI_API_KEY_2")
    )
    gemini_api_key_3: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY_3", "VITE_GEMINI_API_KEY_3")
    )
    gemini_api_key_4: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY_4", "VITE_GEMINI_API_KEY_4")
    )
    gemini_api_key_5: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY_5", "VITE_GEMINI_API_KEY_5")
    )
    gemini_api_keys: str = Field(default="", alias="GEMINI_API_KEYS")
    # Always wins over the pool when present
    primary_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("API_KEY", "GEMINI_API_KEY")
    )

    huggingface_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("HUGGINGFACE_API_KEY", "HF_TOKEN")
    )
    huggingface_base_url: str = Field(
        default="https://api-inference.huggingface.co/models", alias="HUGGINGFACE_BASE_URL"
    )

    script_models: list[str] = Field(
        default_factory=lambda: [
            "gemini-2.5-flash",
            "gemini-3-flash-preview",
            "gemini-3-pro-preview",
        ]
    )
    image_models: list[str] = Field(
        default_factory=lambda: [
            "gemini-2.5-flash-image",
            "gemini-3-pro-image-preview",
        ]
    )
    imagen_model: str = "imagen-4.0-generate-001"
    video_models: list[str] = Field(
        default_factory=lambda: [
            "veo-3.1-fast-generate-preview",
            "veo-3.1-generate-preview",
            "veo-3.0-generate-preview",
            "veo-3.0-generate-001",
            "hf:lightx2v/Wan2.2-Distill-Loras",
            "hf:Wan-AI/Wan2.2-I2V-A14B",
            "hf:Lightricks/LTX-Video",
            "hf:stabilityai/stable-video-diffusion-img2vid-xt-1-1",
        ]
    )
    tts_models: list[str] = Field(default_factory=lambda: ["gemini-2.5-flash-preview-tts"])
    stt_model: str = "openai/whisper-large-v3"

    narration_voice: str = Field(default="Kore", alias="NARRATION_VOICE")
    request_timeout_seconds: float = 120.0
    download_timeout_seconds: float = 300.0

    timings: ProductionTimings = ProductionTimings()
    entitlements: EntitlementSettings = EntitlementSettings()

    http_proxy: str | None = Field(default=None, alias="HTTP_PROXY")
    https_proxy: str | None = Field(default=None, alias="HTTPS_PROXY")

    @field_validator("script_models", "image_models", "video_models", "tts_models")
    @classmethod
    def chain_not_empty(cls, value: list[str]) -> list[str]:
        chain = [item.strip() for item in value if item and item.strip()]
        if not chain:
            raise ValueError("Provider chain must contain at least one provider")
        return chain

    @model_validator(mode="after")
    def strip_blank_credentials(self) -> "Settings":
        if self.primary_api_key is not None and not self.primary_api_key.strip():
            self.primary_api_key = None
        if self.huggingface_api_key is not None and not self.huggingface_api_key.strip():
            self.huggingface_api_key = None
        return self

    @property
    def credential_pool_keys(self) -> list[str]:
        """Ordered, de-duplicated pool credentials (numbered keys first)."""
        numbered = [
            self.gemini_api_key_1,
            self.gemini_api_key_2,
            self.gemini_api_key_3,
            self.gemini_api_key_4,
            self.gemini_api_key_5,
        ]
        listed = [item for item in self.gemini_api_keys.split(",")]
        keys: list[str] = []
        for raw in [*numbered, *listed]:
            key = (raw or "").strip()
            if key and key not in keys:
                keys.append(key)
        return keys

    @property
    def httpx_proxies(self) -> str | None:
        """Proxy URL for httpx clients (HTTPS preferred)."""
        return self.https_proxy or self.http_proxy


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
