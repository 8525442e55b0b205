"""Script and production data models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # The UI collaborator speaks camelCase JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Scene(_CamelModel):
    id: int = 0
    narrative: str = ""
    visual_description: str = ""
    image_url: str | None = None
    video_url: str | None = None
    audio_url: str | None = None
    duration: float | None = None
    is_video: bool = False
    sfx_url: str | None = None


class Script(_CamelModel):
    title: str = "Untitled"
    characters: list[str] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    target_age: int | None = None
    is_movie_mode: bool = False

    @property
    def is_complete(self) -> bool:
        """Every scene has at least an image; video is best-effort."""
        return bool(self.scenes) and all(scene.image_url for scene in self.scenes)


class ChatMessage(_CamelModel):
    role: Literal["user", "model"]
    text: str


class ProductionStage(str, Enum):
    SCRIPTING = "scripting"
    NARRATING = "narrating"
    VISUALS = "visuals"
    DONE = "done"


class ProductionState(str, Enum):
    PENDING = "pending"
    SCRIPTING = "scripting"
    NARRATING = "narrating"
    VISUALS = "visuals"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {ProductionState.COMPLETED, ProductionState.CANCELLED, ProductionState.FAILED}


class GenerationProgress(_CamelModel):
    stage: ProductionStage
    scene_index: int = 0
    total_scenes: int = 0
    message: str = ""


class ProductionRequest(_CamelModel):
    brief: str
    age: int
    movie_mode: bool = False
    scene_count: int = Field(default=6, ge=1)
