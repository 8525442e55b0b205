import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Load .env file first before any other imports
from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parents[1] / ".env")

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tooncraft.config import ProductionTimings  # noqa: E402
from tooncraft.credentials import CredentialPool  # noqa: E402
from tooncraft.errors import AllProvidersFailedError  # noqa: E402
from tooncraft.instrumentation import telemetry_store  # noqa: E402
from tooncraft.models import Scene, Script  # noqa: E402

# Smallest valid base64 prefixes the MIME sniffer understands
PNG_B64 = "iVBORw0KGgoAAAANSUhEUg=="
JPEG_B64 = "/9j/4AAQSkZJRgABAQ=="


def gemini_response(*, text=None, data=None, finish_reason="STOP", block_reason=None):
    """Shape-compatible stand-in for a google-genai GenerateContentResponse."""
    part = SimpleNamespace(text=text, inline_data=SimpleNamespace(data=data) if data is not None else None)
    candidate = SimpleNamespace(finish_reason=finish_reason, content=SimpleNamespace(parts=[part]))
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(text=text, candidates=[candidate], prompt_feedback=feedback)


class FakeMediaService:
    """Records every call the pipeline makes; failures are injected per scene index."""

    def __init__(self, scene_count=3, *, image_failures=(), video_failures=(), narration_failures=()):
        self.scene_count = scene_count
        self.image_failures = set(image_failures)
        self.video_failures = set(video_failures)
        self.narration_failures = set(narration_failures)
        self.calls: list[tuple] = []
        self.script_error: BaseException | None = None
        self.on_image = None

    def _index(self, prompt: str) -> int:
        return int(prompt.rsplit(" ", 1)[-1])

    async def generate_script(self, brief, age, movie_mode=False, scene_count=6, cancel_token=None):
        self.calls.append(("script", brief, age, movie_mode, scene_count))
        if self.script_error is not None:
            raise self.script_error
        return Script(
            title="Pancake Bot",
            characters=["Robo"],
            scenes=[
                Scene(id=i, narrative=f"Line {i}", visual_description=f"Robo flips pancakes in shot {i}")
                for i in range(self.scene_count)
            ],
        )

    async def generate_narration(self, text, age, cancel_token=None):
        self.calls.append(("narration", text))
        if int(text.rsplit(" ", 1)[-1]) in self.narration_failures:
            raise AllProvidersFailedError("Narration")
        return f"wav-{text}"

    async def generate_scene_image(self, prompt, age, reference_image=None, safety_retry=False, cancel_token=None):
        index = self._index(prompt)
        self.calls.append(("image", index, reference_image))
        if self.on_image is not None:
            self.on_image(index)
        if index in self.image_failures:
            raise AllProvidersFailedError("Image")
        return f"{JPEG_B64}{index}"

    async def generate_video(self, prompt, seed_image, cancel_token=None):
        index = self._index(prompt)
        self.calls.append(("video", index, seed_image))
        if index in self.video_failures:
            raise AllProvidersFailedError("Video")
        return f"video-{index}"

    def calls_of(self, kind):
        return [call for call in self.calls if call[0] == kind]


@pytest.fixture(autouse=True)
def _reset_telemetry():
    telemetry_store.reset()
    yield
    telemetry_store.reset()


@pytest.fixture
def zero_timings():
    return ProductionTimings(
        retry_initial_delay=0,
        narration_retry_initial_delay=0,
        image_fallback_retry_initial_delay=0,
        narration_scene_delay=0,
        still_scene_delay=0,
        pre_video_delay=0,
        mixed_scene_delay=0,
        video_poll_interval=0,
        model_loading_default_wait=0,
    )


@pytest.fixture
def pool():
    return CredentialPool(["key-a", "key-b", "key-c"])


@pytest.fixture
def progress_log():
    events = []

    def record(progress):
        events.append(progress)

    record.events = events
    return record
