"""Structured script generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from google.genai import types

from ..errors import MalformedScriptError, MalformedUpstreamResponse
from ..models import Scene, Script
from ..payloads import parse_json_object
from ..prompts import script_system_instruction
from ..providers import GeminiBackend, ProviderDescriptor


def unwrap_script_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Recover the scene list when the model nests it one level too deep."""
    if isinstance(payload.get("scenes"), list):
        return payload
    for key in ("script", "story", "screenplay"):
        nested = payload.get(key)
        if isinstance(nested, dict) and isinstance(nested.get("scenes"), list):
            # keep top-level title/characters when only the scenes were nested
            return {**payload, **nested}
    return payload


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _character_names(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    names = []
    for item in value:
        # models sometimes return {"name": ..., "description": ...} objects
        if isinstance(item, dict):
            item = item.get("name")
        if isinstance(item, str) and item.strip():
            names.append(item.strip())
    return names


def _scene(index: int, raw: dict[str, Any]) -> Scene:
    duration = raw.get("duration")
    return Scene(
        id=index,
        narrative=_text(raw.get("narrative")),
        visual_description=_text(raw.get("visualDescription", raw.get("visual_description"))),
        duration=duration if isinstance(duration, (int, float)) and not isinstance(duration, bool) else None,
    )


def build_script(payload: dict[str, Any]) -> Script:
    """Build a script from model JSON, tolerating loose side fields.

    Only a missing or empty scene list is fatal; an odd title or character
    list falls back to defaults.
    """
    payload = unwrap_script_payload(payload)
    scenes = payload.get("scenes")
    if not isinstance(scenes, list) or not scenes:
        raise MalformedScriptError("Missing scenes")
    scene_objects = [scene for scene in scenes if isinstance(scene, dict)]
    if not scene_objects:
        raise MalformedScriptError("Scenes must be objects")

    title = payload.get("title")
    return Script(
        title=title.strip() if isinstance(title, str) and title.strip() else "Untitled",
        characters=_character_names(payload.get("characters")),
        scenes=[_scene(index, scene) for index, scene in enumerate(scene_objects)],
    )


@dataclass(slots=True)
class ScriptAdapter:
    backend: GeminiBackend
    category: str = "Script"

    async def invoke(
        self,
        provider: ProviderDescriptor,
        brief: str,
        age: int,
        movie_mode: bool = False,
        scene_count: int = 6,
    ) -> Script:
        response = await self.backend.generate_content(
            model=provider.model,
            contents=f"Context: {brief}",
            config=types.GenerateContentConfig(
                system_instruction=script_system_instruction(age, movie_mode, scene_count),
                response_mime_type="application/json",
            ),
        )
        text = getattr(response, "text", None)
        if not text:
            raise MalformedUpstreamResponse("Empty response")
        try:
            payload = parse_json_object(text)
        except MalformedUpstreamResponse as exc:
            raise MalformedScriptError(str(exc)) from exc
        return build_script(payload)
