"""Production pipeline: script, narration and visuals for one story brief.

Stages run strictly one after another and scenes are processed in index
order; nothing inside a run is concurrent because every backend enforces
per-key rate limits. The working script is owned by the pipeline for the
duration of a run and callers only ever receive deep-copied snapshots.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol
from uuid import uuid4

from .cancellation import CancellationToken, wait
from .config import ProductionTimings, settings
from .entitlements import AccessDecision, EntitlementGate, UnlimitedAccess
from .errors import Cancelled, InvalidCredentialOrRequest, OperationError
from .instrumentation import TelemetryEvent, emit_event, get_logger, telemetry_store
from .models import (
    GenerationProgress,
    ProductionRequest,
    ProductionStage,
    ProductionState,
    Scene,
    Script,
)
from .placeholder import render_placeholder
from .service import GenerativeMediaService

logger = get_logger()

ProgressCallback = Callable[[GenerationProgress], Awaitable[None] | None]
ScriptCallback = Callable[[Script], Awaitable[None] | None]


class VideoAlternationPolicy(Protocol):
    """Decides which scenes of a movie-mode run get a video."""

    def wants_video(self, index: int, total: int) -> bool:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True, slots=True)
class AlternatingVideoPolicy:
    """Even indices film a video when ``video_first``; odd indices otherwise."""

    video_first: bool = True

    def wants_video(self, index: int, total: int) -> bool:
        return (index % 2 == 0) == self.video_first


class StillsOnlyPolicy:
    def wants_video(self, index: int, total: int) -> bool:
        return False


@dataclass(slots=True)
class ProductionRun:
    request: ProductionRequest
    run_id: str = field(default_factory=lambda: uuid4().hex)
    state: ProductionState = ProductionState.PENDING
    error: BaseException | None = None
    access_denied: bool = False
    access_reason: str = ""
    image_allowance_reason: str = ""
    images_denied: int = 0
    script: Script | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error else None


async def _notify(callback: Callable[[Any], Any] | None, payload: Any) -> None:
    if callback is None:
        return
    result = callback(payload)
    if inspect.isawaitable(result):
        await result


class ProductionPipeline:
    """Drives one production run from brief to playable script."""

    def __init__(
        self,
        service: GenerativeMediaService,
        *,
        timings: ProductionTimings | None = None,
        entitlements: EntitlementGate | None = None,
        alternation: VideoAlternationPolicy | None = None,
        image_allowance: EntitlementGate | None = None,
        on_progress: ProgressCallback | None = None,
        on_script: ScriptCallback | None = None,
    ) -> None:
        self.service = service
        self.timings = timings or settings.timings
        self.entitlements = entitlements or UnlimitedAccess()
        self.alternation = alternation or AlternatingVideoPolicy()
        self.image_allowance = image_allowance or UnlimitedAccess()
        self.on_progress = on_progress
        self.on_script = on_script

    async def run(
        self,
        request: ProductionRequest,
        cancel_token: CancellationToken,
        run: ProductionRun | None = None,
    ) -> ProductionRun:
        run = run or ProductionRun(request=request)
        try:
            script = await self._write_script(run, cancel_token)
            await self._narrate(run, script, cancel_token)
            if request.movie_mode:
                await self._film_mixed(run, script, cancel_token)
            else:
                await self._draw_stills(run, script, cancel_token)

            cancel_token.raise_if_cancelled()
            total = len(script.scenes)
            await self._progress(cancel_token, ProductionStage.DONE, total, total, "Ready to play!")
            run.state = ProductionState.COMPLETED
            await self._publish(run, script, cancel_token)
            emit_event(
                TelemetryEvent(
                    name="production_completed",
                    attributes={
                        "run_id": run.run_id,
                        "scenes": total,
                        "videos": sum(1 for scene in script.scenes if scene.is_video),
                    },
                )
            )
        except asyncio.CancelledError:
            self._mark_cancelled(run)
            raise
        except Exception as exc:
            if isinstance(exc, Cancelled) or cancel_token.cancelled:
                self._mark_cancelled(run)
            else:
                run.state = ProductionState.FAILED
                run.error = exc
                logger.error("Production %s failed: %s", run.run_id, exc)
                emit_event(
                    TelemetryEvent(
                        name="production_failed",
                        attributes={"run_id": run.run_id, "error": exc.__class__.__name__},
                    )
                )
        finally:
            run.finished_at = datetime.now(timezone.utc)
        return run

    def _mark_cancelled(self, run: ProductionRun) -> None:
        run.state = ProductionState.CANCELLED
        logger.info("Production %s cancelled", run.run_id)
        emit_event(TelemetryEvent(name="production_cancelled", attributes={"run_id": run.run_id}))

    def _enter(self, run: ProductionRun, state: ProductionState) -> None:
        run.state = state
        emit_event(TelemetryEvent(name="production_stage", attributes={"run_id": run.run_id, "stage": state.value}))

    async def _progress(
        self,
        cancel_token: CancellationToken,
        stage: ProductionStage,
        scene_index: int,
        total: int,
        message: str,
    ) -> None:
        if cancel_token.cancelled:
            return
        await _notify(
            self.on_progress,
            GenerationProgress(stage=stage, scene_index=scene_index, total_scenes=total, message=message),
        )

    async def _publish(self, run: ProductionRun, script: Script, cancel_token: CancellationToken) -> None:
        if cancel_token.cancelled:
            return
        snapshot = script.model_copy(deep=True)
        run.script = snapshot
        await _notify(self.on_script, snapshot.model_copy(deep=True))

    async def _write_script(self, run: ProductionRun, cancel_token: CancellationToken) -> Script:
        request = run.request
        cancel_token.raise_if_cancelled()
        self._enter(run, ProductionState.SCRIPTING)
        await self._progress(cancel_token, ProductionStage.SCRIPTING, 0, 0, "Writing the screenplay...")

        script = await self.service.generate_script(
            request.brief, request.age, request.movie_mode, request.scene_count, cancel_token
        )
        cancel_token.raise_if_cancelled()
        script.target_age = request.age
        script.is_movie_mode = request.movie_mode
        await self._publish(run, script, cancel_token)
        return script

    async def _narrate(self, run: ProductionRun, script: Script, cancel_token: CancellationToken) -> None:
        self._enter(run, ProductionState.NARRATING)
        total = len(script.scenes)
        await self._progress(cancel_token, ProductionStage.NARRATING, 0, total, "Casting voice actors...")
        for index, scene in enumerate(script.scenes):
            cancel_token.raise_if_cancelled()
            await self._progress(
                cancel_token, ProductionStage.NARRATING, index + 1, total, f"Recording line {index + 1}/{total}..."
            )
            try:
                audio = await self.service.generate_narration(scene.narrative, run.request.age, cancel_token)
            except (Cancelled, InvalidCredentialOrRequest):
                raise
            except OperationError as exc:
                logger.warning("Audio failed for scene %d: %s", index, exc)
            else:
                cancel_token.raise_if_cancelled()
                scene.audio_url = audio
            await wait(self.timings.narration_scene_delay, cancel_token)

    async def _base_image(
        self,
        run: ProductionRun,
        scene: Scene,
        reference: str | None,
        cancel_token: CancellationToken,
    ) -> str | None:
        decision = self.image_allowance.check_and_consume()
        if not decision.granted:
            run.images_denied += 1
            run.image_allowance_reason = decision.reason
            logger.info("Image allowance exhausted for %s: %s", run.run_id, decision.reason)
            emit_event(
                TelemetryEvent(
                    name="image_allowance_denied",
                    attributes={"run_id": run.run_id, "scene": scene.id, "reason": decision.reason},
                )
            )
            return None
        try:
            image = await self.service.generate_scene_image(
                scene.visual_description, run.request.age, reference, False, cancel_token
            )
        except (Cancelled, InvalidCredentialOrRequest):
            raise
        except OperationError as exc:
            logger.error("Visual generation failed for scene %d: %s", scene.id, exc)
            return None
        cancel_token.raise_if_cancelled()
        return image

    async def _draw_stills(self, run: ProductionRun, script: Script, cancel_token: CancellationToken) -> None:
        self._enter(run, ProductionState.VISUALS)
        total = len(script.scenes)
        reference: str | None = None
        for index, scene in enumerate(script.scenes):
            cancel_token.raise_if_cancelled()
            await self._progress(
                cancel_token, ProductionStage.VISUALS, index + 1, total, f"Drawing Scene {index + 1}/{total}..."
            )
            image = await self._base_image(run, scene, reference, cancel_token)
            scene.is_video = False
            if image is None:
                scene.image_url = render_placeholder(f"Scene {index + 1} Missing")
            else:
                scene.image_url = image
                reference = image
            await self._publish(run, script, cancel_token)
            await wait(self.timings.still_scene_delay, cancel_token)

    def _check_video_access(self, run: ProductionRun) -> AccessDecision:
        decision = self.entitlements.check_and_consume()
        if not decision.granted:
            run.access_denied = True
            run.access_reason = decision.reason
            logger.info("Video access denied for %s: %s", run.run_id, decision.reason)
            emit_event(
                TelemetryEvent(
                    name="video_access_denied",
                    attributes={"run_id": run.run_id, "reason": decision.reason},
                )
            )
        return decision

    async def _film_mixed(self, run: ProductionRun, script: Script, cancel_token: CancellationToken) -> None:
        self._enter(run, ProductionState.VISUALS)
        cancel_token.raise_if_cancelled()
        total = len(script.scenes)
        # no trial is spent on a run that would not film anything
        planned = any(self.alternation.wants_video(index, total) for index in range(total))
        video_allowed = planned and self._check_video_access(run).granted
        reference: str | None = None
        for index, scene in enumerate(script.scenes):
            cancel_token.raise_if_cancelled()
            wants_video = video_allowed and self.alternation.wants_video(index, total)
            message = (
                f"Filming Scene {index + 1} with Veo... (This takes a moment)"
                if wants_video
                else f"Drawing Scene {index + 1}..."
            )
            await self._progress(cancel_token, ProductionStage.VISUALS, index + 1, total, message)

            image = await self._base_image(run, scene, reference, cancel_token)
            scene.is_video = False
            if image is None:
                scene.image_url = render_placeholder("Visual Generation Failed")
            else:
                scene.image_url = image
                reference = image
                if wants_video:
                    await self._film_scene(scene, image, cancel_token)
            await self._publish(run, script, cancel_token)
            await wait(self.timings.mixed_scene_delay, cancel_token)

    async def _film_scene(self, scene: Scene, seed_image: str, cancel_token: CancellationToken) -> None:
        await wait(self.timings.pre_video_delay, cancel_token)
        try:
            video = await self.service.generate_video(scene.visual_description, seed_image, cancel_token)
        except (Cancelled, InvalidCredentialOrRequest):
            raise
        except OperationError as exc:
            # the scene keeps its still image
            logger.warning("Video failed for scene %d, keeping the still: %s", scene.id, exc)
            return
        cancel_token.raise_if_cancelled()
        scene.video_url = video
        scene.is_video = True


class ProductionController:
    """Owns the single live production run.

    Starting a run always cancels and replaces the previous token first, so
    at most one run can still be issuing provider calls.
    """

    def __init__(self, pipeline: ProductionPipeline) -> None:
        self.pipeline = pipeline
        self.current: ProductionRun | None = None
        self._token: CancellationToken | None = None

    @property
    def is_running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def timeline(self) -> list[TelemetryEvent]:
        """Events recorded so far for the current run, oldest first."""
        if self.current is None:
            return []
        return telemetry_store.run_timeline(self.current.run_id)

    async def start(self, request: ProductionRequest) -> ProductionRun:
        self.cancel()
        token = CancellationToken()
        self._token = token
        run = ProductionRun(request=request)
        self.current = run
        try:
            return await self.pipeline.run(request, token, run)
        finally:
            if self._token is token:
                self._token = None

    def cancel(self) -> bool:
        if self._token is None:
            return False
        self._token.cancel()
        self._token = None
        return True

    async def retry(self) -> ProductionRun:
        """Re-run the last failed production with identical parameters."""
        if self.current is None or self.current.state is not ProductionState.FAILED:
            raise RuntimeError("Only a failed production can be retried")
        return await self.start(self.current.request)

    def tag_scene_sound_effect(self, index: int, sfx_url: str) -> Scene:
        run = self.current
        if run is None or run.state is not ProductionState.COMPLETED or run.script is None:
            raise RuntimeError("Sound effects can only be tagged once the production has completed")
        if not 0 <= index < len(run.script.scenes):
            raise IndexError(f"Scene index {index} out of range")
        scene = run.script.scenes[index]
        scene.sfx_url = sfx_url
        return scene
