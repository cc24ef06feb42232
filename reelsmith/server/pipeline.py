"""Project-level pipeline steps: voiceover processing, images, rendering.

WHY: The render pipeline (inventory → plan → encode → thumbnail →
hashtags) touches external processes and services, any of which can fail.
The project must always end in a consistent state: either COMPLETED with
an output, or FAILED with an error and its script, timeline and
voiceover intact so the user can fix things and retry.

HOW: Each public coroutine loads the project from the ProjectStore, checks
preconditions before changing anything, performs its work, and saves the
project once at the end. generate_video() claims the project through the
store's compare-and-swap, runs the render and converts any failure into
the FAILED state at a single boundary.

RULES:
- Preconditions are checked before any mutation (PreconditionError)
- A project already PROCESSING is never rendered twice (RenderInProgressError)
- Render failures are returned as GenerationResult(success=False), never raised
- Thumbnail and hashtag failures do not fail a render
- Regenerating repeats the sequence; the superseded video and thumbnail
  are deleted once the new output is saved
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from reelsmith.config import OUTPUT_ROOT, RENDER_TIMEOUT_S
from reelsmith.core.aligner import TextCompleter, align_scenes
from reelsmith.core.editing import set_scene_image
from reelsmith.core.ir import ProjectOutput
from reelsmith.render.ffmpeg import FFmpegError, get_audio_duration
from reelsmith.render.inventory import check_inventory, scenes_without_images
from reelsmith.render.orchestrator import RenderRequest, SubtitleStyle, render_video
from reelsmith.render.plan import remove_quietly
from reelsmith.render.thumbnail import generate_thumbnail
from reelsmith.server.projects import (
    Project,
    ProjectStatus,
    ProjectStore,
    RenderInProgressError,
    VoiceoverInfo,
)
from reelsmith.services.hashtags import generate_hashtags

logger = logging.getLogger(__name__)

__all__ = [
    "GenerationResult",
    "PreconditionError",
    "ProjectNotFoundError",
    "RenderInProgressError",
    "attach_scene_image",
    "generate_video",
    "process_voiceover",
]


class PreconditionError(Exception):
    """Raised when a pipeline step's inputs are not ready.

    Attributes:
        missing_scenes: IDs of scenes without a usable image, when that is
            the reason.
    """

    def __init__(self, message: str, missing_scenes: Optional[List[str]] = None) -> None:
        self.message = message
        self.missing_scenes = list(missing_scenes or [])
        super().__init__(message)


class ProjectNotFoundError(PreconditionError):
    """Raised when the project ID is unknown."""

    def __init__(self, project_id: str) -> None:
        super().__init__("Project not found: {}".format(project_id))
        self.project_id = project_id


@dataclass
class GenerationResult:
    success: bool
    output: Optional[ProjectOutput] = None
    error: Optional[str] = None
    missing_scenes: List[str] = field(default_factory=list)


def _require_project(store: ProjectStore, project_id: str) -> Project:
    project = store.get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def _fail(store: ProjectStore, project: Project, error: str) -> GenerationResult:
    project.output = None
    try:
        store.save_project(project)
        store.update_status(project.id, ProjectStatus.FAILED, error=error)
    except OSError:
        logger.exception("Could not persist the failed state of project %s", project.id)
        project.status = ProjectStatus.FAILED
        project.error = error
    logger.error("Video generation failed for project %s: %s", project.id, error)
    return GenerationResult(success=False, error=error)


def _remove_superseded(previous: Optional[ProjectOutput], current: ProjectOutput) -> None:
    if previous is None:
        return
    for old, new in (
        (previous.video_path, current.video_path),
        (previous.thumbnail_path, current.thumbnail_path),
    ):
        if old and old != new:
            remove_quietly(old)


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------

async def generate_video(
    project_id: str,
    store: ProjectStore,
    subtitle_style: Optional[SubtitleStyle] = None,
    llm: Optional[Any] = None,
    output_root: Path | str = OUTPUT_ROOT,
    render_timeout: Optional[float] = RENDER_TIMEOUT_S,
) -> GenerationResult:
    """Render a project's timeline into its output video.

    WHY: This is the single entry point for "make the video". It owns the
    project's status for the duration of the render.

    HOW: Check preconditions → claim (PROCESSING) → render_video() →
    thumbnail → hashtags → store ProjectOutput and mark COMPLETED. Any
    failure after the claim marks the project FAILED.

    Args:
        project_id: Project to render.
        store: Where the project lives.
        subtitle_style: Caption styling; defaults apply when None.
        llm: Optional text-completion client for hashtags.
        output_root: Parent directory of per-project output folders.
        render_timeout: Encoder time limit in seconds.

    Returns:
        GenerationResult describing the outcome.

    Raises:
        ProjectNotFoundError: Unknown project.
        PreconditionError: Missing voiceover, empty timeline, missing images
            or scenes without a positive duration.
        RenderInProgressError: The project is already rendering.
    """
    project = _require_project(store, project_id)

    if project.voiceover is None or not project.voiceover.audio_path:
        raise PreconditionError("Project has no voiceover")
    scenes = project.timeline.scenes
    if not scenes:
        raise PreconditionError("Timeline has no scenes")

    report = check_inventory(scenes, project.voiceover.audio_path)
    missing = list(dict.fromkeys(scenes_without_images(scenes) + report.missing_scenes))
    if missing:
        raise PreconditionError(
            "{} scene(s) are missing images".format(len(missing)),
            missing_scenes=missing,
        )
    if report.audio_missing:
        raise PreconditionError("Voiceover audio file is missing")
    collapsed = [s.id for s in scenes if s.end_time <= s.start_time]
    if collapsed:
        raise PreconditionError(
            "Scenes without a positive duration: {}".format(", ".join(collapsed))
        )

    try:
        project = store.claim_for_render(project_id)
    except KeyError:
        raise ProjectNotFoundError(project_id) from None
    except OSError as exc:
        logger.exception("Could not claim project %s for rendering", project_id)
        return _fail(store, project, str(exc))

    previous_output = project.output

    try:
        result = await render_video(
            RenderRequest(
                scenes=project.timeline.scenes,
                audio_path=project.voiceover.audio_path,
                output_dir=Path(output_root) / project.id,
                aspect_ratio=project.aspect_ratio,
                subtitle_style=subtitle_style,
            ),
            timeout=render_timeout,
        )
        if not result.success:
            return _fail(store, project, result.error or "Render failed")

        thumbnail_path = await generate_thumbnail(result.video_path)
        hashtags = await generate_hashtags(
            project.topic or project.title, project.script_text, llm,
        )

        output = ProjectOutput(
            video_path=result.video_path,
            generated_at=time.time(),
            duration=result.duration,
            thumbnail_path=thumbnail_path,
            hashtags=hashtags,
        )
        project.output = output
        project.status = ProjectStatus.COMPLETED
        project.error = None
        store.save_project(project)
        _remove_superseded(previous_output, output)
    except Exception as exc:
        logger.exception("Unexpected error while rendering project %s", project_id)
        return _fail(store, project, str(exc))

    logger.info("Project %s completed: %s", project_id, output.video_path)
    return GenerationResult(success=True, output=output)


# ---------------------------------------------------------------------------
# Voiceover
# ---------------------------------------------------------------------------

async def process_voiceover(
    project_id: str,
    store: ProjectStore,
    audio_path: str,
    transcriber: Any,
    matcher: Optional[TextCompleter] = None,
) -> Project:
    """Transcribe a voiceover and align the project's script to it.

    The probed audio length is used as the timeline duration; when the
    probe fails the transcript's own duration is used instead.

    Args:
        project_id: Project receiving the voiceover.
        store: Where the project lives.
        audio_path: Saved audio file.
        transcriber: Object with ``async transcribe(path) -> Transcript``.
        matcher: Optional text-completion client used for scene matching.

    Returns:
        The updated project (status VOICEOVER_UPLOADED).

    Raises:
        ProjectNotFoundError, PreconditionError, RenderInProgressError,
        and whatever the transcriber raises (after marking the project FAILED).
    """
    project = _require_project(store, project_id)
    if not project.script:
        raise PreconditionError("Project has no script scenes")
    if project.status == ProjectStatus.PROCESSING:
        raise RenderInProgressError(project_id)

    duration: Optional[float] = None
    try:
        duration = await get_audio_duration(audio_path)
    except FFmpegError as exc:
        logger.warning("Could not probe voiceover %s: %s", audio_path, exc)

    try:
        transcript = await transcriber.transcribe(audio_path)
    except Exception as exc:
        store.update_status(project_id, ProjectStatus.FAILED, error=str(exc))
        raise

    if not duration:
        duration = transcript.duration
    timeline = await align_scenes(project.script, transcript, matcher, duration=duration)

    project.voiceover = VoiceoverInfo(
        audio_path=str(audio_path), duration=duration, transcript=transcript,
    )
    project.timeline = timeline
    project.output = None
    project.status = ProjectStatus.VOICEOVER_UPLOADED
    project.error = None
    store.save_project(project)
    logger.info(
        "Project %s: voiceover aligned into %d scenes (%.2fs)",
        project_id, len(timeline.scenes), duration,
    )
    return project


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def attach_scene_image(
    project_id: str,
    store: ProjectStore,
    scene_id: str,
    image_path: str,
    image_source: str = "uploaded",
) -> Project:
    """Attach an image to one scene; IMAGES_READY once every scene has one.

    Raises:
        ProjectNotFoundError: Unknown project.
        KeyError: Unknown scene.
        RenderInProgressError: The project is rendering.
    """
    project = _require_project(store, project_id)
    if project.status == ProjectStatus.PROCESSING:
        raise RenderInProgressError(project_id)

    set_scene_image(project.timeline, scene_id, image_path, image_source)
    if project.timeline.scenes and not scenes_without_images(project.timeline.scenes):
        project.status = ProjectStatus.IMAGES_READY
        project.error = None
    store.save_project(project)
    return project
