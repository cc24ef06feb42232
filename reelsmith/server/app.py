"""FastAPI application exposing projects, timelines and rendering.

WHY: The dashboard (and scripts such as n8n flows or curl) drive the
pipeline over HTTP: create a project from a script, upload the voiceover,
adjust the timeline, attach images, render, and download the result.

HOW: One FastAPI app with endpoints grouped by tags. Handlers are thin:
they validate input, save uploads, call the pipeline coordinator or the
timeline editing functions, and map domain exceptions to HTTP errors.
Rendering runs inside the request so the response carries the outcome.

RULES:
- Error responses use the ErrorResponse schema
- Missing images → 400 with {"error", "missing_scenes"}
- Render already running → 409
- Render failure → 500 with {"error": "Failed to generate video", "details"}
- Upload extensions are checked against SUPPORTED_AUDIO_FORMATS /
  SUPPORTED_IMAGE_FORMATS
- The project store is a module-level singleton
"""

from __future__ import annotations

import contextlib
import logging
import re
import uuid
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response

from reelsmith import __version__
from reelsmith.config import (
    DATA_DIR,
    OUTPUT_ROOT,
    SUPPORTED_AUDIO_FORMATS,
    SUPPORTED_IMAGE_FORMATS,
    UPLOAD_ROOT,
)
from reelsmith.core.editing import insert_scene, remove_scene, replace_scenes, timeline_problems
from reelsmith.core.ir import ScriptScene, TimelineScene
from reelsmith.render.orchestrator import SubtitleStyle
from reelsmith.server.models import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectSummary,
    SceneInsertRequest,
    TimelineSceneModel,
    TimelineUpdateRequest,
)
from reelsmith.server.pipeline import (
    PreconditionError,
    ProjectNotFoundError,
    RenderInProgressError,
    attach_scene_image,
    generate_video,
    process_voiceover,
)
from reelsmith.server.projects import Project, ProjectStatus, ProjectStore
from reelsmith.services.llm import LLMClient
from reelsmith.services.transcription import WhisperClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

project_store = ProjectStore(data_dir=DATA_DIR or None)
upload_root = UPLOAD_ROOT
output_root = OUTPUT_ROOT

app = FastAPI(
    title="Reelsmith API",
    description=(
        "REST API for turning a script, a voiceover and scene images into a "
        "captioned short-form video. Create a project, upload the voiceover, "
        "attach images, render, and download the result."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Project not found"}}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_transcriber() -> WhisperClient:
    """Transcription client for voiceover uploads (patched in tests)."""
    return WhisperClient()


def _make_llm() -> Optional[LLMClient]:
    """Text-completion client for scene matching and hashtags, or None."""
    return LLMClient.from_env()


def _project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        **project.to_dict(),
        timeline_problems=timeline_problems(project.timeline),
    )


def _get_project_or_404(project_id: str) -> Project:
    project = project_store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found: {}".format(project_id))
    return project


def _ensure_editable(project: Project) -> None:
    if project.status == ProjectStatus.PROCESSING:
        raise HTTPException(
            status_code=409,
            detail="Project {} is being rendered".format(project.id),
        )


def _validate_extension(filename: str, allowed: set) -> str:
    """Return the lowercase extension, raising 400 if it is not allowed."""
    ext = Path(filename).suffix.lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(allowed))
            ),
        )
    return ext


async def _save_upload(upload: UploadFile, directory: Path, stem: str, ext: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "{}_{}{}".format(stem, uuid.uuid4().hex[:8], ext)
    path.write_bytes(await upload.read())
    return path


def _scene_from_model(model: TimelineSceneModel) -> TimelineScene:
    return TimelineScene.from_dict(model.model_dump(exclude_none=True))


def _safe_stem(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", value) or "scene"


# ---------------------------------------------------------------------------
# Endpoints: Projects
# ---------------------------------------------------------------------------


@app.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=201,
    tags=["projects"],
    summary="Create a project",
    description="Create a project, optionally with its script scenes.",
    responses={429: {"model": ErrorResponse, "description": "Too many projects"}},
)
async def create_project(body: ProjectCreateRequest) -> ProjectResponse:
    script = [ScriptScene.from_dict(s.model_dump()) for s in body.script]
    try:
        project = project_store.create_project(
            title=body.title,
            topic=body.topic,
            script=script,
            aspect_ratio=body.aspect_ratio,
        )
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _project_to_response(project)


@app.get(
    "/projects",
    response_model=List[ProjectSummary],
    tags=["projects"],
    summary="List projects",
)
async def list_projects() -> List[ProjectSummary]:
    return [
        ProjectSummary(
            id=p.id,
            title=p.title,
            status=p.status.value,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
        for p in project_store.list_projects()
    ]


@app.get(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    tags=["projects"],
    summary="Get a project",
    description="Full project state including timeline, output and last error.",
    responses=_NOT_FOUND,
)
async def get_project(project_id: str) -> ProjectResponse:
    return _project_to_response(_get_project_or_404(project_id))


@app.delete(
    "/projects/{project_id}",
    status_code=204,
    tags=["projects"],
    summary="Delete a project",
    responses=_NOT_FOUND,
)
async def delete_project(project_id: str) -> Response:
    if not project_store.delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found: {}".format(project_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Voiceover and timeline
# ---------------------------------------------------------------------------


@app.post(
    "/projects/{project_id}/voiceover",
    response_model=ProjectResponse,
    tags=["timeline"],
    summary="Upload the voiceover",
    description=(
        "Upload narration audio. It is transcribed and the script scenes are "
        "aligned to it, replacing the project's timeline."
    ),
    responses={
        **_NOT_FOUND,
        400: {"model": ErrorResponse, "description": "Bad file type or no script"},
        409: {"model": ErrorResponse, "description": "Project is rendering"},
        500: {"model": ErrorResponse, "description": "Transcription failed"},
    },
)
async def upload_voiceover(
    project_id: str,
    file: Annotated[UploadFile, File(description="Voiceover audio file")],
) -> ProjectResponse:
    project = _get_project_or_404(project_id)
    _ensure_editable(project)
    if not project.script:
        raise HTTPException(status_code=400, detail="Project has no script scenes")

    filename = Path(file.filename or "voiceover").name
    ext = _validate_extension(filename, SUPPORTED_AUDIO_FORMATS)
    audio_path = await _save_upload(file, Path(upload_root) / project_id, "voiceover", ext)

    llm = _make_llm()
    try:
        async with _make_transcriber() as transcriber:
            async with (llm if llm is not None else contextlib.nullcontext()):
                project = await process_voiceover(
                    project_id, project_store, str(audio_path), transcriber, matcher=llm,
                )
    except ProjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except RenderInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except PreconditionError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except Exception as exc:
        logger.exception("Voiceover processing failed for project %s", project_id)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to process voiceover", "details": str(exc)},
        )
    return _project_to_response(project)


@app.put(
    "/projects/{project_id}/timeline",
    response_model=ProjectResponse,
    tags=["timeline"],
    summary="Replace the timeline scenes",
    responses={**_NOT_FOUND, 400: {"model": ErrorResponse, "description": "Invalid scenes"}},
)
async def update_timeline(project_id: str, body: TimelineUpdateRequest) -> ProjectResponse:
    project = _get_project_or_404(project_id)
    _ensure_editable(project)
    try:
        replace_scenes(
            project.timeline,
            [_scene_from_model(s) for s in body.scenes],
            total_duration=body.total_duration,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    project_store.save_project(project)
    return _project_to_response(project)


@app.post(
    "/projects/{project_id}/timeline/scenes",
    response_model=ProjectResponse,
    status_code=201,
    tags=["timeline"],
    summary="Insert a scene",
    responses={**_NOT_FOUND, 400: {"model": ErrorResponse, "description": "Duplicate scene id"}},
)
async def add_scene(project_id: str, body: SceneInsertRequest) -> ProjectResponse:
    project = _get_project_or_404(project_id)
    _ensure_editable(project)
    try:
        insert_scene(project.timeline, _scene_from_model(body.scene), body.after_scene_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    project_store.save_project(project)
    return _project_to_response(project)


@app.delete(
    "/projects/{project_id}/timeline/scenes/{scene_id}",
    response_model=ProjectResponse,
    tags=["timeline"],
    summary="Remove a scene",
    responses={404: {"model": ErrorResponse, "description": "Project or scene not found"}},
)
async def delete_scene(project_id: str, scene_id: str) -> ProjectResponse:
    project = _get_project_or_404(project_id)
    _ensure_editable(project)
    try:
        remove_scene(project.timeline, scene_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Scene not found: {}".format(scene_id))
    project_store.save_project(project)
    return _project_to_response(project)


@app.post(
    "/projects/{project_id}/scenes/{scene_id}/image",
    response_model=ProjectResponse,
    tags=["timeline"],
    summary="Upload a scene image",
    responses={
        404: {"model": ErrorResponse, "description": "Project or scene not found"},
        400: {"model": ErrorResponse, "description": "Unsupported image type"},
    },
)
async def upload_scene_image(
    project_id: str,
    scene_id: str,
    file: Annotated[UploadFile, File(description="Scene image")],
) -> ProjectResponse:
    project = _get_project_or_404(project_id)
    _ensure_editable(project)
    if not any(s.id == scene_id for s in project.timeline.scenes):
        raise HTTPException(status_code=404, detail="Scene not found: {}".format(scene_id))

    filename = Path(file.filename or "image").name
    ext = _validate_extension(filename, SUPPORTED_IMAGE_FORMATS)
    image_path = await _save_upload(
        file, Path(upload_root) / project_id, "scene_{}".format(_safe_stem(scene_id)), ext,
    )
    try:
        project = attach_scene_image(project_id, project_store, scene_id, str(image_path))
    except RenderInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except KeyError:
        raise HTTPException(status_code=404, detail="Scene not found: {}".format(scene_id))
    return _project_to_response(project)


# ---------------------------------------------------------------------------
# Endpoints: Rendering
# ---------------------------------------------------------------------------


@app.post(
    "/projects/{project_id}/generate",
    response_model=GenerateResponse,
    tags=["render"],
    summary="Render the video",
    description=(
        "Render the project's timeline with its voiceover and burned-in "
        "captions, then extract a thumbnail and suggest hashtags."
    ),
    responses={
        **_NOT_FOUND,
        400: {"model": ErrorResponse, "description": "Missing voiceover, scenes or images"},
        409: {"model": ErrorResponse, "description": "Render already running"},
        500: {"model": ErrorResponse, "description": "Render failed"},
    },
)
async def generate(project_id: str, body: Optional[GenerateRequest] = None) -> GenerateResponse:
    style = SubtitleStyle(**(body.model_dump(exclude_none=True) if body else {}))
    llm = _make_llm()
    try:
        async with (llm if llm is not None else contextlib.nullcontext()):
            result = await generate_video(
                project_id, project_store, subtitle_style=style, llm=llm, output_root=output_root,
            )
    except ProjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except RenderInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except PreconditionError as exc:
        detail = {"error": exc.message}
        if exc.missing_scenes:
            detail["missing_scenes"] = exc.missing_scenes
        raise HTTPException(status_code=400, detail=detail)

    if not result.success:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to generate video", "details": result.error},
        )
    return GenerateResponse(success=True, output=result.output.to_dict())


@app.get(
    "/projects/{project_id}/output/{kind}",
    tags=["render"],
    summary="Download the rendered video or thumbnail",
    responses={
        404: {"model": ErrorResponse, "description": "No such output"},
        409: {"model": ErrorResponse, "description": "Project not completed"},
    },
)
async def download_output(project_id: str, kind: str) -> FileResponse:
    project = _get_project_or_404(project_id)
    if kind not in ("video", "thumbnail"):
        raise HTTPException(status_code=404, detail="Unknown output kind '{}'".format(kind))
    if project.status != ProjectStatus.COMPLETED or project.output is None:
        raise HTTPException(
            status_code=409,
            detail="Project is not completed (current status: {}).".format(project.status.value),
        )

    if kind == "video":
        path, media_type = project.output.video_path, "video/mp4"
    else:
        path, media_type = project.output.thumbnail_path, "image/jpeg"
    if not path or not Path(path).exists():
        raise HTTPException(status_code=404, detail="{} file not found on disk.".format(kind.title()))
    return FileResponse(path, media_type=media_type, filename=Path(path).name)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the reelsmith-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
