"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: Request models mirror the editable parts of a project (script,
timeline scenes, subtitle style); response models mirror the stored
Project, built from Project.to_dict().

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Status values match ProjectStatus exactly
- aspect_ratio is validated against ASPECT_RATIO_DIMENSIONS
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from reelsmith.config import ASPECT_RATIO_DIMENSIONS, DEFAULT_ASPECT_RATIO


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------


class ScriptSceneModel(BaseModel):
    """One script scene as supplied by the script generator."""

    id: str = Field(description="Scene identifier, unique within the project.")
    text: str = Field(description="Narration text of the scene.")
    visual_description: str = Field(default="", description="What the scene should show.")


class SubtitleChunkModel(BaseModel):
    id: str = Field(description="Chunk identifier.")
    start: float = Field(description="Start time in seconds.")
    end: float = Field(description="End time in seconds.")
    text: str = Field(description="Caption text.")


class TimelineSceneModel(BaseModel):
    """A timed scene as stored in the project timeline."""

    id: str = Field(description="Scene identifier.")
    order: int = Field(default=0, description="Position in the timeline (renumbered on save).")
    start_time: float = Field(ge=0, description="Start time in seconds.")
    end_time: float = Field(ge=0, description="End time in seconds.")
    duration: Optional[float] = Field(default=None, description="Recomputed from start/end.")
    scene_text: str = Field(default="", description="Narration text of the scene.")
    scene_description: str = Field(default="", description="Visual description.")
    image_prompt: str = Field(default="", description="Prompt used to obtain the image.")
    image_path: Optional[str] = Field(default=None, description="Path of the attached image.")
    image_source: str = Field(default="ai-generated", description="Where the image came from.")
    subtitles: List[SubtitleChunkModel] = Field(default_factory=list, description="Caption chunks.")


class TimelineModel(BaseModel):
    total_duration: float = Field(description="Audio duration in seconds.")
    scenes: List[TimelineSceneModel] = Field(description="Ordered timeline scenes.")


class VoiceoverModel(BaseModel):
    audio_path: str = Field(description="Stored audio file.")
    duration: float = Field(description="Audio duration in seconds.")


class ProjectOutputModel(BaseModel):
    video_path: str = Field(description="Rendered video file.")
    generated_at: float = Field(description="Render completion time (Unix epoch seconds).")
    duration: float = Field(description="Video duration in seconds.")
    thumbnail_path: Optional[str] = Field(default=None, description="Thumbnail image, if any.")
    hashtags: List[str] = Field(default_factory=list, description="Suggested hashtags (no '#').")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ProjectCreateRequest(BaseModel):
    title: str = Field(min_length=1, description="Project title.")
    topic: str = Field(default="", description="Topic, used for hashtag suggestions.")
    aspect_ratio: str = Field(default=DEFAULT_ASPECT_RATIO, description="Output aspect ratio.")
    script: List[ScriptSceneModel] = Field(
        default_factory=list,
        description="Ordered script scenes. A non-empty script makes the project script-ready.",
    )

    @field_validator("aspect_ratio")
    @classmethod
    def _known_aspect_ratio(cls, value: str) -> str:
        if value not in ASPECT_RATIO_DIMENSIONS:
            raise ValueError("aspect_ratio must be one of {}".format(
                ", ".join(sorted(ASPECT_RATIO_DIMENSIONS))))
        return value


class TimelineUpdateRequest(BaseModel):
    scenes: List[TimelineSceneModel] = Field(description="Replacement scene list.")
    total_duration: Optional[float] = Field(
        default=None, ge=0, description="New total duration; unchanged when omitted.",
    )


class SceneInsertRequest(BaseModel):
    scene: TimelineSceneModel = Field(description="Scene to insert.")
    after_scene_id: Optional[str] = Field(
        default=None,
        description="Insert after this scene; appended when omitted or not found.",
    )


class GenerateRequest(BaseModel):
    """Optional subtitle style overrides for a render."""

    font_name: Optional[str] = Field(default=None, description="Caption font family.")
    font_size: Optional[int] = Field(default=None, gt=0, description="Caption font size.")
    primary_colour: Optional[str] = Field(default=None, description="ASS colour, e.g. &HFFFFFF.")
    outline_colour: Optional[str] = Field(default=None, description="ASS outline colour.")
    alignment: Optional[int] = Field(default=None, ge=1, le=9, description="ASS numpad alignment.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ProjectSummary(BaseModel):
    id: str = Field(description="Project identifier.")
    title: str = Field(description="Project title.")
    status: str = Field(description="Current project status.")
    created_at: float = Field(description="Creation time (Unix epoch seconds).")
    updated_at: float = Field(description="Last change (Unix epoch seconds).")


class ProjectResponse(ProjectSummary):
    """Full project state."""

    topic: str = Field(description="Project topic.")
    aspect_ratio: str = Field(description="Output aspect ratio.")
    script: List[ScriptSceneModel] = Field(description="Script scenes.")
    voiceover: Optional[VoiceoverModel] = Field(default=None, description="Voiceover, if uploaded.")
    timeline: TimelineModel = Field(description="Current timeline.")
    output: Optional[ProjectOutputModel] = Field(default=None, description="Render output.")
    error: Optional[str] = Field(default=None, description="Last error, when status is 'failed'.")
    timeline_problems: List[str] = Field(
        default_factory=list,
        description="Gaps, overlaps or coverage issues in the current timeline.",
    )


class GenerateResponse(BaseModel):
    success: bool = Field(description="Whether the render succeeded.")
    output: Optional[ProjectOutputModel] = Field(default=None, description="Render output.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is a message string, or an object with "error" and extra keys
      such as "missing_scenes" or "details"
    """

    detail: Any = Field(description="Error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
