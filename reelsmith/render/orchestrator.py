"""Render a timeline into a video file with a single ffmpeg invocation.

WHY: The final video is an image slideshow timed to the timeline, laid
over the voiceover, letterboxed to the target aspect ratio, with captions
burned in. Doing it in one encoder pass keeps quality (one encode) and
makes failure handling simple: the output either exists completely or
the render failed.

HOW: render_video() checks inputs with the inventory validator, acquires
a sequence plan (manifest + SRT) as a scoped resource, runs ffmpeg once
with the concat demuxer and the audio as inputs and the scale/pad/
subtitles filter chain, then probes the output for its duration.

RULES:
- Precondition and encoder failures are returned as RenderResult values,
  never raised
- Scratch files are removed on every exit path
- A failed duration probe does not fail the render (duration 0.0)
- Output file name: video_<random hex>.mp4 inside request.output_dir
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from reelsmith.config import (
    ASPECT_RATIO_DIMENSIONS,
    AUDIO_BITRATE,
    AUDIO_CODEC,
    DEFAULT_ALIGNMENT,
    DEFAULT_ASPECT_RATIO,
    DEFAULT_BORDER_STYLE,
    DEFAULT_FONT_NAME,
    DEFAULT_FONT_SIZE,
    DEFAULT_OUTLINE,
    DEFAULT_OUTLINE_COLOUR,
    DEFAULT_PRIMARY_COLOUR,
    DEFAULT_SHADOW,
    RENDER_TIMEOUT_S,
    VIDEO_CODEC,
    VIDEO_CRF,
    VIDEO_PRESET,
)
from reelsmith.core.ir import TimelineScene
from reelsmith.render.ffmpeg import FFmpegError, probe_media, run_ffmpeg
from reelsmith.render.inventory import check_inventory
from reelsmith.render.plan import remove_quietly, sequence_plan

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Styling and filters
# ---------------------------------------------------------------------------

@dataclass
class SubtitleStyle:
    """Burned-in caption appearance, expressed as ASS style overrides."""

    font_name: str = DEFAULT_FONT_NAME
    font_size: int = DEFAULT_FONT_SIZE
    primary_colour: str = DEFAULT_PRIMARY_COLOUR
    outline_colour: str = DEFAULT_OUTLINE_COLOUR
    border_style: int = DEFAULT_BORDER_STYLE
    outline: int = DEFAULT_OUTLINE
    shadow: int = DEFAULT_SHADOW
    alignment: int = DEFAULT_ALIGNMENT

    def force_style(self) -> str:
        """The value of the subtitles filter's force_style option."""
        return ",".join([
            "FontName={}".format(self.font_name),
            "Fontsize={}".format(self.font_size),
            "PrimaryColour={}".format(self.primary_colour),
            "OutlineColour={}".format(self.outline_colour),
            "BorderStyle={}".format(self.border_style),
            "Outline={}".format(self.outline),
            "Shadow={}".format(self.shadow),
            "Alignment={}".format(self.alignment),
        ])


def get_dimensions(aspect_ratio: str) -> tuple[int, int]:
    """Output (width, height) for an aspect ratio name such as "9:16"."""
    try:
        return ASPECT_RATIO_DIMENSIONS[aspect_ratio]
    except KeyError:
        raise ValueError(
            "Unsupported aspect ratio {!r}; expected one of {}".format(
                aspect_ratio, ", ".join(sorted(ASPECT_RATIO_DIMENSIONS)))
        ) from None


def _escape_filter_path(path: Path | str) -> str:
    # Colons separate filter options and quotes delimit the value.
    posix = Path(path).as_posix()
    return posix.replace("\\", "/").replace(":", "\\:").replace("'", "\\'")


def build_video_filter(
    width: int,
    height: int,
    subtitle_path: Path | str,
    style: SubtitleStyle | None = None,
) -> str:
    """Scale-to-fit, pad to exact size, then burn in the subtitle file."""
    style = style or SubtitleStyle()
    return (
        "scale={w}:{h}:force_original_aspect_ratio=decrease,"
        "pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,"
        "subtitles='{path}':force_style='{style}'"
    ).format(w=width, h=height, path=_escape_filter_path(subtitle_path), style=style.force_style())


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------

@dataclass
class RenderRequest:
    """Everything one render needs."""

    scenes: Sequence[TimelineScene]
    audio_path: str
    output_dir: Path | str
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    subtitle_style: SubtitleStyle | None = None
    work_dir: Path | str | None = None
    """Where scratch files go; defaults to output_dir."""


@dataclass
class RenderResult:
    """Outcome of render_video()."""

    success: bool
    video_path: str | None = None
    duration: float = 0.0
    error: str | None = None
    missing_scenes: list[str] = field(default_factory=list)


def build_render_args(
    manifest_path: Path | str,
    audio_path: str,
    video_filter: str,
    output_path: Path | str,
) -> list[str]:
    """ffmpeg arguments for the single encoder pass."""
    return [
        "-y",
        "-f", "concat", "-safe", "0", "-i", str(manifest_path),
        "-i", str(audio_path),
        "-vf", video_filter,
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-crf", str(VIDEO_CRF),
        "-pix_fmt", "yuv420p",
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-shortest",
        str(output_path),
    ]


async def render_video(
    request: RenderRequest,
    timeout: float | None = RENDER_TIMEOUT_S,
) -> RenderResult:
    """Render the timeline's scenes over the voiceover.

    Args:
        request: Scenes, audio, output location and styling.
        timeout: Encoder time limit in seconds; None or <= 0 disables it.

    Returns:
        RenderResult. On success video_path points at the finished file.
    """
    try:
        width, height = get_dimensions(request.aspect_ratio)
    except ValueError as exc:
        return RenderResult(success=False, error=str(exc))

    if not request.scenes:
        return RenderResult(success=False, error="Timeline has no scenes")

    collapsed = [s.id for s in request.scenes if s.end_time <= s.start_time]
    if collapsed:
        return RenderResult(
            success=False,
            error="Scenes without a positive duration: {}".format(", ".join(collapsed)),
        )

    report = check_inventory(request.scenes, request.audio_path)
    if not report.ok:
        return RenderResult(
            success=False,
            error=report.describe(),
            missing_scenes=list(report.missing_scenes),
        )

    output_dir = Path(request.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "video_{}.mp4".format(uuid.uuid4().hex)
    work_dir = Path(request.work_dir) if request.work_dir is not None else output_dir

    logger.info(
        "Rendering %d scenes at %dx%d to %s", len(request.scenes), width, height, output_path,
    )
    try:
        with sequence_plan(request.scenes, work_dir) as plan:
            video_filter = build_video_filter(width, height, plan.subtitle_path, request.subtitle_style)
            args = build_render_args(plan.manifest_path, request.audio_path, video_filter, output_path)
            await run_ffmpeg(args, timeout=timeout)
    except FFmpegError as exc:
        logger.error("Render failed: %s", exc)
        remove_quietly(output_path)
        return RenderResult(success=False, error=str(exc))

    duration = 0.0
    try:
        duration = (await probe_media(str(output_path))).duration
    except FFmpegError as exc:
        logger.warning("Could not probe rendered video %s: %s", output_path, exc)

    logger.info("Rendered %s (%.2fs)", output_path, duration)
    return RenderResult(success=True, video_path=str(output_path), duration=duration)
