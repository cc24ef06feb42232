"""Concat manifest and subtitle file preparation for one render.

WHY: The encoder reads its image sequence from a concat-demuxer manifest
and its captions from an SRT file. Both are scratch files that must be
unique per render (two projects may render at once) and must disappear
whether the render succeeds or fails.

HOW: build_concat_manifest() and collect_subtitles() are pure functions.
sequence_plan() is a context manager that writes both files under fresh
random names, yields their paths, and removes them on exit.

RULES:
- Manifest paths are absolute, posix-style and single-quote escaped
- The last image is listed twice: the concat demuxer ignores the final
  entry's duration unless another file line follows it
- Cleanup failures are logged, never raised
"""

from __future__ import annotations

import contextlib
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from reelsmith.core.ir import SubtitleChunk, TimelineScene
from reelsmith.core.subtitles import generate_srt

logger = logging.getLogger(__name__)


@dataclass
class SequencePlan:
    """Paths of the scratch files backing one render."""

    manifest_path: Path
    subtitle_path: Path
    plan_id: str


def _quote_concat_path(path: str) -> str:
    posix = Path(path).resolve().as_posix()
    return "'{}'".format(posix.replace("'", "'\\''"))


def build_concat_manifest(scenes: Sequence[TimelineScene]) -> str:
    """Build concat-demuxer manifest text holding each image for its scene duration.

    Raises:
        ValueError: A scene has no image path.
    """
    lines: list[str] = []
    for scene in scenes:
        if not scene.image_path:
            raise ValueError("Scene {} has no image".format(scene.id))
        lines.append("file {}".format(_quote_concat_path(scene.image_path)))
        lines.append("duration {:.3f}".format(scene.duration))
    if scenes:
        lines.append("file {}".format(_quote_concat_path(scenes[-1].image_path)))
    return "\n".join(lines) + "\n" if lines else ""


def collect_subtitles(scenes: Sequence[TimelineScene]) -> list[SubtitleChunk]:
    """All caption chunks of all scenes, in chronological order."""
    chunks = [chunk for scene in scenes for chunk in scene.subtitles]
    return sorted(chunks, key=lambda c: (c.start, c.end))


def remove_quietly(path: str | Path) -> None:
    """Delete a file if it exists; other failures are only logged."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)


@contextlib.contextmanager
def sequence_plan(scenes: Sequence[TimelineScene], work_dir: str | Path) -> Iterator[SequencePlan]:
    """Write manifest and subtitles for a render and remove them afterwards.

    Args:
        scenes: Ordered timeline scenes, all with images.
        work_dir: Directory for the scratch files (created if needed).

    Yields:
        SequencePlan with the two file paths.
    """
    work = Path(work_dir)
    work.mkdir(parents=True, exist_ok=True)
    plan_id = uuid.uuid4().hex
    plan = SequencePlan(
        manifest_path=work / "concat_{}.txt".format(plan_id),
        subtitle_path=work / "subtitles_{}.srt".format(plan_id),
        plan_id=plan_id,
    )
    try:
        plan.manifest_path.write_text(build_concat_manifest(scenes), encoding="utf-8")
        plan.subtitle_path.write_text(generate_srt(collect_subtitles(scenes)), encoding="utf-8")
        yield plan
    finally:
        remove_quietly(plan.manifest_path)
        remove_quietly(plan.subtitle_path)
