"""Manual timeline edits: replace, insert, remove, attach images.

WHY: An aligned timeline is a starting point. Users retime scenes, add an
extra visual beat or drop one entirely before rendering, and every edit
must leave ``order`` dense and consistent with list position.

HOW: Each function mutates the Timeline in place and renumbers. The
editor does not enforce contiguity (a user may leave a gap while working);
timeline_problems() reports such issues so callers can surface them.

RULES:
- After every edit, scene.order == position for all scenes
- duration is recomputed from start_time/end_time on every inserted scene
- Unknown scene ids raise KeyError, except insert's anchor, which appends
"""

from __future__ import annotations

import logging
from typing import Sequence

from reelsmith.core.ir import Timeline, TimelineScene

logger = logging.getLogger(__name__)

# Tolerance used when comparing boundaries for problem reports.
_EPSILON = 1e-3


def renumber(timeline: Timeline) -> Timeline:
    """Reset every scene's order to its list position."""
    for index, scene in enumerate(timeline.scenes):
        scene.order = index
    return timeline


def _index_of(timeline: Timeline, scene_id: str) -> int:
    for index, scene in enumerate(timeline.scenes):
        if scene.id == scene_id:
            return index
    raise KeyError(scene_id)


def insert_scene(
    timeline: Timeline,
    scene: TimelineScene,
    after_scene_id: str | None = None,
) -> Timeline:
    """Insert a scene after ``after_scene_id``, or append it.

    An anchor that is not in the timeline also appends, matching how the
    editor behaves when the anchor scene was removed concurrently.
    """
    if any(s.id == scene.id for s in timeline.scenes):
        raise ValueError("Scene id already in timeline: {}".format(scene.id))

    scene.duration = scene.end_time - scene.start_time
    position = len(timeline.scenes)
    if after_scene_id is not None:
        try:
            position = _index_of(timeline, after_scene_id) + 1
        except KeyError:
            logger.info("Anchor scene %s not found; appending %s", after_scene_id, scene.id)
    timeline.scenes.insert(position, scene)
    return renumber(timeline)


def remove_scene(timeline: Timeline, scene_id: str) -> TimelineScene:
    """Remove a scene by id and return it."""
    removed = timeline.scenes.pop(_index_of(timeline, scene_id))
    renumber(timeline)
    return removed


def replace_scenes(
    timeline: Timeline,
    scenes: Sequence[TimelineScene],
    total_duration: float | None = None,
) -> Timeline:
    """Replace all scenes (and optionally the total duration)."""
    ids = [s.id for s in scenes]
    if len(set(ids)) != len(ids):
        raise ValueError("Duplicate scene ids in timeline")
    timeline.scenes = list(scenes)
    for scene in timeline.scenes:
        scene.duration = scene.end_time - scene.start_time
    if total_duration is not None:
        timeline.total_duration = total_duration
    return renumber(timeline)


def set_scene_image(
    timeline: Timeline,
    scene_id: str,
    image_path: str,
    image_source: str = "uploaded",
) -> TimelineScene:
    """Attach an image to a scene."""
    scene = timeline.scenes[_index_of(timeline, scene_id)]
    scene.image_path = image_path
    scene.image_source = image_source
    return scene


def timeline_problems(timeline: Timeline) -> list[str]:
    """Describe every ordering, contiguity or coverage problem.

    Returns:
        Human-readable problem descriptions; empty when the timeline is a
        clean, gapless cover of [0, total_duration].
    """
    problems: list[str] = []
    scenes = timeline.scenes
    if not scenes:
        return problems

    for index, scene in enumerate(scenes):
        if scene.order != index:
            problems.append("Scene {} has order {} at position {}".format(
                scene.id, scene.order, index))
        if scene.end_time <= scene.start_time:
            problems.append("Scene {} has non-positive duration".format(scene.id))
        for chunk in scene.subtitles:
            if (chunk.start < scene.start_time - _EPSILON
                    or chunk.end > scene.end_time + _EPSILON):
                problems.append("Subtitle {} falls outside scene {}".format(
                    chunk.id, scene.id))

    if abs(scenes[0].start_time) > _EPSILON:
        problems.append("First scene starts at {:.3f}s, not 0".format(scenes[0].start_time))
    for prev, cur in zip(scenes, scenes[1:]):
        gap = cur.start_time - prev.end_time
        if gap > _EPSILON:
            problems.append("Gap of {:.3f}s between {} and {}".format(gap, prev.id, cur.id))
        elif gap < -_EPSILON:
            problems.append("Overlap of {:.3f}s between {} and {}".format(-gap, prev.id, cur.id))
    if abs(scenes[-1].end_time - timeline.total_duration) > _EPSILON:
        problems.append("Last scene ends at {:.3f}s, audio is {:.3f}s".format(
            scenes[-1].end_time, timeline.total_duration))
    return problems
