"""Scene-to-audio alignment: give every script scene a time interval.

WHY: The script says *what* each scene narrates; the voiceover says *when*
it was actually spoken. The renderer needs both joined: one contiguous,
gapless interval per scene covering the whole audio, plus captions for
each interval. Matching free text to a transcript is fuzzy work, so a
language model proposes the boundaries. Its output is untrusted and
the timeline must be valid no matter what it returns.

HOW: One prompt lists every scene and every transcript segment with its
timestamps. The reply's first JSON array is validated with a JSON Schema
and then checked for count, order, positive length and coverage. Small
gaps or overlaps between neighbours are snapped shut; anything worse
discards the whole reply in favour of an even split of the duration.
Finally, each interval's words are chunked into captions.

RULES:
- The matching collaborator is called at most once per alignment
- Zero scenes → empty timeline with total_duration 0, no collaborator call
- Malformed replies are never partially trusted: the result is then
  exactly even_split(n, duration)
- Collaborator exceptions are logged and resolved by the fallback, never raised
- Output scenes are contiguous, ordered and cover [0, duration]
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Protocol, Sequence

import jsonschema

from reelsmith.config import ALIGNMENT_TOLERANCE_S, WORDS_PER_SUBTITLE
from reelsmith.core.ir import ScriptScene, Timeline, TimelineScene, Transcript, TranscriptSegment
from reelsmith.core.subtitles import chunk_words, words_in_interval

logger = logging.getLogger(__name__)

Interval = tuple[float, float]

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

SCENE_MAPPING_SCHEMA: dict = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "sceneIndex": {"type": "integer", "minimum": 0},
            "startTime": {"type": "number"},
            "endTime": {"type": "number"},
            "matchedSegments": {"type": "array", "items": {"type": "integer"}},
        },
        "required": ["sceneIndex", "startTime", "endTime"],
    },
}
"""Shape of the reply expected from the scene-matching collaborator."""


class TextCompleter(Protocol):
    """Anything that turns a prompt into a text reply (e.g. LLMClient)."""

    async def complete(self, prompt: str, max_tokens: int = ...) -> str:
        ...


def build_matching_prompt(
    scenes: Sequence[ScriptScene],
    segments: Sequence[TranscriptSegment],
    duration: float,
) -> str:
    """Build the scene-matching prompt sent to the language model."""
    scene_lines = "\n".join(
        '{}. "{}"'.format(i + 1, scene.text) for i, scene in enumerate(scenes)
    )
    segment_lines = "\n".join(
        "[{:.2f}s - {:.2f}s] {}".format(seg.start, seg.end, seg.text)
        for seg in segments
    )
    return (
        "Match these video scenes to the transcribed audio.\n\n"
        "SCENES (from script):\n"
        "{scenes}\n\n"
        "TRANSCRIPT WITH TIMESTAMPS:\n"
        "{segments}\n\n"
        "For each scene, find the corresponding start and end timestamps from the transcript.\n"
        "Scenes should be sequential and cover the entire audio duration ({duration}s).\n\n"
        "Return JSON:\n"
        "[\n"
        "  {{\n"
        '    "sceneIndex": 0,\n'
        '    "startTime": 0.0,\n'
        '    "endTime": 5.5,\n'
        '    "matchedSegments": [0, 1]\n'
        "  }}\n"
        "]"
    ).format(scenes=scene_lines, segments=segment_lines, duration=round(duration, 3))


def even_split(scene_count: int, duration: float) -> list[Interval]:
    """Divide [0, duration] into equal contiguous slices, one per scene.

    The last slice always ends exactly at ``duration`` so rounding never
    leaves a gap at the end of the video.
    """
    if scene_count <= 0:
        return []
    duration = max(duration, 0.0)
    step = duration / scene_count
    intervals = []
    for i in range(scene_count):
        start = i * step
        end = duration if i == scene_count - 1 else (i + 1) * step
        intervals.append((start, end))
    return intervals


def parse_scene_mappings(
    text: str,
    scene_count: int,
    duration: float,
    tolerance: float = ALIGNMENT_TOLERANCE_S,
) -> list[Interval] | None:
    """Validate a matching reply and turn it into contiguous intervals.

    WHY: The reply comes from a language model and must be treated as
    adversarial input. A subtly wrong timeline (a skipped scene, scenes in
    the wrong order, a hole in the middle) would ship silently, so the
    reply is either fully usable or rejected.

    HOW: Extract the first JSON array, validate it against
    SCENE_MAPPING_SCHEMA, then walk the entries checking index order and
    boundaries. Boundaries within ``tolerance`` of where they should be are
    snapped (first start → 0, last end → duration, each start → previous
    end).

    RULES:
    - Returns None for any malformed, miscounted, out-of-order,
      non-positive or non-covering reply
    - A returned list has exactly scene_count contiguous intervals
      covering [0, duration]

    Args:
        text: Raw reply text from the collaborator.
        scene_count: Number of script scenes.
        duration: Total audio duration in seconds.
        tolerance: Largest boundary discrepancy (seconds) that is snapped.

    Returns:
        The repaired intervals, or None when the reply is unusable.
    """
    match = _JSON_ARRAY_RE.search(text or "")
    if match is None:
        logger.warning("Scene matching reply contained no JSON array")
        return None

    try:
        mappings: Any = json.loads(match.group(0))
        jsonschema.validate(mappings, SCENE_MAPPING_SCHEMA)
    except (ValueError, jsonschema.ValidationError) as exc:
        logger.warning("Scene matching reply failed validation: %s", exc)
        return None

    if len(mappings) != scene_count:
        logger.warning(
            "Scene matching reply has %d entries for %d scenes",
            len(mappings), scene_count,
        )
        return None

    intervals: list[Interval] = []
    for position, mapping in enumerate(mappings):
        try:
            start = float(mapping["startTime"])
            end = float(mapping["endTime"])
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Scene %d has an unreadable boundary: %s", position, exc)
            return None
        if mapping["sceneIndex"] != position:
            logger.warning("Scene matching reply is out of order at entry %d", position)
            return None
        if not (math.isfinite(start) and math.isfinite(end)) or start >= end:
            logger.warning("Scene %d has an unusable interval [%s, %s]", position, start, end)
            return None

        expected_start = intervals[-1][1] if intervals else 0.0
        if abs(start - expected_start) > tolerance:
            logger.warning(
                "Scene %d starts at %.3fs, expected %.3fs", position, start, expected_start,
            )
            return None
        if end <= expected_start:
            logger.warning("Scene %d collapses after boundary snapping", position)
            return None
        intervals.append((expected_start, end))

    last_start, last_end = intervals[-1]
    if abs(last_end - duration) > tolerance or duration <= last_start:
        logger.warning(
            "Scene matching reply ends at %.3fs, audio is %.3fs", last_end, duration,
        )
        return None
    intervals[-1] = (last_start, duration)
    return intervals


def build_timeline(
    scenes: Sequence[ScriptScene],
    transcript: Transcript,
    intervals: Sequence[Interval],
    duration: float,
    words_per_chunk: int = WORDS_PER_SUBTITLE,
) -> Timeline:
    """Join script scenes, intervals and transcript words into a Timeline."""
    timeline_scenes = []
    last_index = len(intervals) - 1
    for index, (scene, (start, end)) in enumerate(zip(scenes, intervals)):
        scene_words = words_in_interval(
            transcript.words, start, end, include_end=index == last_index,
        )
        timeline_scenes.append(TimelineScene(
            id=scene.id,
            order=index,
            start_time=start,
            end_time=end,
            duration=end - start,
            scene_text=scene.text,
            scene_description=scene.visual_description,
            image_prompt="",
            image_path=None,
            image_source="ai-generated",
            subtitles=chunk_words(scene_words, start, words_per_chunk),
        ))
    return Timeline(total_duration=duration, scenes=timeline_scenes)


async def align_scenes(
    scenes: Sequence[ScriptScene],
    transcript: Transcript,
    matcher: TextCompleter | None = None,
    duration: float | None = None,
    words_per_chunk: int = WORDS_PER_SUBTITLE,
) -> Timeline:
    """Assign a time interval and captions to every script scene.

    Args:
        scenes: Ordered script scenes.
        transcript: Words, segments and duration of the voiceover.
        matcher: Optional text-completion collaborator used to propose
            scene boundaries. None means the even split is used directly.
        duration: Override for the audio duration (e.g. a probed value);
            defaults to ``transcript.duration``.
        words_per_chunk: Maximum words per caption chunk.

    Returns:
        A Timeline whose scenes cover [0, duration] without gaps.
    """
    if not scenes:
        return Timeline(total_duration=0.0, scenes=[])

    total = transcript.duration if duration is None else duration
    total = max(total, 0.0)
    intervals: list[Interval] | None = None

    if matcher is not None:
        prompt = build_matching_prompt(scenes, transcript.segments, total)
        try:
            reply = await matcher.complete(prompt, max_tokens=1000)
        except Exception:
            logger.exception("Scene matching call failed; using even split")
        else:
            intervals = parse_scene_mappings(reply, len(scenes), total)

    if intervals is None:
        logger.info("Aligning %d scenes by even split over %.2fs", len(scenes), total)
        intervals = even_split(len(scenes), total)
    else:
        logger.info("Aligned %d scenes from matching reply", len(scenes))

    return build_timeline(scenes, transcript, intervals, total, words_per_chunk)
