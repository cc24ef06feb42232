"""Caption chunking and SRT generation.

WHY: Word-level timestamps are too fine for on-screen captions and whole
scenes are too coarse. Short-form video reads best with a few words at a
time, so each scene's words are grouped into small chunks that appear and
disappear exactly when those words are spoken.

HOW: words_in_interval() picks the words spoken inside one scene,
chunk_words() slices them into fixed-size groups, and generate_srt()
writes all chunks of a video as numbered SRT cues for the burn-in step.

RULES:
- A word belongs to [start, end) when it starts inside the interval and
  also finishes by its end, so no word lands in two scenes
- Chunk start/end are copied from the first/last word, never adjusted
- Chunk ids are "sub_{scene_start:.3f}_{index}", unique within a scene
- SRT cues are "index\\nHH:MM:SS,mmm --> HH:MM:SS,mmm\\ntext\\n",
  separated by one blank line
"""

from __future__ import annotations

from typing import Iterable

from reelsmith.config import WORDS_PER_SUBTITLE
from reelsmith.core.ir import SubtitleChunk, Word
from reelsmith.core.timecode import seconds_to_srt_time


def words_in_interval(
    words: Iterable[Word],
    start: float,
    end: float,
    include_end: bool = False,
) -> list[Word]:
    """Return the words spoken inside [start, end).

    Args:
        words: Ordered transcript words.
        start: Interval start (inclusive).
        end: Interval end (exclusive for word starts).
        include_end: Also admit words starting exactly at ``end``. Used for
            the final scene so a zero-length word at the very end of the
            audio is not lost.

    Returns:
        The matching words, in their original order.
    """
    selected = []
    for word in words:
        if word.start < start or word.end > end:
            continue
        if word.start < end or (include_end and word.start == end):
            selected.append(word)
    return selected


def chunk_words(
    words: list[Word],
    scene_start: float,
    words_per_chunk: int = WORDS_PER_SUBTITLE,
) -> list[SubtitleChunk]:
    """Group a scene's words into caption chunks of up to N words.

    Args:
        words: The scene's words, already ordered and filtered.
        scene_start: Start time of the owning scene (used in chunk ids).
        words_per_chunk: Maximum words per caption.

    Returns:
        Ordered, non-overlapping SubtitleChunk objects. Empty input gives
        an empty list.
    """
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be at least 1")

    chunks: list[SubtitleChunk] = []
    for chunk_index, offset in enumerate(range(0, len(words), words_per_chunk)):
        group = words[offset:offset + words_per_chunk]
        text = " ".join(w.text.strip() for w in group if w.text.strip())
        chunks.append(SubtitleChunk(
            id="sub_{:.3f}_{}".format(scene_start, chunk_index),
            start=group[0].start,
            end=group[-1].end,
            text=text,
        ))
    return chunks


def generate_srt(chunks: Iterable[SubtitleChunk]) -> str:
    """Render caption chunks as SRT file content (1-based cue numbers)."""
    cues = []
    for index, chunk in enumerate(chunks, 1):
        cues.append("{}\n{} --> {}\n{}\n".format(
            index,
            seconds_to_srt_time(chunk.start),
            seconds_to_srt_time(chunk.end),
            chunk.text,
        ))
    return "\n".join(cues)
