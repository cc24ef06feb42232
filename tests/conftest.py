"""Shared test fixtures for the reelsmith test suite.

WHY: Alignment, rendering, pipeline and API tests all need the same small
voiceover: a three-scene script and a 9-second transcript whose words are
evenly spaced, so expected scene/word assignments are easy to reason about.

HOW: Pytest fixtures provide the script scenes, the transcript, and
helpers that create real (tiny) image and audio files under tmp_path for
tests that go through the media inventory checks.

RULES:
- Word i spans [i * 0.5, i * 0.5 + 0.4]; 18 words over 9.0 seconds
- Three segments of 3 seconds each, six words per segment
- No test needs a real ffmpeg binary or network access
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from reelsmith.core.ir import (
    ScriptScene,
    SubtitleChunk,
    Timeline,
    TimelineScene,
    Transcript,
    TranscriptSegment,
    Word,
)

WORD_TEXTS = [
    "Octopuses", "have", "three", "hearts", "and", "blue",
    "blood", "that", "carries", "copper", "instead", "of",
    "iron", "so", "they", "thrive", "in", "cold",
]

SCRIPT_TEXTS = [
    "Octopuses have three hearts and blue",
    "blood that carries copper instead of",
    "iron so they thrive in cold",
]


def make_words() -> List[Word]:
    return [
        Word(text=text, start=i * 0.5, end=i * 0.5 + 0.4)
        for i, text in enumerate(WORD_TEXTS)
    ]


def make_transcript() -> Transcript:
    words = make_words()
    segments = [
        TranscriptSegment(index=i, start=i * 3.0, end=i * 3.0 + 2.9, text=SCRIPT_TEXTS[i])
        for i in range(3)
    ]
    return Transcript(
        full_text=" ".join(WORD_TEXTS),
        words=words,
        segments=segments,
        duration=9.0,
    )


def make_script() -> List[ScriptScene]:
    return [
        ScriptScene(id="scene-{}".format(i + 1), text=text, visual_description="shot {}".format(i + 1))
        for i, text in enumerate(SCRIPT_TEXTS)
    ]


def make_timeline(image_paths=None, total: float = 9.0) -> Timeline:
    """Three contiguous 3-second scenes, optionally with images attached."""
    image_paths = image_paths or [None, None, None]
    scenes = []
    for i in range(3):
        start = i * 3.0
        scenes.append(TimelineScene(
            id="scene-{}".format(i + 1),
            order=i,
            start_time=start,
            end_time=start + 3.0,
            duration=3.0,
            scene_text=SCRIPT_TEXTS[i],
            image_path=image_paths[i],
            subtitles=[SubtitleChunk(
                id="sub_{:.3f}_0".format(start),
                start=start,
                end=start + 1.9,
                text=" ".join(WORD_TEXTS[i * 6:i * 6 + 4]),
            )],
        ))
    return Timeline(total_duration=total, scenes=scenes)


def write_file(path: Path, content: bytes = b"data") -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return str(path)


@pytest.fixture
def transcript() -> Transcript:
    return make_transcript()


@pytest.fixture
def script_scenes() -> List[ScriptScene]:
    return make_script()


@pytest.fixture
def image_files(tmp_path) -> List[str]:
    """Three small files standing in for scene images."""
    return [write_file(tmp_path / "img" / "scene{}.png".format(i + 1)) for i in range(3)]


@pytest.fixture
def audio_file(tmp_path) -> str:
    return write_file(tmp_path / "audio" / "voiceover.mp3", b"ID3 fake audio")


@pytest.fixture
def words() -> List[Word]:
    return make_words()


@pytest.fixture
def timeline_factory():
    """Factory for the three-scene test timeline (see make_timeline)."""
    return make_timeline
