"""Intermediate representation dataclasses for transcripts and timelines.

WHY: The speech-to-text service returns words and segments, the script
generator returns ordered scenes, and the renderer needs timed scenes
with images and captions. The IR gives each of these a single well-typed
form so alignment, editing, rendering and persistence all speak the same
language.

HOW: Two groups of dataclasses:
  Word, TranscriptSegment, Transcript        : what was said, and when
  ScriptScene, SubtitleChunk, TimelineScene,
  Timeline, ProjectOutput                    : what is shown, and when
Each class has to_dict()/from_dict() so projects can be stored as JSON
and exchanged over the HTTP API.

RULES:
- All times are float seconds from the start of the voiceover
- TimelineScene.order is a dense 0-based index matching list position
- TimelineScene.duration == end_time - start_time
- image_path is None until an image has been attached to the scene
- from_dict() accepts exactly what to_dict() produces
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class Word:
    """One transcribed word with its audio timing.

    RULES:
    - text may carry leading/trailing whitespace from the transcriber
    - start <= end, both within [0, transcript duration]
    """

    text: str
    start: float
    end: float

    @classmethod
    def from_dict(cls, data: dict) -> Word:
        return cls(
            text=data.get("text", data.get("word", "")),
            start=float(data["start"]),
            end=float(data["end"]),
        )


@dataclass
class TranscriptSegment:
    """A phrase-level transcription unit, coarser than a word."""

    index: int
    start: float
    end: float
    text: str

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptSegment:
        return cls(
            index=int(data.get("index", data.get("id", 0))),
            start=float(data["start"]),
            end=float(data["end"]),
            text=str(data.get("text", "")).strip(),
        )


@dataclass
class Transcript:
    """The complete transcription of one voiceover file.

    WHY: The aligner needs segments (to show the matching service what was
    said when) and words (to build captions). Both come from one
    transcription call and travel together.

    RULES:
    - words and segments are ordered by time
    - duration covers the whole audio, not just the last word
    """

    full_text: str
    words: list[Word] = field(default_factory=list)
    segments: list[TranscriptSegment] = field(default_factory=list)
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Transcript:
        return cls(
            full_text=data.get("full_text", ""),
            words=[Word.from_dict(w) for w in data.get("words", [])],
            segments=[TranscriptSegment.from_dict(s) for s in data.get("segments", [])],
            duration=float(data.get("duration", 0.0)),
        )


@dataclass
class ScriptScene:
    """One scene of the generated script, before any timing is known."""

    id: str
    text: str
    visual_description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ScriptScene:
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            visual_description=data.get(
                "visual_description", data.get("visualDescription", "")
            ),
        )


@dataclass
class SubtitleChunk:
    """A short on-screen caption taken from consecutive transcribed words."""

    id: str
    start: float
    end: float
    text: str

    @classmethod
    def from_dict(cls, data: dict) -> SubtitleChunk:
        return cls(
            id=str(data["id"]),
            start=float(data["start"]),
            end=float(data["end"]),
            text=data.get("text", ""),
        )


@dataclass
class TimelineScene:
    """A timed scene: one image held on screen for one span of narration.

    RULES:
    - image_source is one of "ai-generated", "stock", "uploaded", "google"
    - subtitles are ordered and contained in [start_time, end_time]
    """

    id: str
    order: int
    start_time: float
    end_time: float
    duration: float
    scene_text: str = ""
    scene_description: str = ""
    image_prompt: str = ""
    image_path: str | None = None
    image_source: str = "ai-generated"
    subtitles: list[SubtitleChunk] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> TimelineScene:
        start = float(data.get("start_time", 0.0))
        end = float(data.get("end_time", start))
        return cls(
            id=str(data["id"]),
            order=int(data.get("order", 0)),
            start_time=start,
            end_time=end,
            duration=float(data.get("duration", end - start)),
            scene_text=data.get("scene_text", ""),
            scene_description=data.get("scene_description", ""),
            image_prompt=data.get("image_prompt", ""),
            image_path=data.get("image_path") or None,
            image_source=data.get("image_source", "ai-generated"),
            subtitles=[SubtitleChunk.from_dict(s) for s in data.get("subtitles", [])],
        )


@dataclass
class Timeline:
    """The ordered, timed scenes of one project."""

    total_duration: float = 0.0
    scenes: list[TimelineScene] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Timeline:
        return cls(
            total_duration=float(data.get("total_duration", 0.0)),
            scenes=[TimelineScene.from_dict(s) for s in data.get("scenes", [])],
        )


@dataclass
class ProjectOutput:
    """The deliverable of a successful render.

    RULES:
    - Only created when the whole pipeline succeeded
    - thumbnail_path is None when thumbnail extraction failed
    - generated_at is an epoch timestamp
    """

    video_path: str
    generated_at: float
    duration: float = 0.0
    thumbnail_path: str | None = None
    hashtags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ProjectOutput:
        return cls(
            video_path=data["video_path"],
            generated_at=float(data.get("generated_at", 0.0)),
            duration=float(data.get("duration", 0.0)),
            thumbnail_path=data.get("thumbnail_path"),
            hashtags=list(data.get("hashtags", [])),
        )
