"""Thread-safe project store with optional JSON persistence.

WHY: A video project moves through several requests (script, voiceover,
images, render) spread over minutes or days. The HTTP API needs one place
that holds each project's script, timeline, media paths, output and
status, and that makes the "start rendering" transition atomic so two
generate requests cannot render the same project at once.

HOW: Three components work together:
  ProjectStatus: enum of valid project states
  Project: dataclass holding script, voiceover, timeline and output
  ProjectStore: dict-based store guarded by threading.Lock, with
    create/get/list/save/update/claim/delete and optional one-file-per-
    project JSON snapshots that are reloaded at construction

RULES:
- All store mutations are protected by threading.Lock
- claim_for_render() is a compare-and-swap: only a project that is not
  already PROCESSING moves to PROCESSING, and the change is persisted
  before the call returns
- Snapshots are written under the lock, atomically (temp file + rename)
- get_project() returns the live instance; call save_project() after
  mutating it
- Project IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import enum
import json
import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from reelsmith.config import DEFAULT_ASPECT_RATIO
from reelsmith.core.ir import ProjectOutput, ScriptScene, Timeline, Transcript

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROJECTS = 1000


class ProjectStatus(str, enum.Enum):
    """Valid states for a video project.

    RULES:
    - draft: created without a script
    - script-ready: script scenes present, no voiceover yet
    - voiceover-uploaded: audio transcribed and aligned into a timeline
    - images-ready: every timeline scene has an image
    - processing: a render is running (set only by claim_for_render)
    - completed: output video ready for download
    - failed: the last voiceover or render attempt failed
    """

    DRAFT = "draft"
    SCRIPT_READY = "script-ready"
    VOICEOVER_UPLOADED = "voiceover-uploaded"
    IMAGES_READY = "images-ready"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RenderInProgressError(Exception):
    """Raised when a project is already rendering."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__("Project {} is already being rendered".format(project_id))


@dataclass
class VoiceoverInfo:
    """The uploaded narration audio and what was learned from it."""

    audio_path: str
    duration: float
    transcript: Optional[Transcript] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audio_path": self.audio_path,
            "duration": self.duration,
            "transcript": self.transcript.to_dict() if self.transcript else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> VoiceoverInfo:
        transcript = data.get("transcript")
        return cls(
            audio_path=data["audio_path"],
            duration=float(data.get("duration", 0.0)),
            transcript=Transcript.from_dict(transcript) if transcript else None,
        )


@dataclass
class Project:
    """State of one video project.

    RULES:
    - status is a ProjectStatus
    - output is only set while status is COMPLETED
    - error is only set while status is FAILED
    """

    id: str
    title: str
    status: ProjectStatus
    created_at: float
    updated_at: float
    topic: str = ""
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    script: List[ScriptScene] = field(default_factory=list)
    voiceover: Optional[VoiceoverInfo] = None
    timeline: Timeline = field(default_factory=Timeline)
    output: Optional[ProjectOutput] = None
    error: Optional[str] = None

    @property
    def script_text(self) -> str:
        return " ".join(scene.text for scene in self.script)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "topic": self.topic,
            "aspect_ratio": self.aspect_ratio,
            "script": [
                {"id": s.id, "text": s.text, "visual_description": s.visual_description}
                for s in self.script
            ],
            "voiceover": self.voiceover.to_dict() if self.voiceover else None,
            "timeline": self.timeline.to_dict(),
            "output": self.output.to_dict() if self.output else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        voiceover = data.get("voiceover")
        output = data.get("output")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            status=ProjectStatus(data.get("status", ProjectStatus.DRAFT.value)),
            created_at=float(data.get("created_at", 0.0)),
            updated_at=float(data.get("updated_at", 0.0)),
            topic=data.get("topic", ""),
            aspect_ratio=data.get("aspect_ratio", DEFAULT_ASPECT_RATIO),
            script=[ScriptScene.from_dict(s) for s in data.get("script", [])],
            voiceover=VoiceoverInfo.from_dict(voiceover) if voiceover else None,
            timeline=Timeline.from_dict(data.get("timeline") or {}),
            output=ProjectOutput.from_dict(output) if output else None,
            error=data.get("error"),
        )


class ProjectStore:
    """Thread-safe store for video projects.

    WHY: Request handlers for the same project can run concurrently (a
    user double-clicks "generate", or edits the timeline while a render is
    starting). A central store with one lock makes status transitions
    race-free and gives a single place for persistence.

    HOW: Projects live in a plain dict keyed by ID. When data_dir is set,
    every mutation also writes <data_dir>/<id>.json and existing snapshots
    are loaded at construction. A project left in PROCESSING by a crashed
    process is reloaded as FAILED.

    RULES:
    - All public methods that touch state acquire self._lock
    - get_project() returns None for missing IDs (no exceptions)
    - create_project() raises ValueError when max_projects is reached
    """

    def __init__(
        self,
        data_dir: Optional[str] = None,
        max_projects: int = DEFAULT_MAX_PROJECTS,
    ) -> None:
        self._projects: Dict[str, Project] = {}
        self._lock = threading.Lock()
        self.max_projects = max_projects
        self._data_dir = Path(data_dir) if data_dir else None
        if self._data_dir is not None:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _snapshot_path(self, project_id: str) -> Path:
        return self._data_dir / "{}.json".format(project_id)

    def _write_snapshot(self, project: Project) -> None:
        """Write one project's JSON snapshot. Caller holds the lock."""
        if self._data_dir is None:
            return
        path = self._snapshot_path(project.id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(project.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, path)

    def _load(self) -> None:
        for path in sorted(self._data_dir.glob("*.json")):
            try:
                project = Project.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("Skipping unreadable project snapshot %s: %s", path, exc)
                continue
            if project.status == ProjectStatus.PROCESSING:
                project.status = ProjectStatus.FAILED
                project.error = "Render interrupted by a restart"
                self._write_snapshot(project)
            self._projects[project.id] = project
        logger.info("Loaded %d project(s) from %s", len(self._projects), self._data_dir)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_project(
        self,
        title: str,
        topic: str = "",
        script: Optional[List[ScriptScene]] = None,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
    ) -> Project:
        """Create a project; it starts as SCRIPT_READY when a script is given."""
        with self._lock:
            if len(self._projects) >= self.max_projects:
                raise ValueError(
                    "Maximum number of projects ({}) reached".format(self.max_projects)
                )

            now = time.time()
            project = Project(
                id=uuid.uuid4().hex,
                title=title,
                status=ProjectStatus.SCRIPT_READY if script else ProjectStatus.DRAFT,
                created_at=now,
                updated_at=now,
                topic=topic,
                aspect_ratio=aspect_ratio,
                script=list(script or []),
            )
            self._projects[project.id] = project
            self._write_snapshot(project)

        logger.info("Created project %s (%s)", project.id, title)
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(project_id)

    def list_projects(self) -> List[Project]:
        """All projects, oldest first."""
        with self._lock:
            return sorted(self._projects.values(), key=lambda p: p.created_at)

    def save_project(self, project: Project) -> Project:
        """Store a (mutated) project, bump updated_at and persist it."""
        with self._lock:
            project.updated_at = time.time()
            self._projects[project.id] = project
            self._write_snapshot(project)
            return project

    def update_status(
        self,
        project_id: str,
        status: ProjectStatus,
        error: Optional[str] = None,
    ) -> Optional[Project]:
        """Set a project's status; error is kept only for FAILED.

        Returns:
            The updated Project, or None if project_id is unknown.
        """
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                return None
            project.status = status
            project.error = error if status == ProjectStatus.FAILED else None
            project.updated_at = time.time()
            self._write_snapshot(project)
            return project

    def claim_for_render(self, project_id: str) -> Project:
        """Atomically move a project to PROCESSING.

        If the snapshot cannot be written the previous status is restored.

        Raises:
            KeyError: Unknown project.
            RenderInProgressError: The project is already PROCESSING.
            OSError: The snapshot write failed.
        """
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise KeyError(project_id)
            if project.status == ProjectStatus.PROCESSING:
                raise RenderInProgressError(project_id)
            previous = (project.status, project.error, project.updated_at)
            project.status = ProjectStatus.PROCESSING
            project.error = None
            project.updated_at = time.time()
            try:
                self._write_snapshot(project)
            except OSError:
                project.status, project.error, project.updated_at = previous
                raise

        logger.info("Project %s claimed for rendering", project_id)
        return project

    def delete_project(self, project_id: str) -> bool:
        """Remove a project and its snapshot. Returns False if unknown."""
        with self._lock:
            project = self._projects.pop(project_id, None)
            if project is None:
                return False
            if self._data_dir is not None:
                try:
                    self._snapshot_path(project_id).unlink()
                except FileNotFoundError:
                    pass

        logger.info("Deleted project %s", project_id)
        return True
