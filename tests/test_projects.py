"""Unit tests for the project store.

WHY: The project store is the single source of truth for the HTTP API.
A lost update, a double render claim or a snapshot that cannot be read
back would leave projects stuck or render the same video twice.

HOW: Tests are organized by class, one per concern:
  - TestProjectCreation: create_project basics and the project cap
  - TestProjectRetrieval: get_project and list_projects
  - TestStatusUpdates: update_status and the error field
  - TestRenderClaim: claim_for_render compare-and-swap
  - TestPersistence: snapshots, reload and interrupted renders
  - TestThreadSafety: concurrent claims and creates

RULES:
- Each test creates its own ProjectStore instance
- Persistence tests use tmp_path as the data directory
"""

from __future__ import annotations

import json
import threading
import time
from unittest.mock import patch

import pytest

from reelsmith.core.ir import ProjectOutput, TimelineScene
from reelsmith.server.projects import (
    Project,
    ProjectStatus,
    ProjectStore,
    RenderInProgressError,
    VoiceoverInfo,
)


# ---------------------------------------------------------------------------
# TestProjectCreation
# ---------------------------------------------------------------------------


class TestProjectCreation:
    """ProjectStore.create_project() starts a project in the right state."""

    def test_without_script_is_draft(self):
        project = ProjectStore().create_project("Octopus facts")
        assert project.status == ProjectStatus.DRAFT
        assert project.script == []
        assert project.aspect_ratio == "9:16"

    def test_with_script_is_script_ready(self, script_scenes):
        project = ProjectStore().create_project("Octopus facts", script=script_scenes)
        assert project.status == ProjectStatus.SCRIPT_READY
        assert [s.id for s in project.script] == ["scene-1", "scene-2", "scene-3"]

    def test_unique_ids_and_timestamps(self):
        store = ProjectStore()
        before = time.time()
        first = store.create_project("a")
        second = store.create_project("b")
        assert first.id != second.id
        assert first.created_at >= before
        assert first.updated_at == first.created_at

    def test_script_text_joins_scenes(self, script_scenes):
        project = ProjectStore().create_project("x", script=script_scenes)
        assert project.script_text.startswith("Octopuses have three hearts and blue blood")

    def test_cap_reached(self):
        store = ProjectStore(max_projects=1)
        store.create_project("one")
        with pytest.raises(ValueError):
            store.create_project("two")


# ---------------------------------------------------------------------------
# TestProjectRetrieval
# ---------------------------------------------------------------------------


class TestProjectRetrieval:

    def test_get_missing_returns_none(self):
        assert ProjectStore().get_project("nope") is None

    def test_list_ordered_by_creation(self):
        store = ProjectStore()
        late = store.create_project("late")
        early = store.create_project("early")
        middle = store.create_project("middle")
        late.created_at, early.created_at, middle.created_at = 300.0, 100.0, 200.0
        assert [p.id for p in store.list_projects()] == [early.id, middle.id, late.id]

    def test_delete(self):
        store = ProjectStore()
        project = store.create_project("gone")
        assert store.delete_project(project.id) is True
        assert store.get_project(project.id) is None
        assert store.delete_project(project.id) is False


# ---------------------------------------------------------------------------
# TestStatusUpdates
# ---------------------------------------------------------------------------


class TestStatusUpdates:

    def test_failed_keeps_error(self):
        store = ProjectStore()
        project = store.create_project("x")
        store.update_status(project.id, ProjectStatus.FAILED, "encoder crashed")
        assert project.status == ProjectStatus.FAILED
        assert project.error == "encoder crashed"

    def test_other_status_clears_error(self):
        store = ProjectStore()
        project = store.create_project("x")
        store.update_status(project.id, ProjectStatus.FAILED, "boom")
        store.update_status(project.id, ProjectStatus.IMAGES_READY, "ignored")
        assert project.error is None

    def test_unknown_project(self):
        assert ProjectStore().update_status("nope", ProjectStatus.FAILED) is None

    def test_save_bumps_updated_at(self, monkeypatch):
        store = ProjectStore()
        project = store.create_project("x")
        monkeypatch.setattr(time, "time", lambda: project.created_at + 60)
        store.save_project(project)
        assert project.updated_at == project.created_at + 60

    def test_status_values(self):
        assert [s.value for s in ProjectStatus] == [
            "draft", "script-ready", "voiceover-uploaded", "images-ready",
            "processing", "completed", "failed",
        ]
        assert ProjectStatus.PROCESSING == "processing"


# ---------------------------------------------------------------------------
# TestRenderClaim
# ---------------------------------------------------------------------------


class TestRenderClaim:

    def test_claim_moves_to_processing(self):
        store = ProjectStore()
        project = store.create_project("x")
        store.update_status(project.id, ProjectStatus.FAILED, "previous attempt")
        claimed = store.claim_for_render(project.id)
        assert claimed is project
        assert project.status == ProjectStatus.PROCESSING
        assert project.error is None

    def test_second_claim_rejected(self):
        store = ProjectStore()
        project = store.create_project("x")
        store.claim_for_render(project.id)
        with pytest.raises(RenderInProgressError):
            store.claim_for_render(project.id)

    def test_completed_project_can_be_claimed_again(self):
        store = ProjectStore()
        project = store.create_project("x")
        store.update_status(project.id, ProjectStatus.COMPLETED)
        store.claim_for_render(project.id)
        assert project.status == ProjectStatus.PROCESSING

    def test_unknown_project(self):
        with pytest.raises(KeyError):
            ProjectStore().claim_for_render("nope")


# ---------------------------------------------------------------------------
# TestPersistence
# ---------------------------------------------------------------------------


class TestPersistence:

    def test_snapshot_written_per_project(self, tmp_path):
        store = ProjectStore(data_dir=str(tmp_path))
        project = store.create_project("x", topic="sea life")
        data = json.loads((tmp_path / "{}.json".format(project.id)).read_text())
        assert data["title"] == "x"
        assert data["status"] == "draft"
        assert data["topic"] == "sea life"

    def test_full_round_trip(self, tmp_path, script_scenes, timeline_factory, transcript):
        store = ProjectStore(data_dir=str(tmp_path))
        project = store.create_project("x", script=script_scenes, aspect_ratio="1:1")
        project.voiceover = VoiceoverInfo("/a/voice.mp3", 9.0, transcript)
        project.timeline = timeline_factory(["/img/1.png", "/img/2.png", "/img/3.png"])
        project.output = ProjectOutput(video_path="/out/v.mp4", generated_at=1.0, duration=9.0, hashtags=["octopus"])
        project.status = ProjectStatus.COMPLETED
        store.save_project(project)

        reloaded = ProjectStore(data_dir=str(tmp_path)).get_project(project.id)
        assert reloaded.status == ProjectStatus.COMPLETED
        assert reloaded.aspect_ratio == "1:1"
        assert reloaded.script == script_scenes
        assert reloaded.voiceover.transcript.words == transcript.words
        assert reloaded.timeline.scenes[2].image_path == "/img/3.png"
        assert reloaded.timeline.scenes[0].subtitles[0].text == "Octopuses have three hearts"
        assert isinstance(reloaded.timeline.scenes[0], TimelineScene)
        assert reloaded.output.hashtags == ["octopus"]

    def test_processing_reloads_as_failed(self, tmp_path):
        store = ProjectStore(data_dir=str(tmp_path))
        project = store.create_project("x")
        store.claim_for_render(project.id)

        reloaded = ProjectStore(data_dir=str(tmp_path)).get_project(project.id)
        assert reloaded.status == ProjectStatus.FAILED
        assert reloaded.error == "Render interrupted by a restart"

    def test_failed_claim_write_restores_status(self, tmp_path):
        store = ProjectStore(data_dir=str(tmp_path))
        project = store.create_project("x")
        with patch("reelsmith.server.projects.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.claim_for_render(project.id)
        assert project.status == ProjectStatus.DRAFT
        assert project.error is None

        assert store.claim_for_render(project.id).status == ProjectStatus.PROCESSING

    def test_unreadable_snapshot_skipped(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        store = ProjectStore(data_dir=str(tmp_path))
        good = store.create_project("ok")
        assert [p.id for p in ProjectStore(data_dir=str(tmp_path)).list_projects()] == [good.id]

    def test_delete_removes_snapshot(self, tmp_path):
        store = ProjectStore(data_dir=str(tmp_path))
        project = store.create_project("x")
        store.delete_project(project.id)
        assert not (tmp_path / "{}.json".format(project.id)).exists()

    def test_project_from_dict_defaults(self):
        project = Project.from_dict({"id": "abc"})
        assert project.status == ProjectStatus.DRAFT
        assert project.timeline.scenes == []
        assert project.voiceover is None


# ---------------------------------------------------------------------------
# TestThreadSafety
# ---------------------------------------------------------------------------


class TestThreadSafety:

    def test_only_one_concurrent_claim_wins(self):
        store = ProjectStore()
        project = store.create_project("x")
        barrier = threading.Barrier(8)
        wins, losses = [], []

        def claim():
            barrier.wait()
            try:
                store.claim_for_render(project.id)
                wins.append(1)
            except RenderInProgressError:
                losses.append(1)

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == 1
        assert len(losses) == 7

    def test_concurrent_creates(self):
        store = ProjectStore()
        threads = [
            threading.Thread(target=store.create_project, args=("p{}".format(i),))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.list_projects()) == 20
