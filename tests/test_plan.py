"""Tests for concat manifests, subtitle aggregation and scratch-file cleanup."""

from __future__ import annotations

from pathlib import Path

import pytest

from reelsmith.core.ir import SubtitleChunk
from reelsmith.render.plan import (
    build_concat_manifest,
    collect_subtitles,
    sequence_plan,
)


class TestBuildConcatManifest:

    def test_file_and_duration_lines_with_last_file_repeated(self, timeline_factory, image_files):
        manifest = build_concat_manifest(timeline_factory(image_files).scenes)
        posix = [Path(p).resolve().as_posix() for p in image_files]
        assert manifest.splitlines() == [
            "file '{}'".format(posix[0]), "duration 3.000",
            "file '{}'".format(posix[1]), "duration 3.000",
            "file '{}'".format(posix[2]), "duration 3.000",
            "file '{}'".format(posix[2]),
        ]

    def test_relative_paths_become_absolute(self, timeline_factory):
        manifest = build_concat_manifest(timeline_factory(["a.png", "b.png", "c.png"]).scenes)
        first_path = manifest.splitlines()[0][len("file '"):-1]
        assert Path(first_path).is_absolute()

    def test_single_quotes_escaped(self, timeline_factory, tmp_path):
        odd = str(tmp_path / "it's.png")
        manifest = build_concat_manifest(timeline_factory([odd, odd, odd]).scenes[:1])
        assert "it'\\''s.png'" in manifest.splitlines()[0]

    def test_scene_without_image_rejected(self, timeline_factory):
        with pytest.raises(ValueError):
            build_concat_manifest(timeline_factory().scenes)

    def test_no_scenes(self):
        assert build_concat_manifest([]) == ""


class TestCollectSubtitles:

    def test_flattens_in_chronological_order(self, timeline_factory):
        timeline = timeline_factory()
        timeline.scenes[0].subtitles.append(SubtitleChunk("late", 2.0, 2.9, "late words"))
        timeline.scenes.reverse()
        chunks = collect_subtitles(timeline.scenes)
        assert [c.start for c in chunks] == [0.0, 2.0, 3.0, 6.0]


class TestSequencePlan:

    def test_writes_files_and_removes_them(self, timeline_factory, image_files, tmp_path):
        work = tmp_path / "work"
        with sequence_plan(timeline_factory(image_files).scenes, work) as plan:
            assert plan.manifest_path.name == "concat_{}.txt".format(plan.plan_id)
            assert plan.subtitle_path.name == "subtitles_{}.srt".format(plan.plan_id)
            assert plan.manifest_path.read_text().startswith("file '")
            assert plan.subtitle_path.read_text().startswith("1\n00:00:00,000 --> ")
        assert not plan.manifest_path.exists()
        assert not plan.subtitle_path.exists()

    def test_removes_files_on_exception(self, timeline_factory, image_files, tmp_path):
        with pytest.raises(RuntimeError):
            with sequence_plan(timeline_factory(image_files).scenes, tmp_path) as plan:
                raise RuntimeError("encoder blew up")
        assert not plan.manifest_path.exists()
        assert not plan.subtitle_path.exists()

    def test_concurrent_plans_use_distinct_files(self, timeline_factory, image_files, tmp_path):
        scenes = timeline_factory(image_files).scenes
        with sequence_plan(scenes, tmp_path) as first, sequence_plan(scenes, tmp_path) as second:
            assert first.manifest_path != second.manifest_path
            assert first.subtitle_path != second.subtitle_path

    def test_file_already_removed_is_not_an_error(self, timeline_factory, image_files, tmp_path):
        with sequence_plan(timeline_factory(image_files).scenes, tmp_path) as plan:
            plan.subtitle_path.unlink()
        assert not plan.manifest_path.exists()
