"""Tests for manual timeline edits and timeline problem reports."""

from __future__ import annotations

import pytest

from reelsmith.core.editing import (
    insert_scene,
    remove_scene,
    renumber,
    replace_scenes,
    set_scene_image,
    timeline_problems,
)
from reelsmith.core.ir import TimelineScene


def _scene(scene_id: str, start: float, end: float) -> TimelineScene:
    return TimelineScene(id=scene_id, order=99, start_time=start, end_time=end, duration=0.0)


class TestInsertScene:

    def test_inserts_after_anchor_and_renumbers(self, timeline_factory):
        timeline = timeline_factory()
        insert_scene(timeline, _scene("extra", 3.0, 4.0), after_scene_id="scene-1")
        assert [s.id for s in timeline.scenes] == ["scene-1", "extra", "scene-2", "scene-3"]
        assert [s.order for s in timeline.scenes] == [0, 1, 2, 3]

    def test_unknown_anchor_appends(self, timeline_factory):
        timeline = timeline_factory()
        insert_scene(timeline, _scene("extra", 9.0, 10.0), after_scene_id="missing")
        assert timeline.scenes[-1].id == "extra"
        assert timeline.scenes[-1].order == 3

    def test_no_anchor_appends(self, timeline_factory):
        timeline = timeline_factory()
        insert_scene(timeline, _scene("extra", 9.0, 10.0))
        assert timeline.scenes[-1].id == "extra"

    def test_recomputes_duration(self, timeline_factory):
        timeline = timeline_factory()
        scene = _scene("extra", 2.5, 4.0)
        insert_scene(timeline, scene)
        assert scene.duration == pytest.approx(1.5)

    def test_duplicate_id_rejected(self, timeline_factory):
        timeline = timeline_factory()
        with pytest.raises(ValueError):
            insert_scene(timeline, _scene("scene-2", 0.0, 1.0))


class TestRemoveScene:

    def test_removes_and_renumbers(self, timeline_factory):
        timeline = timeline_factory()
        removed = remove_scene(timeline, "scene-2")
        assert removed.id == "scene-2"
        assert [s.id for s in timeline.scenes] == ["scene-1", "scene-3"]
        assert [s.order for s in timeline.scenes] == [0, 1]

    def test_unknown_scene(self, timeline_factory):
        with pytest.raises(KeyError):
            remove_scene(timeline_factory(), "nope")


class TestReplaceScenes:

    def test_replaces_scenes_and_total(self, timeline_factory):
        timeline = timeline_factory()
        replace_scenes(timeline, [_scene("a", 0.0, 5.0), _scene("b", 5.0, 12.0)], total_duration=12.0)
        assert [s.id for s in timeline.scenes] == ["a", "b"]
        assert [s.order for s in timeline.scenes] == [0, 1]
        assert timeline.scenes[1].duration == pytest.approx(7.0)
        assert timeline.total_duration == 12.0

    def test_keeps_total_when_omitted(self, timeline_factory):
        timeline = timeline_factory()
        replace_scenes(timeline, [_scene("a", 0.0, 9.0)])
        assert timeline.total_duration == 9.0

    def test_duplicate_ids_rejected(self, timeline_factory):
        with pytest.raises(ValueError):
            replace_scenes(timeline_factory(), [_scene("a", 0.0, 1.0), _scene("a", 1.0, 2.0)])


class TestSetSceneImage:

    def test_sets_path_and_source(self, timeline_factory):
        timeline = timeline_factory()
        scene = set_scene_image(timeline, "scene-3", "/img/3.png", "stock")
        assert scene.image_path == "/img/3.png"
        assert scene.image_source == "stock"

    def test_unknown_scene(self, timeline_factory):
        with pytest.raises(KeyError):
            set_scene_image(timeline_factory(), "nope", "/img/x.png")


class TestTimelineProblems:

    def test_clean_timeline(self, timeline_factory):
        assert timeline_problems(timeline_factory()) == []

    def test_empty_timeline(self, timeline_factory):
        timeline = timeline_factory()
        timeline.scenes = []
        assert timeline_problems(timeline) == []

    def test_reports_gap_and_overlap(self, timeline_factory):
        timeline = timeline_factory()
        timeline.scenes[1].start_time = 3.5
        timeline.scenes[2].start_time = 5.0
        problems = timeline_problems(timeline)
        assert any(p.startswith("Gap of 0.500s between scene-1 and scene-2") for p in problems)
        assert any(p.startswith("Overlap of 1.000s between scene-2 and scene-3") for p in problems)

    def test_reports_coverage_and_order(self, timeline_factory):
        timeline = timeline_factory(total=10.0)
        timeline.scenes[0].order = 5
        problems = timeline_problems(timeline)
        assert "Last scene ends at 9.000s, audio is 10.000s" in problems
        assert "Scene scene-1 has order 5 at position 0" in problems

    def test_renumber_fixes_order(self, timeline_factory):
        timeline = timeline_factory()
        timeline.scenes.reverse()
        renumber(timeline)
        assert [s.order for s in timeline.scenes] == [0, 1, 2]
        assert [s.id for s in timeline.scenes] == ["scene-3", "scene-2", "scene-1"]
