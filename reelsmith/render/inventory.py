"""Pre-render media checks.

WHY: ffmpeg fails late and cryptically when one image in a long concat
list is missing. Checking every input up front lets the caller report all
missing scenes at once and leaves project state untouched.

RULES:
- Every problem is reported, never just the first one
- scenes_without_images() is a presence check only; check_inventory()
  also verifies that files exist and are readable
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable

from reelsmith.core.ir import TimelineScene

logger = logging.getLogger(__name__)


@dataclass
class InventoryReport:
    """Result of checking a render's inputs."""

    missing_scenes: list[str] = field(default_factory=list)
    audio_missing: bool = False

    @property
    def ok(self) -> bool:
        return not self.missing_scenes and not self.audio_missing

    def describe(self) -> str:
        parts = []
        if self.missing_scenes:
            parts.append("{} scene(s) are missing images".format(len(self.missing_scenes)))
        if self.audio_missing:
            parts.append("voiceover audio is missing")
        return "; ".join(parts) if parts else "all media present"


class MissingMediaError(Exception):
    """Raised when a render's media inputs are incomplete."""

    def __init__(self, report: InventoryReport) -> None:
        self.report = report
        super().__init__(report.describe())


def _is_readable_file(path: str | None) -> bool:
    return bool(path) and os.path.isfile(path) and os.access(path, os.R_OK)


def scenes_without_images(scenes: Iterable[TimelineScene]) -> list[str]:
    """Ids of scenes that have no image path set."""
    return [scene.id for scene in scenes if not scene.image_path]


def check_inventory(
    scenes: Iterable[TimelineScene],
    audio_path: str | None,
) -> InventoryReport:
    """Check every scene image and the voiceover audio."""
    report = InventoryReport()
    for scene in scenes:
        if not _is_readable_file(scene.image_path):
            report.missing_scenes.append(scene.id)
    report.audio_missing = not _is_readable_file(audio_path)
    if not report.ok:
        logger.warning("Media inventory incomplete: %s", report.describe())
    return report


def require_inventory(
    scenes: Iterable[TimelineScene],
    audio_path: str | None,
) -> InventoryReport:
    """Like check_inventory(), but raise MissingMediaError when incomplete."""
    report = check_inventory(scenes, audio_path)
    if not report.ok:
        raise MissingMediaError(report)
    return report
