"""Single-frame JPEG thumbnail extraction."""

from __future__ import annotations

import logging
from pathlib import Path

from reelsmith.config import THUMBNAIL_SIZE
from reelsmith.render.ffmpeg import FFmpegError, probe_media, run_ffmpeg

logger = logging.getLogger(__name__)


async def generate_thumbnail(
    video_path: str,
    output_dir: str | Path | None = None,
    size: str = THUMBNAIL_SIZE,
    timeout: float | None = 120.0,
) -> str | None:
    """Grab the middle frame of a video as thumb_<stem>.jpg.

    Thumbnails are optional decoration: every failure is logged and
    reported as None so the caller's render still succeeds.

    Args:
        video_path: Rendered video.
        output_dir: Destination directory; defaults to the video's directory.
        size: "WIDTHxHEIGHT" of the thumbnail.
        timeout: ffmpeg time limit in seconds.

    Returns:
        Path of the written JPEG, or None.
    """
    video = Path(video_path)
    target_dir = Path(output_dir) if output_dir is not None else video.parent
    thumb_path = target_dir / "thumb_{}.jpg".format(video.stem)

    try:
        width, height = (int(part) for part in size.lower().split("x"))
    except ValueError:
        logger.error("Invalid thumbnail size %r", size)
        return None

    seek = 0.0
    try:
        seek = (await probe_media(str(video))).duration / 2
    except FFmpegError as exc:
        logger.warning("Could not probe %s for thumbnail, using first frame: %s", video, exc)

    args = [
        "-y",
        "-ss", "{:.3f}".format(seek),
        "-i", str(video),
        "-frames:v", "1",
        "-vf", "scale={}:{}".format(width, height),
        "-q:v", "2",
        str(thumb_path),
    ]
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        await run_ffmpeg(args, timeout=timeout)
    except (FFmpegError, OSError) as exc:
        logger.error("Thumbnail generation failed for %s: %s", video, exc)
        return None

    if not thumb_path.exists():
        logger.error("ffmpeg reported success but %s was not written", thumb_path)
        return None
    return str(thumb_path)
