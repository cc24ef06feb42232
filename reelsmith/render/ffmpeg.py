"""Async wrappers around the ffmpeg and ffprobe executables.

WHY: Rendering and probing are long-running external processes. The
server must not block its event loop while they run, a hung encoder must
not hold a project in "processing" forever, and failures need to carry
enough of ffmpeg's own output to be diagnosable.

HOW: asyncio subprocesses. run_ffmpeg() adds "-progress pipe:1", logs the
progress key/value stream at DEBUG while collecting stderr, and enforces
an optional timeout by killing and reaping the child. probe_media() runs
ffprobe with JSON output and reads duration and the first video stream's
size.

RULES:
- Non-zero exit → FFmpegError carrying the tail of stderr
- Timeout → process killed and reaped, then FFmpegTimeoutError
- Missing executable → FFmpegError (never a bare FileNotFoundError)
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Sequence

from reelsmith.config import FFMPEG_BINARY, FFPROBE_BINARY

logger = logging.getLogger(__name__)

# Number of trailing stderr characters kept on errors.
_STDERR_TAIL = 2000


class FFmpegError(Exception):
    """Raised when ffmpeg or ffprobe fails or cannot be started.

    Attributes:
        returncode: Process exit code (-1 when the process never ran).
        stderr: The last part of the process's stderr output.
    """

    def __init__(self, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__("ffmpeg exited with code {}: {}".format(returncode, stderr))


class FFmpegTimeoutError(FFmpegError):
    """Raised when a process exceeds its time limit and has been killed."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(-1, "timed out after {:.0f}s".format(timeout))


@dataclass
class MediaInfo:
    """What ffprobe reports about a media file."""

    duration: float
    width: int = 0
    height: int = 0


async def _spawn(cmd: list[str]) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise FFmpegError(-1, "executable not found: {}".format(cmd[0])) from exc


async def run_ffmpeg(
    args: Sequence[str],
    timeout: float | None = None,
    binary: str = FFMPEG_BINARY,
) -> str:
    """Run ffmpeg with the given arguments and wait for it to finish.

    Args:
        args: Arguments after the executable name (inputs, filters, output).
        timeout: Seconds before the process is killed. None or <= 0 waits
            indefinitely.
        binary: ffmpeg executable to run.

    Returns:
        The process's stderr text (ffmpeg's log).

    Raises:
        FFmpegError: Non-zero exit status or missing executable.
        FFmpegTimeoutError: The timeout elapsed.
    """
    cmd = [binary, "-hide_banner", "-nostdin", "-progress", "pipe:1", *args]
    logger.debug("Running: %s", " ".join(cmd))
    proc = await _spawn(cmd)

    async def _watch_progress() -> None:
        async for raw in proc.stdout:
            line = raw.decode("utf-8", errors="replace").strip()
            if line.startswith("out_time=") or line.startswith("progress="):
                logger.debug("ffmpeg %s", line)

    async def _collect_stderr() -> bytes:
        return await proc.stderr.read()

    limit = timeout if timeout and timeout > 0 else None
    try:
        _, stderr_bytes, returncode = await asyncio.wait_for(
            asyncio.gather(_watch_progress(), _collect_stderr(), proc.wait()),
            timeout=limit,
        )
    except asyncio.TimeoutError:
        logger.error("ffmpeg exceeded %.0fs, killing pid %s", limit, proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise FFmpegTimeoutError(limit) from None

    stderr = stderr_bytes.decode("utf-8", errors="replace")
    if returncode != 0:
        raise FFmpegError(returncode, stderr[-_STDERR_TAIL:])
    return stderr


async def probe_media(path: str, binary: str = FFPROBE_BINARY) -> MediaInfo:
    """Read duration and video size of a media file with ffprobe.

    Raises:
        FFmpegError: ffprobe failed or its output could not be parsed.
    """
    cmd = [
        binary, "-v", "error",
        "-print_format", "json",
        "-show_format", "-show_streams",
        str(path),
    ]
    proc = await _spawn(cmd)
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise FFmpegError(proc.returncode, stderr.decode("utf-8", errors="replace")[-_STDERR_TAIL:])

    try:
        data = json.loads(stdout.decode("utf-8"))
        duration = float(data.get("format", {}).get("duration", 0.0))
    except (ValueError, TypeError) as exc:
        raise FFmpegError(proc.returncode, "unreadable ffprobe output: {}".format(exc)) from exc

    width = height = 0
    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video":
            width = int(stream.get("width", 0))
            height = int(stream.get("height", 0))
            break
    return MediaInfo(duration=duration, width=width, height=height)


async def get_audio_duration(path: str) -> float:
    """Return the duration of an audio file in seconds."""
    info = await probe_media(path)
    return info.duration
