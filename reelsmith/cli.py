"""Command-line interface for Reelsmith.

WHY: Aligning and rendering are useful without the HTTP service: for
batch jobs, for debugging a timeline, or for re-rendering a project by
hand. The CLI exposes the same pipeline pieces as subcommands.

HOW: argparse with three subcommands:
  align   script JSON + transcript JSON (or audio to transcribe) → timeline JSON
  render  timeline JSON + audio → video (+ thumbnail)
  serve   run the HTTP API under uvicorn
Async steps run via asyncio.run(). Status messages go to stderr; the
primary result (timeline JSON, video path) goes to stdout or the -o file.

RULES:
- Status output goes to stderr (not stdout)
- -v/--verbose switches logging to DEBUG
- Errors print "Error: ..." to stderr and exit with status 1
- Script JSON is a list of scenes or {"scenes": [...]}
- Transcript JSON is either the Transcript IR or a verbose_json
  transcription response
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from reelsmith.config import ASPECT_RATIO_DIMENSIONS, DEFAULT_ASPECT_RATIO, OUTPUT_ROOT
from reelsmith.core.aligner import align_scenes
from reelsmith.core.ir import ScriptScene, Timeline, Transcript
from reelsmith.render.ffmpeg import FFmpegError, get_audio_duration
from reelsmith.render.orchestrator import RenderRequest, render_video
from reelsmith.render.thumbnail import generate_thumbnail
from reelsmith.services.llm import LLMClient
from reelsmith.services.transcription import WhisperClient, transcript_from_whisper

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load_json(path: str):
    file_path = Path(path)
    if not file_path.is_file():
        _fail("File not found: {}".format(file_path))
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        _fail("Invalid JSON in {}: {}".format(file_path, exc))


def load_script(path: str) -> List[ScriptScene]:
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("scenes", [])
    return [ScriptScene.from_dict(item) for item in data]


def load_transcript(path: str) -> Transcript:
    data = _load_json(path)
    if "full_text" in data:
        return Transcript.from_dict(data)
    return transcript_from_whisper(data)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _run_align(args: argparse.Namespace) -> None:
    scenes = load_script(args.script)
    _status("Loaded {} script scenes".format(len(scenes)))

    duration: Optional[float] = None
    if args.transcript:
        transcript = load_transcript(args.transcript)
    else:
        _status("Transcribing {}...".format(args.audio))
        async with WhisperClient() as client:
            transcript = await client.transcribe(args.audio)
        try:
            duration = await get_audio_duration(args.audio)
        except FFmpegError as exc:
            logger.warning("Could not probe %s: %s", args.audio, exc)
    _status("Transcript: {} words, {:.2f}s".format(len(transcript.words), transcript.duration))

    llm = None if args.no_llm else LLMClient.from_env()
    if llm is None:
        _status("No language model configured; scenes will be split evenly")
    async with (llm if llm is not None else contextlib.nullcontext()):
        timeline = await align_scenes(scenes, transcript, llm, duration=duration or None)

    text = json.dumps(timeline.to_dict(), indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        _status("Saved timeline to {}".format(args.output))
    else:
        print(text)


async def _run_render(args: argparse.Namespace) -> None:
    data = _load_json(args.timeline)
    timeline = Timeline.from_dict(data.get("timeline", data))
    _status("Rendering {} scenes ({:.2f}s)...".format(
        len(timeline.scenes), timeline.total_duration))

    result = await render_video(RenderRequest(
        scenes=timeline.scenes,
        audio_path=args.audio,
        output_dir=args.output_dir,
        aspect_ratio=args.aspect_ratio,
    ))
    if not result.success:
        if result.missing_scenes:
            _status("Scenes without usable images: {}".format(", ".join(result.missing_scenes)))
        _fail(result.error or "Render failed")

    _status("Rendered {} ({:.2f}s)".format(result.video_path, result.duration))
    if not args.no_thumbnail:
        thumb = await generate_thumbnail(result.video_path)
        if thumb:
            _status("Thumbnail: {}".format(thumb))
        else:
            _status("Thumbnail could not be generated")
    print(result.video_path)


def _run_serve(args: argparse.Namespace) -> None:
    from reelsmith.server.app import run_api
    run_api(host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="reelsmith",
        description="Align voiceovers to script scenes and render captioned slideshow videos.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    align = subparsers.add_parser("align", help="Align a script to a voiceover transcript.")
    align.add_argument("--script", required=True, help="Script scenes JSON file.")
    source = align.add_mutually_exclusive_group(required=True)
    source.add_argument("--transcript", help="Transcript JSON file.")
    source.add_argument("--audio", help="Audio file to transcribe (needs OPENAI_API_KEY).")
    align.add_argument("-o", "--output", default=None, help="Write timeline JSON here (default: stdout).")
    align.add_argument(
        "--no-llm",
        action="store_true",
        help="Skip the language model and split scenes evenly.",
    )

    render = subparsers.add_parser("render", help="Render a timeline into a video.")
    render.add_argument("--timeline", required=True, help="Timeline (or project) JSON file.")
    render.add_argument("--audio", required=True, help="Voiceover audio file.")
    render.add_argument(
        "--output-dir",
        default=str(OUTPUT_ROOT),
        help="Directory for the rendered video (default: %(default)s).",
    )
    render.add_argument(
        "--aspect-ratio",
        default=DEFAULT_ASPECT_RATIO,
        choices=sorted(ASPECT_RATIO_DIMENSIONS),
        help="Output aspect ratio (default: %(default)s).",
    )
    render.add_argument("--no-thumbnail", action="store_true", help="Skip thumbnail extraction.")

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address (default: %(default)s).")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: %(default)s).")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the reelsmith console script and ``python -m reelsmith``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "serve":
        _run_serve(args)
        return

    runner = _run_align if args.command == "align" else _run_render
    try:
        asyncio.run(runner(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except ValueError as exc:
        # Config errors (missing API key, bad JSON fields, etc.)
        _fail(str(exc))
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        _fail(str(exc))


if __name__ == "__main__":
    main()
