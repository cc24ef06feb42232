"""Configuration constants, render presets, and .env loading.

WHY: Centralizes every tunable value (binary locations, output folders,
render presets, subtitle defaults, alignment tolerances and API defaults)
so they are easy to find and override without touching pipeline logic.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level dicts, sets, and strings, each overridable through an
environment variable. The load_*_key() helpers give clear errors when a
required credential is missing.

RULES:
- ASPECT_RATIO_DIMENSIONS is the single source of output sizes
- Subtitle style defaults match the renderer's ASS force_style keys
- API keys are loaded from the environment, never hardcoded
- RENDER_TIMEOUT_S of 0 (or less) disables the render timeout
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the service is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# External binaries
# ---------------------------------------------------------------------------

FFMPEG_BINARY = os.getenv("REELSMITH_FFMPEG", "ffmpeg")
FFPROBE_BINARY = os.getenv("REELSMITH_FFPROBE", "ffprobe")

# ---------------------------------------------------------------------------
# Storage locations
# ---------------------------------------------------------------------------

OUTPUT_ROOT = Path(os.getenv("REELSMITH_OUTPUT_DIR", "outputs"))
UPLOAD_ROOT = Path(os.getenv("REELSMITH_UPLOAD_DIR", "uploads"))
DATA_DIR = os.getenv("REELSMITH_DATA_DIR", "")
"""Directory for project JSON snapshots. Empty string keeps projects in memory only."""

# ---------------------------------------------------------------------------
# Accepted upload formats
# ---------------------------------------------------------------------------

SUPPORTED_AUDIO_FORMATS: set[str] = {".mp3", ".wav", ".m4a", ".mp4"}
"""Voiceover file extensions accepted for upload (lowercase, with dot)."""

SUPPORTED_IMAGE_FORMATS: set[str] = {".jpg", ".jpeg", ".png", ".webp"}
"""Scene image file extensions accepted for upload (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Render presets
# ---------------------------------------------------------------------------

ASPECT_RATIO_DIMENSIONS: dict[str, tuple[int, int]] = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
    "1:1": (1080, 1080),
}

DEFAULT_ASPECT_RATIO = "9:16"

VIDEO_CODEC = "libx264"
VIDEO_PRESET = os.getenv("REELSMITH_VIDEO_PRESET", "medium")
VIDEO_CRF = int(os.getenv("REELSMITH_VIDEO_CRF", "23"))
AUDIO_CODEC = "aac"
AUDIO_BITRATE = os.getenv("REELSMITH_AUDIO_BITRATE", "192k")

THUMBNAIL_SIZE = "1080x1920"
"""Thumbnails are always vertical, whatever the video's aspect ratio."""

RENDER_TIMEOUT_S = float(os.getenv("REELSMITH_RENDER_TIMEOUT", "1800"))

# ---------------------------------------------------------------------------
# Subtitle defaults (ASS force_style values)
# ---------------------------------------------------------------------------

DEFAULT_FONT_NAME = "Arial"
DEFAULT_FONT_SIZE = 28
DEFAULT_PRIMARY_COLOUR = "&HFFFFFF"
DEFAULT_OUTLINE_COLOUR = "&H000000"
DEFAULT_BORDER_STYLE = 3
DEFAULT_OUTLINE = 2
DEFAULT_SHADOW = 1
DEFAULT_ALIGNMENT = 2  # bottom center

WORDS_PER_SUBTITLE = int(os.getenv("REELSMITH_WORDS_PER_SUBTITLE", "4"))

# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

ALIGNMENT_TOLERANCE_S = float(os.getenv("REELSMITH_ALIGNMENT_TOLERANCE", "1.0"))
"""Largest gap/overlap (seconds) between proposed scene boundaries that is snapped shut."""

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("REELSMITH_OPENAI_MODEL", "gpt-4-turbo-preview")
WHISPER_MODEL = os.getenv("REELSMITH_WHISPER_MODEL", "whisper-1")
ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
ANTHROPIC_MODEL = os.getenv("REELSMITH_ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022")
ANTHROPIC_VERSION = "2023-06-01"


def load_openai_key() -> str:
    """Load the OpenAI API key from the environment.

    WHY: Transcription always goes through the OpenAI audio endpoint, so
    the voiceover flow cannot start without this key.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file in the app folder."
        )
    return key


def load_anthropic_key() -> str | None:
    """Return the Anthropic API key, or None when it is not configured."""
    key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    return key or None
