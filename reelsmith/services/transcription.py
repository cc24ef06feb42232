"""Speech-to-text for voiceovers via the OpenAI transcription endpoint.

WHY: Alignment needs word-level timestamps (for captions) and segment
timestamps (for matching scenes). Whisper's verbose_json response has
both when asked for word and segment granularities.

HOW: WhisperClient uploads the file as multipart form data and
transcript_from_whisper() converts the JSON into the Transcript IR.

RULES:
- Transcript.duration = max(last word end, last segment end, reported duration)
- Non-200 responses raise TranscriptionAPIError
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from reelsmith.config import OPENAI_BASE_URL, WHISPER_MODEL, load_openai_key
from reelsmith.core.ir import Transcript, TranscriptSegment, Word

logger = logging.getLogger(__name__)


class TranscriptionAPIError(Exception):
    """Raised when the transcription API returns an error response."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Transcription API error {status_code}: {message}")


def transcript_from_whisper(data: dict) -> Transcript:
    """Convert a verbose_json transcription response into a Transcript."""
    words = [Word.from_dict(w) for w in data.get("words") or []]
    segments = [TranscriptSegment.from_dict(s) for s in data.get("segments") or []]

    duration = float(data.get("duration") or 0.0)
    if words:
        duration = max(duration, words[-1].end)
    if segments:
        duration = max(duration, segments[-1].end)

    return Transcript(
        full_text=(data.get("text") or "").strip(),
        words=words,
        segments=segments,
        duration=duration,
    )


class WhisperClient:
    """Async client for the audio transcription endpoint.

    RULES:
    - Use as: async with WhisperClient() as client: ...
    - api_key defaults to load_openai_key() from .env
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_openai_key()
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._model = model or WHISPER_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> WhisperClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    async def transcribe(self, audio_path: str | Path) -> Transcript:
        """Transcribe an audio file with word and segment timestamps."""
        if self._client is None:
            raise RuntimeError(
                "WhisperClient must be used as an async context manager: "
                "async with WhisperClient() as client: ..."
            )

        audio_path = Path(audio_path)
        logger.info("Transcribing %s", audio_path.name)
        with open(audio_path, "rb") as f:
            resp = await self._client.post(
                "/audio/transcriptions",
                files={"file": (audio_path.name, f)},
                data={
                    "model": self._model,
                    "response_format": "verbose_json",
                    "timestamp_granularities[]": ["word", "segment"],
                },
            )

        if resp.status_code != 200:
            raise TranscriptionAPIError(resp.status_code, resp.text)

        transcript = transcript_from_whisper(resp.json())
        logger.info(
            "Transcribed %d words in %d segments (%.2fs)",
            len(transcript.words), len(transcript.segments), transcript.duration,
        )
        return transcript
