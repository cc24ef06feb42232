"""Async text-completion client for OpenAI and Anthropic.

WHY: Two steps of the pipeline ask a language model for text: matching
script scenes to the transcript, and suggesting hashtags. Both only need
"prompt in, text out", so one small client hides which provider answers.

HOW: Wraps httpx.AsyncClient. The LLMClient is an async context manager;
enter it to open the connection pool, exit to close it. complete() posts
either an OpenAI chat completion or an Anthropic message and returns the
first text block of the reply.

RULES:
- Always use the async context manager (async with LLMClient(...) as llm:)
- provider is "openai" or "anthropic"
- Non-2xx responses raise LLMAPIError with status code and body
- from_env() prefers OpenAI when both keys are configured
"""

from __future__ import annotations

import logging
import os

import httpx

from reelsmith.config import (
    ANTHROPIC_BASE_URL,
    ANTHROPIC_MODEL,
    ANTHROPIC_VERSION,
    OPENAI_BASE_URL,
    OPENAI_MODEL,
    load_anthropic_key,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "anthropic")


class LLMAPIError(Exception):
    """Raised when the language model API returns an error response.

    RULES:
    - Always include status_code and message
    - message is the response body text or a summary
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"LLM API error {status_code}: {message}")


class LLMClient:
    """Async client returning plain-text completions.

    WHY: Callers (aligner, hashtag service) depend only on
    ``await complete(prompt)``; the provider and its wire format stay here.

    HOW: Provider-specific base URL, auth headers and body shape are chosen
    at construction. ``transport`` lets tests inject httpx.MockTransport.

    RULES:
    - Use as: async with LLMClient("openai", key) as llm: ...
    - model defaults to OPENAI_MODEL / ANTHROPIC_MODEL from config
    """

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {provider!r}")
        self.provider = provider
        self._api_key = api_key
        if provider == "openai":
            self.model = model or OPENAI_MODEL
            self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        else:
            self.model = model or ANTHROPIC_MODEL
            self._base_url = (base_url or ANTHROPIC_BASE_URL).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_env(cls) -> LLMClient | None:
        """Build a client from OPENAI_API_KEY or ANTHROPIC_API_KEY, or None."""
        openai_key = os.getenv("OPENAI_API_KEY", "").strip()
        if openai_key:
            return cls("openai", openai_key)
        anthropic_key = load_anthropic_key()
        if anthropic_key:
            return cls("anthropic", anthropic_key)
        logger.info("No LLM API key configured")
        return None

    def _headers(self) -> dict[str, str]:
        if self.provider == "openai":
            return {"Authorization": f"Bearer {self._api_key}"}
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    async def __aenter__(self) -> LLMClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers(),
            timeout=httpx.Timeout(120.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "LLMClient must be used as an async context manager: "
                "async with LLMClient(...) as llm: ..."
            )
        return self._client

    async def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        """Send one user prompt and return the reply text.

        Raises:
            LLMAPIError: Non-2xx response or a reply without text.
        """
        client = self._ensure_client()
        messages = [{"role": "user", "content": prompt}]

        if self.provider == "openai":
            resp = await client.post("/chat/completions", json={
                "model": self.model,
                "messages": messages,
                "max_tokens": max_tokens,
            })
        else:
            resp = await client.post("/messages", json={
                "model": self.model,
                "max_tokens": max_tokens,
                "messages": messages,
            })

        if resp.status_code != 200:
            raise LLMAPIError(resp.status_code, resp.text)

        data = resp.json()
        try:
            if self.provider == "openai":
                return data["choices"][0]["message"]["content"] or ""
            blocks = [b.get("text", "") for b in data["content"] if b.get("type") == "text"]
            return blocks[0] if blocks else ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMAPIError(resp.status_code, f"Unexpected response shape: {exc}") from exc
