"""
GenerationEngine: interface to the external text-generation model.

The pipeline only ever hands it already-assembled, already-chunked transcript
text. OllamaEngine talks to a local Ollama server (POST /api/generate,
non-streaming) with httpx.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from scribe.config import get_settings
from scribe.errors import GenerationError

logger = logging.getLogger(__name__)

_REVISE_INSTRUCTIONS = """You improve automatic transcripts of recorded tabletop sessions.

Rules:
- Fix obvious speech-recognition errors (mangled words, wrong homophones).
- Make sentences readable while keeping the original meaning.
- Keep every line's [timestamp] and speaker label exactly as given.
- Mark truly unintelligible parts as [unintelligible].
- Do NOT invent content that is not present.

Output one line per utterance in the same format:
[M:SS] Speaker - text

Reply ONLY with the improved transcript, no comments."""

_SUMMARIZE_INSTRUCTIONS = """You summarize one part of a recorded session transcript.

Rules:
- Do NOT invent or add information not in the text.
- Preserve names, places, decisions and numbers.
- Keep the order of events.
- Use short paragraphs or bullet points, under 300 words.

Reply ONLY with the summary."""


class GenerationEngine(ABC):
    """Rewrites or summarizes one bounded chunk of transcript text."""

    @abstractmethod
    async def revise(self, chunk_text: str) -> str:
        """Return a cleaned-up version of the chunk. Raises GenerationError."""
        ...

    @abstractmethod
    async def summarize(self, chunk_text: str) -> str:
        """Return a summary of the chunk. Raises GenerationError."""
        ...


class OllamaEngine(GenerationEngine):
    """Ollama /api/generate client. A shared httpx.AsyncClient may be injected."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout_sec: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.OLLAMA_URL).rstrip("/")
        self._model = model or settings.OLLAMA_MODEL
        self._max_tokens = max_tokens or settings.GENERATION_MAX_TOKENS
        self._temperature = temperature if temperature is not None else settings.GENERATION_TEMPERATURE
        self._timeout = timeout_sec or settings.OLLAMA_TIMEOUT_SEC
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Single non-streaming generate call. Returns the stripped response text."""
        payload = {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": max_tokens or self._max_tokens,
                "repeat_penalty": 1.18,
            },
        }
        url = f"{self._base_url}/api/generate"
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationError(f"Ollama API ({self._model}): {e}") from e
        return (data.get("response") or "").strip()

    async def revise(self, chunk_text: str) -> str:
        return await self.generate(f"{_REVISE_INSTRUCTIONS}\n\nTRANSCRIPT:\n{chunk_text}")

    async def summarize(self, chunk_text: str) -> str:
        return await self.generate(f"{_SUMMARIZE_INSTRUCTIONS}\n\nTRANSCRIPT:\n{chunk_text}", max_tokens=1024)
