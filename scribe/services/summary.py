"""
Revision and summary over a chunked transcript.

The transcript is never sent in one piece: each chunk goes to the generation
engine on its own.

- revise_transcript: every line, packed into size-bounded chunks; a failed chunk
  keeps its original text.
- summarize_transcript: scene chunks with low-value lines filtered; iterative
  compression. Summarize each chunk, append to a rolling summary, and
  re-summarize the rolling text whenever it grows past SUMMARY_ROLLING_MAX_CHARS.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from scribe.config import get_settings
from scribe.errors import GenerationError
from scribe.services.generation import GenerationEngine
from scribe.transcript.chunking import SceneChunk, chunk_by_scene, chunk_transcript
from scribe.transcript.scenes import SceneBoundary

logger = logging.getLogger(__name__)


@dataclass
class TranscriptSummary:
    summary: str
    chunk_summaries: list[SceneChunk] = field(default_factory=list)
    failed_chunks: int = 0


async def revise_transcript(
    text: str,
    engine: GenerationEngine,
    max_chunk_chars: Optional[int] = None,
) -> str:
    """
    Revise every line of the transcript. No line is filtered out and no scene
    assignment is applied, so short utterances and lines without a timestamp
    survive; chunks only bound the request size.
    """
    chunks = chunk_transcript(text, max_chunk_chars=max_chunk_chars, min_line_chars=0, skip_words=())
    revised: list[str] = []
    for i, chunk in enumerate(chunks):
        try:
            out = await engine.revise(chunk)
        except GenerationError as e:
            logger.warning("Revision failed for chunk %d/%d, keeping original: %s", i + 1, len(chunks), e)
            out = ""
        revised.append(out or chunk)
    return "\n".join(revised)


async def summarize_transcript(
    text: str,
    engine: GenerationEngine,
    boundaries: Optional[Sequence[SceneBoundary]] = None,
    max_chunk_chars: Optional[int] = None,
    rolling_max_chars: Optional[int] = None,
) -> TranscriptSummary:
    rolling_max = rolling_max_chars or get_settings().SUMMARY_ROLLING_MAX_CHARS
    chunks = chunk_by_scene(text, boundaries or [], max_chunk_chars=max_chunk_chars)
    if not chunks and not boundaries and text and text.strip():
        # every line was filtered as low-value: summarize the text as it is
        chunks = [SceneChunk(0, text.strip())]
    if not chunks:
        return TranscriptSummary(summary="")

    logger.info("Compression loop: %d chunks", len(chunks))
    rolling: list[str] = []
    per_chunk: list[SceneChunk] = []
    failed = 0
    for chunk in chunks:
        try:
            batch_summary = await engine.summarize(chunk.text)
        except GenerationError as e:
            logger.warning("Summary failed for scene %d: %s", chunk.scene_index, e)
            failed += 1
            continue
        if not batch_summary:
            continue
        per_chunk.append(SceneChunk(chunk.scene_index, batch_summary))
        rolling.append(batch_summary)
        merged = "\n\n".join(rolling)
        if len(merged) > rolling_max:
            try:
                compressed = await engine.summarize(merged)
            except GenerationError as e:
                logger.warning("Rolling summary compression failed: %s", e)
                compressed = ""
            if compressed:
                rolling = [compressed]
    return TranscriptSummary(summary="\n\n".join(rolling), chunk_summaries=per_chunk, failed_chunks=failed)
