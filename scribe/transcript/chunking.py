"""
Chunk builder: bounded-size text chunks for a generation engine with limited context.

- Lines are never split: a chunk is whole lines joined by newlines.
- A line alone longer than the limit becomes its own (oversized) chunk.
- Before chunking, lines shorter than VALUABLE_LINE_CHARS or containing a
  skippable low-information word are filtered out.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from scribe.config import get_settings
from scribe.transcript.scenes import SceneBoundary, assign_transcript

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneChunk:
    scene_index: int
    text: str


def filter_lines(
    lines: Iterable[str],
    min_line_chars: int,
    skip_words: Sequence[str] = (),
) -> list[str]:
    """Drop blank lines, lines shorter than min_line_chars, and lines containing a skip word."""
    kept: list[str] = []
    for line in lines:
        if not line.strip():
            continue
        if len(line) < min_line_chars:
            logger.debug("Skipping line: %d chars", len(line))
            continue
        if any(word in line for word in skip_words):
            logger.debug("Skipping line (skippable word): %s", line)
            continue
        kept.append(line)
    return kept


def pack_lines(lines: Sequence[str], max_chunk_chars: int) -> list[str]:
    """Greedy whole-line packing; a new chunk starts when the next line would exceed the limit."""
    chunks: list[str] = []
    current: list[str] = []
    current_len = 0
    for line in lines:
        candidate_len = current_len + 1 + len(line) if current else len(line)
        if candidate_len > max_chunk_chars and current:
            chunks.append("\n".join(current))
            current = [line]
            current_len = len(line)
        else:
            current.append(line)
            current_len = candidate_len
    if current:
        chunks.append("\n".join(current))
    return chunks


def build_chunks(
    lines: Iterable[str],
    max_chunk_chars: Optional[int] = None,
    min_line_chars: Optional[int] = None,
    skip_words: Optional[Sequence[str]] = None,
) -> list[str]:
    """Filter, then pack. Arguments left as None come from settings."""
    settings = get_settings()
    max_chunk_chars = max_chunk_chars if max_chunk_chars is not None else settings.CHUNK_SIZE_CHARS
    min_line_chars = min_line_chars if min_line_chars is not None else settings.VALUABLE_LINE_CHARS
    skip_words = skip_words if skip_words is not None else settings.skippable_words()
    if max_chunk_chars <= 0:
        raise ValueError(f"max_chunk_chars must be > 0, got {max_chunk_chars}")

    chunks = pack_lines(filter_lines(lines, min_line_chars, skip_words), max_chunk_chars)
    logger.info("Chunks: %d (max %d chars)", len(chunks), max_chunk_chars)
    return chunks


def chunk_transcript(text: str, **kwargs) -> list[str]:
    return build_chunks((text or "").splitlines(), **kwargs)


def chunk_by_scene(
    text: str,
    boundaries: Sequence[SceneBoundary],
    max_chunk_chars: Optional[int] = None,
    min_line_chars: Optional[int] = None,
    skip_words: Optional[Sequence[str]] = None,
) -> list[SceneChunk]:
    """
    Assign lines to scenes, then chunk each scene on its own (scene order).
    Chunks carry the lines as they were read, not re-rendered.
    Without boundaries the whole transcript is scene 0.
    """
    if not boundaries:
        return [
            SceneChunk(0, c)
            for c in chunk_transcript(
                text, max_chunk_chars=max_chunk_chars, min_line_chars=min_line_chars, skip_words=skip_words
            )
        ]
    scenes = assign_transcript(text, boundaries)
    out: list[SceneChunk] = []
    for k in sorted(scenes):
        scene_lines = [line.raw or line.render() for line in scenes[k]]
        for chunk in build_chunks(
            scene_lines, max_chunk_chars=max_chunk_chars, min_line_chars=min_line_chars, skip_words=skip_words
        ):
            out.append(SceneChunk(k, chunk))
    return out
