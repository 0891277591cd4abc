"""
Chronology merge: per-speaker transcripts -> one ordered transcript.

Each speaker is transcribed from their own container, so the engine never sees
who spoke when. Ordering comes from the speaking segments recorded at capture:

- Speakers are ordered by the start of their FIRST closed segment
  (ties keep segment closing order).
- Each speaker's full text is emitted once, as one canonical line stamped with
  that first-appearance time.
- Speakers with text but no closed segment follow, in input order, unstamped.
- No segments at all: unordered per-speaker listing, unstamped.
- Empty / whitespace-only texts are omitted.

Interleaving by consecutive segment runs is not supported: per-speaker
texts carry no internal timing, so any split across runs would be invented.
"""
from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Sequence

from scribe.diarization.models import SpeakingSegment
from scribe.transcript.format import format_line

logger = logging.getLogger(__name__)


def first_appearances(segments: Sequence[SpeakingSegment]) -> dict[str, int]:
    """speaker_id -> start_ms of the speaker's first closed segment."""
    first: dict[str, int] = {}
    for segment in segments:
        if segment.speaker_id not in first or segment.start_ms < first[segment.speaker_id]:
            first[segment.speaker_id] = segment.start_ms
    return first


def order_speakers(speaker_ids: Sequence[str], segments: Sequence[SpeakingSegment]) -> list[str]:
    """Speakers with segments by first start, then the rest in given order."""
    first = first_appearances(segments)
    closing_rank = {}
    for rank, segment in enumerate(segments):
        closing_rank.setdefault(segment.speaker_id, rank)
    with_segments = sorted(
        (s for s in speaker_ids if s in first),
        key=lambda s: (first[s], closing_rank[s]),
    )
    without = [s for s in speaker_ids if s not in first]
    return with_segments + without


def merge_chronologically(
    texts: Mapping[str, str],
    segments: Sequence[SpeakingSegment],
    label: Optional[Callable[[str], str]] = None,
) -> str:
    """Build the ordered transcript (one canonical line per speaker)."""
    label = label or (lambda speaker_id: speaker_id)
    speakers = [s for s, text in texts.items() if text and text.strip()]
    if not speakers:
        return ""

    if not segments:
        logger.info("No speaking segments; listing %d speakers unordered", len(speakers))
        return "\n".join(format_line(None, label(s), texts[s]) for s in speakers)

    first = first_appearances(segments)
    lines = []
    for speaker_id in order_speakers(speakers, segments):
        start_ms = first.get(speaker_id)
        start_sec = start_ms / 1000.0 if start_ms is not None else None
        lines.append(format_line(start_sec, label(speaker_id), texts[speaker_id]))
    return "\n".join(lines)
