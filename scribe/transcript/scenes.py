"""
Scene boundaries and line-to-scene assignment.

Scenes are half-open windows [start, end) in seconds, contiguous and
non-overlapping. A line belongs to scene k when start_k <= t < end_k, so a line
starting exactly on a boundary belongs to the NEXT scene. Lines outside every
window are dropped.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from scribe.transcript.format import TranscriptLine, parse_transcript

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneBoundary:
    index: int
    start_sec: float
    end_sec: float

    def contains(self, t: float) -> bool:
        return self.start_sec <= t < self.end_sec


def boundaries_from_width(total_duration_sec: float, width_sec: float) -> list[SceneBoundary]:
    """
    Fixed-width windows [k*w, (k+1)*w) covering [0, total] inclusive:
    floor(total / w) + 1 windows, so a line stamped exactly at the end still lands.
    """
    if width_sec <= 0:
        raise ValueError(f"Scene width must be > 0, got {width_sec}")
    if total_duration_sec < 0:
        raise ValueError(f"Total duration must be >= 0, got {total_duration_sec}")
    count = int(math.floor(total_duration_sec / width_sec)) + 1
    return [SceneBoundary(index=k, start_sec=k * width_sec, end_sec=(k + 1) * width_sec) for k in range(count)]


def boundaries_from_cut_points(end_times_sec: Sequence[float]) -> list[SceneBoundary]:
    """End times [e1, e2, ...] -> [0, e1), [e1, e2), ... Cut points must increase strictly."""
    boundaries: list[SceneBoundary] = []
    start = 0.0
    for k, end in enumerate(end_times_sec):
        if end <= start:
            raise ValueError(f"Scene cut points must be strictly increasing (got {end} after {start})")
        boundaries.append(SceneBoundary(index=k, start_sec=start, end_sec=float(end)))
        start = float(end)
    return boundaries


def scene_index(t: float, boundaries: Sequence[SceneBoundary]) -> int:
    """Index of the scene containing t, or -1."""
    if t is None or (isinstance(t, float) and math.isnan(t)):
        return -1
    for boundary in boundaries:
        if boundary.contains(t):
            return boundary.index
    return -1


def assign_to_scenes(
    lines: Iterable[TranscriptLine],
    boundaries: Sequence[SceneBoundary],
) -> dict[int, list[TranscriptLine]]:
    """scene index -> lines in input order. Lines outside all scenes are omitted."""
    scenes: dict[int, list[TranscriptLine]] = {}
    if not boundaries:
        return scenes
    assigned = 0
    dropped = 0
    for line in lines:
        k = scene_index(line.start_sec, boundaries)
        if k < 0:
            dropped += 1
            continue
        scenes.setdefault(k, []).append(line)
        assigned += 1
    logger.info("Assigned %d lines to %d scenes (%d outside all scenes)", assigned, len(scenes), dropped)
    return scenes


def assign_transcript(text: str, boundaries: Sequence[SceneBoundary]) -> dict[int, list[TranscriptLine]]:
    """Parse raw transcript text, then assign. Malformed lines are dropped one by one."""
    return assign_to_scenes(parse_transcript(text), boundaries)
