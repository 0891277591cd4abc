"""
Speaking segment tracking for per-speaker capture.

Per speaker: Idle -> Speaking -> Idle.
- mark_start while Speaking is a no-op (duplicate start notifications).
- mark_end without an open segment is a no-op.
- segments() returns closed segments in closing order; chronology merge relies on it.
- reset_keep_open() is the checkpoint cut: closed segments go to the caller and
  live speakers continue in a fresh segment. clear() drops everything.

Stream open/close events arrive from the voice gateway's threads, so state is
guarded by one lock; every operation is a handful of dict/list ops.
"""
from __future__ import annotations

import logging
import threading

from scribe.diarization.models import SpeakingSegment

logger = logging.getLogger(__name__)


class SpeakingSegmentTracker:
    """Records start/end instants per speaker and keeps the closed segments."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._open: dict[str, int] = {}  # speaker_id -> start_ms
        self._closed: list[SpeakingSegment] = []

    def mark_start(self, speaker_id: str, at_ms: int) -> bool:
        """Open a segment. Returns False when the speaker was already speaking."""
        with self._lock:
            if speaker_id in self._open:
                return False
            self._open[speaker_id] = at_ms
            return True

    def mark_end(self, speaker_id: str, at_ms: int) -> SpeakingSegment | None:
        """Close the speaker's open segment. Returns it, or None if none was open."""
        with self._lock:
            start_ms = self._open.pop(speaker_id, None)
            if start_ms is None:
                return None
            segment = SpeakingSegment(speaker_id=speaker_id, start_ms=start_ms, end_ms=max(at_ms, start_ms))
            self._closed.append(segment)
        logger.debug("Segment closed: %s [%d, %d] ms", speaker_id, segment.start_ms, segment.end_ms)
        return segment

    def close_all(self, at_ms: int) -> list[SpeakingSegment]:
        """Close every open segment at at_ms (session stop)."""
        with self._lock:
            open_ids = list(self._open.keys())
        closed = []
        for speaker_id in open_ids:
            segment = self.mark_end(speaker_id, at_ms)
            if segment is not None:
                closed.append(segment)
        return closed

    def is_speaking(self, speaker_id: str) -> bool:
        with self._lock:
            return speaker_id in self._open

    def open_speakers(self) -> list[str]:
        with self._lock:
            return list(self._open.keys())

    def segments(self) -> list[SpeakingSegment]:
        """Closed segments, in the order they were closed."""
        with self._lock:
            return list(self._closed)

    def reset_keep_open(self, at_ms: int) -> list[SpeakingSegment]:
        """
        Checkpoint cut in one critical section: close every open segment at
        at_ms, hand back all closed segments, and re-open the speakers that were
        live at at_ms. A concurrent mark_end lands either before (no re-open) or
        after (closes the re-opened segment).
        """
        with self._lock:
            closed = list(self._closed)
            for speaker_id, start_ms in self._open.items():
                closed.append(SpeakingSegment(speaker_id=speaker_id, start_ms=start_ms, end_ms=max(at_ms, start_ms)))
            self._closed = []
            self._open = {speaker_id: max(at_ms, start_ms) for speaker_id, start_ms in self._open.items()}
        return closed

    def clear(self) -> None:
        with self._lock:
            self._open.clear()
            self._closed.clear()
