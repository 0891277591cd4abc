"""
Speaking segment structure for chronological ordering.

Each segment records when one speaker's stream opened and closed:
- start_ms, end_ms: milliseconds, session-relative
- speaker_id: the capture source id (one stream per speaker, no separation needed)

end_ms is fixed when the stream ends and never altered afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SpeakingSegment:
    """One closed interval during which a speaker's stream was open."""

    speaker_id: str
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms
