"""
Speaker timing for chronological transcript assembly.

- One capture stream per speaker, so no audio separation or label inference.
- SpeakingSegmentTracker records when each stream opened and closed.
- The closed-segment order feeds the chronology merger.
"""
from __future__ import annotations

from scribe.diarization.models import SpeakingSegment
from scribe.diarization.speaker_tracker import SpeakingSegmentTracker

__all__ = ["SpeakingSegment", "SpeakingSegmentTracker"]
