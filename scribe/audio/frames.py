"""
Audio data carried through the capture pipeline.

AudioFrame is the unit stored per speaker (raw Opus packet + session offset).
PcmBuffer is transient: decode/resample produce it, the encoder turns it into a
container before anything leaves the pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class AudioFrame:
    """One compressed packet from one speaker, timestamped relative to session start."""

    speaker_id: str
    payload: bytes
    capture_offset_ms: int

    def __post_init__(self) -> None:
        if self.capture_offset_ms < 0:
            raise ValueError(f"capture_offset_ms must be >= 0, got {self.capture_offset_ms}")


@dataclass
class PcmBuffer:
    """Mono float32 samples in [-1, 1] at sample_rate_hz."""

    samples: np.ndarray
    sample_rate_hz: int
    frame_count: int = 0  # frames that contributed (for logging)
    failed_frames: int = field(default=0)

    @property
    def duration_sec(self) -> float:
        if self.sample_rate_hz <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate_hz)
