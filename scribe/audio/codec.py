"""
Codec bridge: Opus frame → float32 PCM via opuslib.

- One OpusCodec per speaker stream: Opus decoders keep inter-frame state.
- decode() turns one packet into interleaved samples; downmix() averages L/R
  right after decode (missing right channel = left, so mono sources work).
- decode_frames() tolerates per-frame failures: it counts them and moves on.
  Zero usable frames in a batch raises NoAudioDecoded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, NamedTuple

import numpy as np

from scribe.audio.frames import AudioFrame, PcmBuffer
from scribe.errors import FrameDecodeError, NoAudioDecoded

logger = logging.getLogger(__name__)

# Largest Opus frame: 120ms @ 48kHz = 5760 samples per channel
MAX_FRAME_SAMPLES = 5760


class DecodedFrame(NamedTuple):
    samples: np.ndarray  # float32, interleaved when channels > 1
    channels: int
    sample_rate_hz: int


def _load_opus_decoder(sample_rate_hz: int, channels: int) -> Any:
    """Create an opuslib decoder. Requires libopus on the system."""
    try:
        import opuslib
    except ImportError as err:
        raise ImportError(
            "opuslib is required to decode Opus frames. "
            "Install with: pip install opuslib (and the libopus system library)"
        ) from err
    return opuslib.Decoder(sample_rate_hz, channels)


def downmix(samples: np.ndarray, channels: int) -> np.ndarray:
    """Interleaved float32 → mono by averaging left and right per sample."""
    samples = np.asarray(samples, dtype=np.float32)
    if channels <= 1:
        return samples
    usable = (len(samples) // channels) * channels
    frames = samples[:usable].reshape(-1, channels)
    left = frames[:, 0]
    right = frames[:, 1] if frames.shape[1] > 1 else left
    return ((left + right) / np.float32(2.0)).astype(np.float32)


class OpusCodec:
    """
    Wraps one Opus decoder. `decoder` may be injected (anything with
    decode_float(bytes, frame_size) -> float32 bytes); otherwise opuslib is loaded.
    """

    def __init__(self, sample_rate_hz: int = 48000, channels: int = 2, decoder: Any = None) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self._decoder = decoder if decoder is not None else _load_opus_decoder(sample_rate_hz, channels)

    def decode(self, payload: bytes) -> DecodedFrame:
        """Decode one packet. Raises FrameDecodeError on any decoder failure."""
        if not payload:
            raise FrameDecodeError("empty payload")
        try:
            raw = self._decoder.decode_float(bytes(payload), MAX_FRAME_SAMPLES)
        except Exception as e:
            raise FrameDecodeError(str(e)) from e
        samples = np.frombuffer(raw, dtype=np.float32)
        if samples.size == 0:
            raise FrameDecodeError("decoder returned no samples")
        return DecodedFrame(samples=samples, channels=self.channels, sample_rate_hz=self.sample_rate_hz)

    def decode_mono(self, payload: bytes) -> np.ndarray:
        decoded = self.decode(payload)
        return downmix(decoded.samples, decoded.channels)


CodecFactory = Callable[[], OpusCodec]


@dataclass
class DecodedBatch:
    """Result of decoding one speaker's frames: per-frame mono PCM with offsets."""

    speaker_id: str
    sample_rate_hz: int
    pieces: list[tuple[int, np.ndarray]]  # (capture_offset_ms, mono samples)
    decoded: int
    failed: int

    def to_buffer(self) -> PcmBuffer:
        samples = (
            np.concatenate([p for _, p in self.pieces]).astype(np.float32)
            if self.pieces
            else np.zeros(0, dtype=np.float32)
        )
        return PcmBuffer(
            samples=samples,
            sample_rate_hz=self.sample_rate_hz,
            frame_count=self.decoded,
            failed_frames=self.failed,
        )


def decode_frames(frames: Iterable[AudioFrame], codec: OpusCodec, speaker_id: str = "") -> DecodedBatch:
    """
    Decode frames in order with one codec. Failed frames are counted, not raised.
    Raises NoAudioDecoded when nothing decoded.
    """
    pieces: list[tuple[int, np.ndarray]] = []
    failed = 0
    total = 0
    for frame in frames:
        total += 1
        try:
            mono = codec.decode_mono(frame.payload)
        except FrameDecodeError as e:
            failed += 1
            logger.debug("Decode failed for speaker %s at %dms: %s", frame.speaker_id, frame.capture_offset_ms, e)
            continue
        pieces.append((frame.capture_offset_ms, mono))
    if failed:
        logger.info("Speaker %s: decoded %d/%d frames (%d errors)", speaker_id or "?", len(pieces), total, failed)
    if not pieces:
        raise NoAudioDecoded(f"No audio could be decoded for speaker {speaker_id or '?'} ({total} frames)")
    return DecodedBatch(
        speaker_id=speaker_id,
        sample_rate_hz=codec.sample_rate_hz,
        pieces=pieces,
        decoded=len(pieces),
        failed=failed,
    )
