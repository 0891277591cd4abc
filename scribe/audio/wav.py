"""
Resample, quantize and containerize PCM as 16-bit WAV.

Container layout is the canonical 44-byte RIFF/WAVE PCM header followed by
little-endian int16 samples; the stdlib wave writer produces exactly that.
Writes go to a temp file in the target directory and are renamed into place,
so readers never see a half-written container.
"""
from __future__ import annotations

import io
import logging
import math
import os
import tempfile
import wave

import numpy as np

from scribe.audio.frames import PcmBuffer
from scribe.errors import ContainerWriteError

logger = logging.getLogger(__name__)

WAV_HEADER_BYTES = 44
DEFAULT_TARGET_RATE = 16000


def resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """
    Linear-interpolation resample. Identity when rates match.
    Output length is floor(len / (from_rate / to_rate)).
    """
    samples = np.asarray(samples, dtype=np.float32)
    if from_rate == to_rate:
        return samples
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive ({from_rate} -> {to_rate})")
    ratio = from_rate / to_rate
    new_length = int(math.floor(len(samples) / ratio))
    if new_length <= 0:
        return np.zeros(0, dtype=np.float32)

    src = samples.astype(np.float64)
    src_index = np.arange(new_length, dtype=np.float64) * ratio
    lo = np.floor(src_index).astype(np.int64)
    hi = np.minimum(lo + 1, len(src) - 1)
    t = src_index - lo
    return (src[lo] * (1.0 - t) + src[hi] * t).astype(np.float32)


def quantize(samples: np.ndarray) -> bytes:
    """Float [-1, 1] → int16 LE bytes. Positive scale 32767, negative 32768, round half up."""
    s = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(s < 0, s * 32768.0, s * 32767.0)
    return np.floor(scaled + 0.5).astype("<i2").tobytes()


def build_container(
    pcm_bytes: bytes,
    sample_rate_hz: int = DEFAULT_TARGET_RATE,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Header + payload as one WAV byte string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(bits_per_sample // 8)
        wav.setframerate(sample_rate_hz)
        wav.writeframes(pcm_bytes)
    return buf.getvalue()


def read_container(data: bytes) -> tuple[int, int, np.ndarray]:
    """Parse a 16-bit WAV: (sample_rate, channels, int16 samples)."""
    with wave.open(io.BytesIO(data), "rb") as wav:
        rate = wav.getframerate()
        channels = wav.getnchannels()
        frames = wav.readframes(wav.getnframes())
    return rate, channels, np.frombuffer(frames, dtype="<i2")


def silent_container(sample_rate_hz: int = DEFAULT_TARGET_RATE, seconds: float = 1.0) -> bytes:
    """Zero-valued 16-bit mono container (1s @ 16kHz = 32000 data bytes)."""
    n_samples = int(round(sample_rate_hz * seconds))
    return build_container(bytes(n_samples * 2), sample_rate_hz)


def encode_pcm(buffer: PcmBuffer, target_rate: int = DEFAULT_TARGET_RATE) -> bytes:
    """Resample → quantize → container."""
    resampled = resample(buffer.samples, buffer.sample_rate_hz, target_rate)
    return build_container(quantize(resampled), target_rate)


def write_container(path: str, data: bytes) -> str:
    """
    Persist all-or-nothing: temp file in the same directory, then os.replace.
    Caller guarantees the parent directory exists. Raises ContainerWriteError.
    """
    directory = os.path.dirname(path) or "."
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp_", suffix=".wav")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise ContainerWriteError(path, e) from e
    logger.info("Saved WAV to %s (%.1f KB)", path, len(data) / 1024.0)
    return path
