"""Pytest configuration helpers."""

from __future__ import annotations

import sys
import threading
from pathlib import Path

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from scribe.audio.codec import OpusCodec  # noqa: E402


class FakeDecoder:
    """
    Stands in for opuslib.Decoder: each payload byte b becomes one stereo sample
    pair (b / 255, b / 255). Payloads starting with b"BAD" fail like corrupt packets.
    """

    def __init__(self) -> None:
        self.calls = 0

    def decode_float(self, data: bytes, frame_size: int) -> bytes:  # noqa: ARG002
        self.calls += 1
        if data.startswith(b"BAD"):
            raise ValueError("corrupted stream")
        mono = np.frombuffer(data, dtype=np.uint8).astype(np.float32) / np.float32(255.0)
        return np.repeat(mono, 2).astype(np.float32).tobytes()


class BlockingDecoder(FakeDecoder):
    """FakeDecoder that blocks on `release` and records how many decodes overlap."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def decode_float(self, data: bytes, frame_size: int) -> bytes:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            self.release.wait(5.0)
            return super().decode_float(data, frame_size)
        finally:
            with self._lock:
                self.active -= 1


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_codec_factory():
    return lambda: OpusCodec(48000, 2, decoder=FakeDecoder())


@pytest.fixture
def fake_clock():
    return FakeClock()
