"""
LocalWhisperTranscriber: Whisper-compatible ASR using faster-whisper.

- Model loaded ONCE by the caller (load_whisper_model) and injected.
- Containers are read back to float32 [-1, 1] with numpy; faster-whisper expects
  16kHz mono, which is what the encoder writes.
- Runs in executor so the event loop stays responsive.
"""
from __future__ import annotations

import asyncio
import wave
from typing import Any

import numpy as np

from scribe.asr.base import Transcriber
from scribe.audio.wav import read_container
from scribe.config import get_settings
from scribe.errors import TranscriptionError

# Type for shared WhisperModel (loaded at startup)
WhisperModelT = Any


def pcm_int16_to_float32(samples: np.ndarray) -> np.ndarray:
    """int16 samples → float32 [-1.0, 1.0]."""
    return samples.astype(np.float32) / 32768.0


def load_whisper_model() -> WhisperModelT:
    """Load faster-whisper model once. Called by the caller when ASR_BACKEND=local."""
    try:
        from faster_whisper import WhisperModel
    except ImportError as err:
        raise ImportError(
            "faster-whisper is required for ASR_BACKEND=local. "
            "Install with: pip install faster-whisper"
        ) from err
    settings = get_settings()
    return WhisperModel(
        settings.LOCAL_WHISPER_MODEL,
        device=settings.LOCAL_WHISPER_DEVICE,
        compute_type=settings.LOCAL_WHISPER_COMPUTE_TYPE,
    )


class LocalWhisperTranscriber(Transcriber):
    """Local Whisper via faster-whisper. Uses a shared model (singleton)."""

    def __init__(self, model: WhisperModelT | None = None, language: str | None = None) -> None:
        self._model = model
        settings = get_settings()
        lang = language or settings.WHISPER_LANGUAGE
        self._language = None if lang == "auto" else lang
        self._beam_size = settings.LOCAL_WHISPER_BEAM_SIZE

    def _transcribe_sync(self, container_path: str) -> str:
        if self._model is None:
            raise TranscriptionError("No Whisper model loaded")
        try:
            with open(container_path, "rb") as f:
                rate, _, samples = read_container(f.read())
        except (OSError, EOFError, wave.Error) as e:
            raise TranscriptionError(f"Could not read {container_path}: {e}") from e
        if rate != get_settings().TARGET_SAMPLE_RATE:
            raise TranscriptionError(f"Unexpected sample rate {rate} in {container_path}")

        segments, _ = self._model.transcribe(
            pcm_int16_to_float32(samples),
            beam_size=self._beam_size,
            language=self._language,
            vad_filter=True,
            vad_parameters=dict(min_silence_duration_ms=300, speech_pad_ms=100),
        )
        parts = [(seg.text or "").strip() for seg in segments]
        return " ".join(p for p in parts if p).strip()

    async def transcribe(self, container_path: str) -> str:
        """Run _transcribe_sync in executor so the event loop is not blocked."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, container_path)
