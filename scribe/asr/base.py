"""
Transcriber: interface to the external speech-recognition engine.

Implementations: WhisperCppTranscriber (whisper.cpp binary), LocalWhisperTranscriber
(faster-whisper). Called once per full-session / per-speaker container and once per
checkpoint container, independently. All run blocking work in an executor.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class Transcriber(ABC):
    """Turns one WAV container (16kHz mono int16) into plain text."""

    @abstractmethod
    async def transcribe(self, container_path: str) -> str:
        """
        Transcribe one container file. Returns stripped text (may be empty).
        Raises TranscriptionError when the engine fails.
        Must not block the event loop.
        """
        ...
