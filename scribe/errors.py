"""
Error taxonomy for capture, encoding and transcript assembly.

- Frame-level errors (FrameDecodeError) are counted and never escalate.
- Batch-level errors (NoAudioCollected, NoAudioDecoded) escalate once to the
  operation that asked for encoding; that operation substitutes a silent container.
- ContainerWriteError is fatal for one artifact only; capture keeps running.
- CheckpointError never reaches the live capture path.
"""
from __future__ import annotations


class ScribeError(Exception):
    """Base class for all errors raised by this package."""


class FrameDecodeError(ScribeError):
    """One compressed frame could not be decoded."""


class NoAudioCollected(ScribeError):
    """The packet batch was empty: nothing to encode."""


class NoAudioDecoded(ScribeError):
    """Frames were collected but none of them decoded to usable PCM."""


class ContainerWriteError(ScribeError):
    """A container could not be persisted (disk full, permissions, ...)."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Could not write container {path}: {cause}")


class CheckpointError(ScribeError):
    """A checkpoint drain/encode/write cycle failed."""

    def __init__(self, number: int, cause: BaseException | None = None) -> None:
        self.number = number
        self.cause = cause
        super().__init__(f"Checkpoint {number} failed: {cause}")


class SessionStateError(ScribeError):
    """Operation not allowed in the session's current state (e.g. stop twice)."""


class TranscriptionError(ScribeError):
    """The external transcription engine failed for one container."""


class GenerationError(ScribeError):
    """The external generation engine failed for one chunk."""
