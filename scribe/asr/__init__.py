"""ASR: swappable Whisper engines behind the Transcriber interface."""
from .base import Transcriber
from .local_whisper import LocalWhisperTranscriber, load_whisper_model
from .whisper_cpp import WhisperCppTranscriber


def create_transcriber(model=None) -> Transcriber:
    """Transcriber for ASR_BACKEND. For "local", pass the loaded model (or it is loaded now)."""
    from scribe.config import get_settings

    if get_settings().ASR_BACKEND == "local":
        return LocalWhisperTranscriber(model=model if model is not None else load_whisper_model())
    return WhisperCppTranscriber()


__all__ = [
    "Transcriber",
    "LocalWhisperTranscriber",
    "WhisperCppTranscriber",
    "create_transcriber",
    "load_whisper_model",
]
