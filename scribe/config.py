"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Source audio: Opus frames as delivered by the voice gateway (48kHz stereo, 20ms)
    SOURCE_SAMPLE_RATE: int = 48000
    SOURCE_CHANNELS: int = 2
    OPUS_FRAME_MS: int = 20

    # Output containers: PCM 16-bit mono at the transcription engine's rate
    TARGET_SAMPLE_RATE: int = 16000
    SILENT_FALLBACK_SECONDS: float = 1.0  # written when nothing could be captured/decoded

    RECORDINGS_DIR: str = "./recordings"
    SAVE_SPEAKER_CONTAINERS: bool = True  # one extra WAV per speaker on stop

    # Checkpoints bound memory during long sessions: drain + encode every N seconds.
    CHECKPOINT_ENABLED: bool = True
    CHECKPOINT_INTERVAL_SEC: float = 1800.0

    # Transcripts
    TRANSCRIPT_DIR: str = "./transcripts"
    TRANSCRIPT_REVISED_DIR: str = "./transcripts-revised"

    # Chunking for the generation engine (limited context)
    CHUNK_SIZE_CHARS: int = 4000
    VALUABLE_LINE_CHARS: int = 40  # shorter lines carry too little to keep
    SKIPPABLE_WORDS: str = ""  # comma-separated low-information terms
    SCENE_WIDTH_SEC: float = 600.0

    # ASR backend: "whisper_cpp" (external binary) | "local" (faster-whisper)
    ASR_BACKEND: Literal["whisper_cpp", "local"] = "whisper_cpp"
    WHISPER_CPP_DIR: str = "./whisper.cpp"
    WHISPER_MODEL: str = "large-v3"
    WHISPER_LANGUAGE: str = "auto"
    WHISPER_TIMEOUT_SEC: float = 3600.0

    # Local Whisper (when ASR_BACKEND=local); model loaded once by the caller
    LOCAL_WHISPER_MODEL: str = "base"  # base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16"] = "int8"
    LOCAL_WHISPER_BEAM_SIZE: int = 5

    # Generation engine (revise / summarize)
    OLLAMA_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "mistral"
    OLLAMA_TIMEOUT_SEC: float = 300.0
    GENERATION_MAX_TOKENS: int = 2048
    GENERATION_TEMPERATURE: float = 0.2
    SUMMARY_ROLLING_MAX_CHARS: int = 4000  # re-compress rolling summary above this

    # Logging: level (DEBUG, INFO, WARNING, ERROR); empty LOG_FILE = console only.
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

    def skippable_words(self) -> list[str]:
        """SKIPPABLE_WORDS as a list (blank entries removed)."""
        return [w.strip() for w in self.SKIPPABLE_WORDS.split(",") if w.strip()]


def get_settings() -> Settings:
    return Settings()
