"""
WhisperCppTranscriber: runs the whisper.cpp `main` binary on a container.

    main -m models/ggml-<model>.bin -f <wav> --no-timestamps -l <language>

stdout lines starting with "[" are engine chatter; everything else is text.
The subprocess runs in an executor so the event loop (and capture) keeps going.
"""
from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from typing import Optional

from scribe.asr.base import Transcriber
from scribe.config import get_settings
from scribe.errors import TranscriptionError

logger = logging.getLogger(__name__)


def clean_whisper_output(stdout: str) -> str:
    """Drop bracketed status lines and blanks; fall back to raw output if nothing is left."""
    lines = [line for line in stdout.splitlines() if line.strip() and not line.startswith("[")]
    return "\n".join(lines).strip() or stdout.strip()


class WhisperCppTranscriber(Transcriber):
    def __init__(
        self,
        main_path: Optional[str] = None,
        model_path: Optional[str] = None,
        language: Optional[str] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        cpp_dir = settings.WHISPER_CPP_DIR
        self._main_path = main_path or os.path.join(cpp_dir, "main")
        self._model_path = model_path or os.path.join(cpp_dir, "models", f"ggml-{settings.WHISPER_MODEL}.bin")
        self._language = language or settings.WHISPER_LANGUAGE
        self._timeout = timeout_sec or settings.WHISPER_TIMEOUT_SEC

    def command(self, container_path: str) -> list[str]:
        return [
            self._main_path,
            "-m",
            self._model_path,
            "-f",
            container_path,
            "--no-timestamps",
            "-l",
            self._language,
        ]

    def _transcribe_sync(self, container_path: str) -> str:
        if not os.path.exists(self._model_path):
            raise TranscriptionError(f"Whisper model not found at {self._model_path}")
        cmd = self.command(container_path)
        logger.info("Running: %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise TranscriptionError(f"whisper.cpp failed for {container_path}: {e}") from e
        if proc.returncode != 0:
            raise TranscriptionError(
                f"whisper.cpp exited with code {proc.returncode}: {proc.stderr.strip()[-500:]}"
            )
        return clean_whisper_output(proc.stdout)

    async def transcribe(self, container_path: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, container_path)
