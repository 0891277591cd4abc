"""
SessionRecorder: lifecycle of one per-speaker recording session.

- IDLE -> RECORDING -> STOPPED. stop() is allowed exactly once.
- Each speaker arrival opens a speaking segment and registers a packet bucket;
  departure closes the segment. Buffered frames stay until the next drain.
- push_frame() is safe from any thread and only touches the speaker's bucket.
- Drain + encode (checkpoint or stop) is the only session-wide critical section:
  one asyncio.Lock serializes them. Decode/resample/encode and file writes run in
  the default executor so frame arrival is never blocked.
- A batch with nothing collected or nothing decodable still produces a valid,
  silent container.
- Each checkpoint becomes a CheckpointPart: the mixed container, per-speaker
  containers and the speaking segments of that stretch. Parts are handed to
  checkpoint_handler as detached tasks whose failures are logged only; a str
  returned by the handler is kept as the part's transcript.
- The drain lock is held until the executor write has finished, even when the
  awaiting task is cancelled.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import os
import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import numpy as np

from scribe.audio.checkpoint import CheckpointScheduler
from scribe.audio.codec import DecodedBatch, OpusCodec, decode_frames
from scribe.audio.frames import AudioFrame, PcmBuffer
from scribe.audio.packet_store import PacketStore
from scribe.audio.wav import encode_pcm, silent_container, write_container
from scribe.config import get_settings
from scribe.diarization.models import SpeakingSegment
from scribe.diarization.speaker_tracker import SpeakingSegmentTracker
from scribe.errors import (
    CheckpointError,
    ContainerWriteError,
    NoAudioCollected,
    NoAudioDecoded,
    SessionStateError,
)

logger = logging.getLogger(__name__)

class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


@dataclass
class CheckpointPart:
    """Everything one checkpoint drained, in session-relative time."""

    number: int
    path: str
    speaker_containers: dict[str, str] = field(default_factory=dict)
    segments: list[SpeakingSegment] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    transcript: Optional[str] = None


CheckpointHandler = Callable[[CheckpointPart], Awaitable[Any]]


@dataclass
class EncodedSession:
    """Containers produced from one drain: the mixed session plus one per speaker."""

    mixed: bytes
    speakers: dict[str, bytes] = field(default_factory=dict)
    decoded_frames: int = 0
    failed_frames: int = 0


def _mix_batches(batches: list[DecodedBatch]) -> PcmBuffer:
    """All speakers' decoded frames ordered by capture offset (stable), concatenated."""
    pieces: list[tuple[int, int, np.ndarray]] = []
    for order, batch in enumerate(batches):
        for offset_ms, samples in batch.pieces:
            pieces.append((offset_ms, order, samples))
    pieces.sort(key=lambda p: (p[0], p[1]))
    samples = np.concatenate([p[2] for p in pieces]).astype(np.float32)
    return PcmBuffer(
        samples=samples,
        sample_rate_hz=batches[0].sample_rate_hz,
        frame_count=sum(b.decoded for b in batches),
        failed_frames=sum(b.failed for b in batches),
    )


def encode_session(
    drained: dict[str, list[AudioFrame]],
    codec_factory: Callable[[], OpusCodec],
    target_rate: int,
    per_speaker: bool = True,
) -> EncodedSession:
    """
    Decode each speaker with its own codec, then encode the mixed session and
    (optionally) every speaker on their own. CPU-bound: run in an executor.
    Raises NoAudioCollected / NoAudioDecoded.
    """
    total = sum(len(frames) for frames in drained.values())
    if total == 0:
        raise NoAudioCollected("No audio packets collected")
    logger.info("Processing %d Opus packets from %d speakers...", total, len(drained))

    batches: list[DecodedBatch] = []
    for speaker_id, frames in drained.items():
        try:
            codec = codec_factory()
        except Exception:
            logger.exception("Could not create decoder for speaker %s", speaker_id)
            continue
        try:
            batches.append(decode_frames(frames, codec, speaker_id))
        except NoAudioDecoded as e:
            logger.warning("%s", e)
    if not batches:
        raise NoAudioDecoded(f"No audio could be decoded from {total} packets")

    mixed = _mix_batches(batches)
    logger.info(
        "Decoded %d packets, %d errors; resampling %dHz -> %dHz",
        mixed.frame_count,
        mixed.failed_frames,
        mixed.sample_rate_hz,
        target_rate,
    )
    speakers: dict[str, bytes] = {}
    if per_speaker:
        for batch in batches:
            speakers[batch.speaker_id] = encode_pcm(batch.to_buffer(), target_rate)
    return EncodedSession(
        mixed=encode_pcm(mixed, target_rate),
        speakers=speakers,
        decoded_frames=mixed.frame_count,
        failed_frames=mixed.failed_frames,
    )


def _safe_label(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_")


class SessionRecorder:
    """
    One recording session. Create one instance per session; lookup by room/guild
    is the caller's business.
    """

    def __init__(
        self,
        session_name: str,
        *,
        record_dir: Optional[str] = None,
        codec_factory: Optional[Callable[[], OpusCodec]] = None,
        checkpoint_handler: Optional[CheckpointHandler] = None,
        checkpoint_enabled: Optional[bool] = None,
        checkpoint_interval_sec: Optional[float] = None,
        save_speaker_containers: Optional[bool] = None,
        target_rate: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = get_settings()
        self._session_name = session_name
        self._record_dir = record_dir or settings.RECORDINGS_DIR
        self._codec_factory = codec_factory or (
            lambda: OpusCodec(settings.SOURCE_SAMPLE_RATE, settings.SOURCE_CHANNELS)
        )
        self._checkpoint_handler = checkpoint_handler
        self._checkpoint_enabled = (
            checkpoint_enabled if checkpoint_enabled is not None else settings.CHECKPOINT_ENABLED
        )
        self._checkpoint_interval = checkpoint_interval_sec or settings.CHECKPOINT_INTERVAL_SEC
        self._save_speakers = (
            save_speaker_containers if save_speaker_containers is not None else settings.SAVE_SPEAKER_CONTAINERS
        )
        self._target_rate = target_rate or settings.TARGET_SAMPLE_RATE
        self._silent_seconds = settings.SILENT_FALLBACK_SECONDS
        self._clock = clock

        self._state = SessionState.IDLE
        self._started_at = 0.0
        self._store = PacketStore()
        self._tracker = SpeakingSegmentTracker()
        self._drain_lock = asyncio.Lock()
        self._live_lock = threading.Lock()
        self._live: set[str] = set()
        self._names: dict[str, str] = {}
        self._checkpoint_numbers = itertools.count(1)
        self._parts: list[CheckpointPart] = []
        self._scheduler: CheckpointScheduler | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._speaker_containers: dict[str, str] = {}
        self._output_path: str | None = None

    # --- lifecycle ---

    async def start(self) -> None:
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Session {self._session_name} already {self._state.value}")
        os.makedirs(self._record_dir, exist_ok=True)
        self._started_at = self._clock()
        self._state = SessionState.RECORDING
        if self._checkpoint_enabled:
            self._scheduler = CheckpointScheduler(self.checkpoint, self._checkpoint_interval)
            self._scheduler.start()
        logger.info("Recording started: %s, collecting Opus packets...", self._session_name)

    async def stop(self) -> str:
        """
        Halt frame acceptance, let an in-flight checkpoint finish, then drain and
        encode the rest into <session>.wav. Returns the container path.
        """
        if self._state is SessionState.IDLE:
            raise SessionStateError(f"Session {self._session_name} was never started")
        if self._state is SessionState.STOPPED:
            raise SessionStateError(f"Session {self._session_name} already stopped")
        self._state = SessionState.STOPPED
        self._store.close()

        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None

        self._tracker.close_all(self.elapsed_ms())
        with self._live_lock:
            self._live.clear()

        path = os.path.join(self._record_dir, f"{self._session_name}.wav")
        async with self._drain_lock:
            drained = self._store.drain_all()
            logger.info(
                "Recording stopped. Collected %d audio packets.",
                sum(len(f) for f in drained.values()),
            )
            self._speaker_containers = await self._run_encode(
                drained, path, self._save_speakers, self._session_name
            )
        self._output_path = path
        return path

    # --- speaker events (any thread) ---

    def speaker_joined(self, speaker_id: str, display_name: Optional[str] = None, at_ms: Optional[int] = None) -> bool:
        """Speaker's stream opened. Returns False for duplicates or when not recording."""
        if self._state is not SessionState.RECORDING:
            return False
        if display_name:
            self._names.setdefault(speaker_id, display_name)
        with self._live_lock:
            if speaker_id in self._live:
                return False
            self._live.add(speaker_id)
        self._tracker.mark_start(speaker_id, self._offset(at_ms))
        self._store.register(speaker_id)
        logger.info("User %s started speaking", self.speaker_label(speaker_id))
        return True

    def speaker_left(self, speaker_id: str, at_ms: Optional[int] = None) -> bool:
        """Speaker's stream ended. Buffered frames are kept until drained."""
        with self._live_lock:
            if speaker_id not in self._live:
                return False
            self._live.discard(speaker_id)
        self._tracker.mark_end(speaker_id, self._offset(at_ms))
        logger.info("User %s stopped speaking", self.speaker_label(speaker_id))
        return True

    def push_frame(self, speaker_id: str, payload: bytes, at_ms: Optional[int] = None) -> bool:
        """Buffer one Opus packet. Returns False when rejected."""
        if self._state is not SessionState.RECORDING:
            return False
        frame = AudioFrame(speaker_id=speaker_id, payload=payload, capture_offset_ms=self._offset(at_ms))
        return self._store.append(speaker_id, frame)

    # --- checkpoints ---

    async def checkpoint(self) -> Optional[str]:
        """
        Drain + encode everything buffered so far into a numbered container.
        Returns None when skipped (nothing buffered, or session no longer recording).
        Raises CheckpointError when the container cannot be written.
        """
        if self._state is not SessionState.RECORDING:
            return None
        async with self._drain_lock:
            if self._state is not SessionState.RECORDING:
                logger.info("Checkpoint rejected: session %s is stopping", self._session_name)
                return None
            if self._store.count() == 0:
                logger.debug("Checkpoint skipped: no packets buffered")
                return None
            number = next(self._checkpoint_numbers)
            drained = self._store.drain_all()
            segments = self._tracker.reset_keep_open(self.elapsed_ms())
            labels = self.speaker_labels()

            prefix = f"{self._session_name}_checkpoint_{number:03d}"
            path = os.path.join(self._record_dir, f"{prefix}.wav")
            try:
                speaker_paths = await self._run_encode(drained, path, self._save_speakers, prefix)
            except ContainerWriteError as e:
                raise CheckpointError(number, e) from e
            part = CheckpointPart(
                number=number,
                path=path,
                speaker_containers=speaker_paths,
                segments=segments,
                labels=labels,
            )
            self._parts.append(part)
        logger.info("Checkpoint %d saved: %s", number, path)
        self._dispatch_checkpoint(part)
        return path

    def _dispatch_checkpoint(self, part: CheckpointPart) -> None:
        if self._checkpoint_handler is None:
            return
        task = asyncio.create_task(self._run_checkpoint_handler(part))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_checkpoint_handler(self, part: CheckpointPart) -> None:
        try:
            result = await self._checkpoint_handler(part)
        except Exception:
            logger.exception("Checkpoint %d transcription failed (%s)", part.number, part.path)
            return
        if isinstance(result, str):
            part.transcript = result

    async def wait_background(self) -> None:
        """Wait for detached checkpoint handlers (tests, orderly shutdown)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # --- encoding (executor) ---

    async def _run_encode(
        self, drained: dict[str, list[AudioFrame]], path: str, per_speaker: bool, prefix: str
    ) -> dict[str, str]:
        """Encode in the executor. Cancellation still waits for the write to finish."""
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._encode_and_write, drained, path, per_speaker, prefix)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            await asyncio.wait([future])
            raise

    def _encode_and_write(
        self, drained: dict[str, list[AudioFrame]], path: str, per_speaker: bool, prefix: str
    ) -> dict[str, str]:
        try:
            encoded = encode_session(drained, self._codec_factory, self._target_rate, per_speaker)
        except (NoAudioCollected, NoAudioDecoded) as e:
            logger.warning("%s; writing %.0fs of silence to %s", e, self._silent_seconds, path)
            encoded = EncodedSession(mixed=silent_container(self._target_rate, self._silent_seconds))
        write_container(path, encoded.mixed)

        speaker_paths: dict[str, str] = {}
        for speaker_id, data in encoded.speakers.items():
            speaker_path = os.path.join(self._record_dir, f"{prefix}_{self.container_label(speaker_id)}.wav")
            try:
                speaker_paths[speaker_id] = write_container(speaker_path, data)
            except ContainerWriteError as e:
                logger.error("Error saving audio for %s: %s", speaker_id, e)
        return speaker_paths

    # --- accessors ---

    def _offset(self, at_ms: Optional[int]) -> int:
        return max(0, int(at_ms)) if at_ms is not None else self.elapsed_ms()

    def elapsed_ms(self) -> int:
        if self._state is SessionState.IDLE:
            return 0
        return max(0, int((self._clock() - self._started_at) * 1000))

    def speaker_label(self, speaker_id: str) -> str:
        """Display name as one token (for transcript lines and file names), else User_<last4>."""
        name = self._names.get(speaker_id)
        label = _safe_label(name) if name else ""
        return label or f"User_{speaker_id[-4:]}"

    def container_label(self, speaker_id: str) -> str:
        """speaker_label, plus the id when another speaker shares that label."""
        label = self.speaker_label(speaker_id)
        clash = any(
            other != speaker_id and self.speaker_label(other) == label for other in self._store.speaker_ids()
        )
        if not clash:
            return label
        return f"{label}_{_safe_label(speaker_id) or speaker_id}"

    def speaker_labels(self) -> dict[str, str]:
        return {speaker_id: self.speaker_label(speaker_id) for speaker_id in self._store.speaker_ids()}

    def segments(self) -> list[SpeakingSegment]:
        return self._tracker.segments()

    def speaker_ids(self) -> list[str]:
        return self._store.speaker_ids()

    def packet_count(self) -> int:
        return self._store.count()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_name(self) -> str:
        return self._session_name

    @property
    def speaker_containers(self) -> dict[str, str]:
        return dict(self._speaker_containers)

    @property
    def checkpoints(self) -> list[str]:
        return [part.path for part in self._parts]

    @property
    def checkpoint_parts(self) -> list[CheckpointPart]:
        """Saved checkpoints in number order."""
        return list(self._parts)

    @property
    def output_path(self) -> Optional[str]:
        return self._output_path
