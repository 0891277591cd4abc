"""
PacketStore: per-speaker, append-only buffers of raw Opus frames.

Each speaker owns a bucket with its own lock, so concurrent streams from
different speakers never contend. The registry lock is only taken to create a
bucket or to snapshot the bucket list; it is never held while appending.

drain_all() swaps every bucket's list for a fresh one under that bucket's lock:
a frame that arrives while the drain is running lands either in the drained
list (append finished first) or in the new one, never both and never neither.
"""
from __future__ import annotations

import logging
import threading

from scribe.audio.frames import AudioFrame

logger = logging.getLogger(__name__)


class _Bucket:
    __slots__ = ("lock", "frames")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.frames: list[AudioFrame] = []


class PacketStore:
    """Thread-safe frame buffer partitioned by speaker id."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._buckets: dict[str, _Bucket] = {}
        self._closed = False
        self._dropped = 0

    def _bucket(self, speaker_id: str) -> _Bucket:
        bucket = self._buckets.get(speaker_id)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            bucket = self._buckets.get(speaker_id)
            if bucket is None:
                bucket = _Bucket()
                self._buckets[speaker_id] = bucket
            return bucket

    def register(self, speaker_id: str) -> None:
        """Create the speaker's bucket ahead of the first frame."""
        self._bucket(speaker_id)

    def append(self, speaker_id: str, frame: AudioFrame) -> bool:
        """
        Store one frame. Returns False when the frame was rejected
        (store closed, or empty payload). Never raises.
        """
        if self._closed:
            return False
        if frame is None or not frame.payload:
            self._dropped += 1
            logger.debug("PacketStore: dropped empty frame for speaker %s", speaker_id)
            return False
        bucket = self._bucket(speaker_id)
        with bucket.lock:
            bucket.frames.append(frame)
        return True

    def drain_all(self) -> dict[str, list[AudioFrame]]:
        """Atomically take every speaker's frames and leave empty buckets behind."""
        with self._registry_lock:
            snapshot = list(self._buckets.items())
        drained: dict[str, list[AudioFrame]] = {}
        for speaker_id, bucket in snapshot:
            with bucket.lock:
                frames, bucket.frames = bucket.frames, []
            if frames:
                drained[speaker_id] = frames
        return drained

    def count(self) -> int:
        """Total buffered frames across all speakers."""
        with self._registry_lock:
            buckets = list(self._buckets.values())
        total = 0
        for bucket in buckets:
            with bucket.lock:
                total += len(bucket.frames)
        return total

    def speaker_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._buckets.keys())

    def close(self) -> None:
        """Stop accepting frames. Buffered frames stay until drained."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped_frames(self) -> int:
        return self._dropped
