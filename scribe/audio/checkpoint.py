"""
CheckpointScheduler: periodic drain + encode while a session is recording.

Multi-hour sessions would otherwise keep every Opus packet in memory until stop.
Every interval the scheduler calls the recorder's checkpoint coroutine, which
drains the packet store into a numbered container. A failed checkpoint is
logged and the loop keeps going; capture is never affected.

stop() sets the stop event and waits for the loop to exit. A checkpoint that is
already encoding always finishes: cancelling the task would not stop the
executor thread that is writing the container.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from scribe.errors import CheckpointError

logger = logging.getLogger(__name__)

CheckpointFn = Callable[[], Awaitable[Optional[str]]]


class CheckpointScheduler:
    """Fires `fire` every `interval_sec` seconds until stop()."""

    def __init__(self, fire: CheckpointFn, interval_sec: float) -> None:
        if interval_sec <= 0:
            raise ValueError(f"Checkpoint interval must be > 0, got {interval_sec}")
        self._fire = fire
        self._interval_sec = interval_sec
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._fired = 0
        self._saved = 0

    def start(self) -> None:
        """Start the loop on the running event loop. Idempotent."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Checkpoints every %.0fs", self._interval_sec)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_sec)
                break
            except asyncio.TimeoutError:
                pass
            self._fired += 1
            try:
                path = await self._fire()
            except CheckpointError as e:
                logger.warning("Checkpoint failed, capture continues: %s", e)
                continue
            if path:
                self._saved += 1

    async def stop(self, warn_after: float = 600.0) -> None:
        """
        Stop firing; wait for an in-flight checkpoint to finish. The checkpoint
        is never cancelled: a slow one is reported after warn_after seconds and
        still awaited.
        """
        self._stop_event.set()
        if self._task is None:
            return
        done, _ = await asyncio.wait([self._task], timeout=warn_after)
        if not done:
            logger.warning("Checkpoint still running after %.0fs; waiting for it to finish", warn_after)
            await asyncio.wait([self._task])
        if not self._task.cancelled() and self._task.exception() is not None:
            logger.error("Checkpoint loop ended with an error: %s", self._task.exception())
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def fired(self) -> int:
        """Number of times the interval elapsed (including skipped checkpoints)."""
        return self._fired

    @property
    def saved(self) -> int:
        """Number of checkpoints that produced a container."""
        return self._saved
