"""
Session finalization: stop capture, transcribe, merge, persist, optionally revise.

    recorder.stop()  ->  <session>.wav + <session>_<speaker>.wav
    each checkpoint part, then the final stretch:
        per-speaker containers -> Transcriber (concurrently)
        texts + that stretch's speaking segments -> merge_chronologically
        (no per-speaker text at all -> transcribe the mixed container instead)
    parts in checkpoint order -> <TRANSCRIPT_DIR>/<session>.txt

The checkpoint handler from make_checkpoint_handler transcribes a part while the
session is still recording and writes <session>_checkpoint_NNN.txt; the text it
returns is kept on the part, so finalization only re-transcribes parts whose
handler failed or never ran.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from scribe.asr.base import Transcriber
from scribe.audio.recorder import CheckpointPart, SessionRecorder
from scribe.config import get_settings
from scribe.diarization.models import SpeakingSegment
from scribe.errors import TranscriptionError
from scribe.services.generation import GenerationEngine
from scribe.services.summary import revise_transcript
from scribe.transcript.format import parse_transcript
from scribe.transcript.merger import merge_chronologically
from scribe.transcript.writer import TranscriptWriter

logger = logging.getLogger(__name__)


@dataclass
class SessionTranscript:
    session_name: str
    audio_path: str
    transcript_path: str
    text: str
    speaker_count: int = 0


async def _transcribe_or_empty(transcriber: Transcriber, path: str) -> str:
    try:
        return (await transcriber.transcribe(path) or "").strip()
    except TranscriptionError as e:
        logger.warning("Transcription failed for %s: %s", path, e)
        return ""


async def transcribe_stretch(
    transcriber: Transcriber,
    speaker_paths: Mapping[str, str],
    segments: Sequence[SpeakingSegment],
    mixed_path: str,
    label: Callable[[str], str],
) -> tuple[str, set[str]]:
    """
    One stretch of the session (a checkpoint part or the final one) as merged
    text, plus the ids of speakers that produced text.
    """
    speaker_ids = list(speaker_paths)
    results = await asyncio.gather(*(_transcribe_or_empty(transcriber, speaker_paths[s]) for s in speaker_ids))
    texts = dict(zip(speaker_ids, results))
    body = merge_chronologically(texts, segments, label)
    if not body:
        logger.info("No per-speaker text in %s; transcribing mixed audio", mixed_path)
        body = await _transcribe_or_empty(transcriber, mixed_path)
    return body, {s for s, t in texts.items() if t}


def _part_label(part: CheckpointPart) -> Callable[[str], str]:
    return lambda speaker_id: part.labels.get(speaker_id) or f"User_{speaker_id[-4:]}"


def make_checkpoint_handler(
    transcriber: Transcriber,
    session_name: str,
    writer: Optional[TranscriptWriter] = None,
) -> Callable[[CheckpointPart], Awaitable[str]]:
    """Handler for SessionRecorder(checkpoint_handler=...): transcribe one part, write its file, return the text."""
    writer = writer or TranscriptWriter()

    async def handle(part: CheckpointPart) -> str:
        text, _ = await transcribe_stretch(
            transcriber, part.speaker_containers, part.segments, part.path, _part_label(part)
        )
        writer.write(
            session_name,
            text,
            suffix=f"_checkpoint_{part.number:03d}",
            title=f"Session Transcript (checkpoint {part.number})",
        )
        return text

    return handle


async def finalize_session(
    recorder: SessionRecorder,
    transcriber: Transcriber,
    writer: Optional[TranscriptWriter] = None,
) -> SessionTranscript:
    writer = writer or TranscriptWriter()
    session_name = recorder.session_name
    audio_path = await recorder.stop()
    await recorder.wait_background()

    bodies: list[str] = []
    speakers: set[str] = set()
    for part in recorder.checkpoint_parts:
        if part.transcript is not None:
            text = part.transcript
            line_labels = {line.speaker_label for line in parse_transcript(text)}
            speakers |= {s for s in part.speaker_containers if _part_label(part)(s) in line_labels}
        else:
            logger.info("Checkpoint %d has no transcript yet; transcribing now", part.number)
            text, part_speakers = await transcribe_stretch(
                transcriber, part.speaker_containers, part.segments, part.path, _part_label(part)
            )
            speakers |= part_speakers
        if text:
            bodies.append(text)

    final_text, final_speakers = await transcribe_stretch(
        transcriber, recorder.speaker_containers, recorder.segments(), audio_path, recorder.speaker_label
    )
    speakers |= final_speakers
    if final_text:
        bodies.append(final_text)

    body = "\n".join(bodies)
    if not body:
        body = f"[Transcription Failed]\n\nAudio file saved at: {audio_path}"

    transcript_path = writer.write(session_name, body)
    return SessionTranscript(
        session_name=session_name,
        audio_path=audio_path,
        transcript_path=transcript_path,
        text=body,
        speaker_count=len(speakers),
    )


async def revise_session(
    transcript: SessionTranscript,
    engine: GenerationEngine,
    revised_dir: Optional[str] = None,
) -> str:
    """Revise chunk by chunk and write <TRANSCRIPT_REVISED_DIR>/<session>_revised.txt."""
    writer = TranscriptWriter(revised_dir or get_settings().TRANSCRIPT_REVISED_DIR)
    revised = await revise_transcript(transcript.text, engine)
    return writer.write(
        transcript.session_name,
        revised,
        suffix="_revised",
        title="Session Transcript (Revised)",
    )
