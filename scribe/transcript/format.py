"""
Canonical transcript line format: [timestamp] speaker - text

Example: [0:13] Paolo_Fontana - This is the dungeon you explored so far...

Timestamps are M:SS below one hour and H:MM:SS from one hour on. Speaker labels
are single tokens (spaces replaced upstream). Legacy forms written by earlier
revision prompts are normalized to the canonical one:
  Speaker [M:SS]: text   ->  [M:SS] Speaker - text
  **Speaker:** text or **Speaker**: text  ->  [--:--] Speaker - text
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

RE_STANDARD = re.compile(r"^\[([^\]]+)\]\s+(\S+)\s+-\s+(.*)$")
RE_LEGACY_SPEAKER_FIRST = re.compile(r"^([^\s\[]+)\s+\[([^\]]+)\]\s*:\s*(.*)$")
RE_LEGACY_BOLD = re.compile(r"^\*\*([^*:]+)(?::\*\*|\*\*\s*:)\s*(.*)$")

UNKNOWN_TIMESTAMP = "--:--"


@dataclass(frozen=True)
class TranscriptLine:
    """One utterance: start time (seconds), speaker label, text."""

    start_sec: float
    speaker_label: str
    text: str
    raw: str = field(default="", compare=False, repr=False)  # line as read, when parsed

    def render(self) -> str:
        return format_line(self.start_sec, self.speaker_label, self.text)


def format_timestamp(seconds: Optional[float]) -> str:
    """Seconds -> M:SS or H:MM:SS. None -> --:--."""
    if seconds is None:
        return UNKNOWN_TIMESTAMP
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_timestamp(value: str) -> Optional[float]:
    """'0:13', '[1:05]', '1:00:00' -> seconds. None when not parseable."""
    if not value or not isinstance(value, str):
        return None
    cleaned = value.strip().lstrip("[").rstrip("]").strip()
    parts = cleaned.split(":")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return None
    if any(n < 0 for n in numbers):
        return None
    if len(numbers) == 2:
        minutes, secs = numbers
        return float(minutes * 60 + secs)
    if len(numbers) == 3:
        hours, minutes, secs = numbers
        return float(hours * 3600 + minutes * 60 + secs)
    return None


def format_line(start_sec: Optional[float], speaker_label: str, text: str) -> str:
    """Render one canonical line; text is collapsed onto a single line."""
    flat = " ".join((text or "").split())
    return f"[{format_timestamp(start_sec)}] {speaker_label} - {flat}"


def parse_line(line: str) -> Optional[TranscriptLine]:
    """Canonical line -> TranscriptLine. None for malformed lines or unparsable timestamps."""
    trimmed = (line or "").strip()
    if not trimmed:
        return None
    m = RE_STANDARD.match(trimmed)
    if not m:
        return None
    timestamp, speaker, text = m.groups()
    start = parse_timestamp(timestamp)
    if start is None:
        return None
    return TranscriptLine(start_sec=start, speaker_label=speaker, text=text.strip(), raw=line)


def parse_transcript(text: str) -> list[TranscriptLine]:
    """Parse every line; malformed ones are dropped individually."""
    out: list[TranscriptLine] = []
    dropped = 0
    for raw in (text or "").splitlines():
        if not raw.strip():
            continue
        parsed = parse_line(raw)
        if parsed is None:
            dropped += 1
            continue
        out.append(parsed)
    if dropped:
        logger.debug("Dropped %d unparsable transcript lines", dropped)
    return out


def normalize_line(line: str) -> str:
    """One line -> canonical form when a known legacy form is recognised; else unchanged (trimmed)."""
    trimmed = (line or "").strip()
    if not trimmed:
        return ""
    if RE_STANDARD.match(trimmed):
        return trimmed
    m = RE_LEGACY_SPEAKER_FIRST.match(trimmed)
    if m:
        speaker, timestamp, text = m.groups()
        return f"[{timestamp}] {speaker} - {text.strip()}"
    m = RE_LEGACY_BOLD.match(trimmed)
    if m:
        speaker, text = m.groups()
        label = "_".join(speaker.split())
        return f"[{UNKNOWN_TIMESTAMP}] {label} - {text.strip()}"
    return trimmed


def normalize_transcript(transcript: str) -> str:
    if not transcript or not transcript.strip():
        return transcript
    lines = (normalize_line(l) for l in transcript.splitlines())
    return "\n".join(l for l in lines if l)
