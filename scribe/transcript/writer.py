"""
TranscriptWriter: one text file per session (and per checkpoint / revision).

File layout:
    <title>
    Session: <name>
    Date: <local time>
    ==================================================
    <blank line>
    <body>

Writes are temp-then-rename so a reader never sees half a transcript.
read_body() strips the header again for downstream chunking.
"""
from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from typing import Optional

from scribe.config import get_settings

logger = logging.getLogger(__name__)

HEADER_RULE = "=" * 50


def _format_header(title: str, session_name: str, when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return f"{title}\nSession: {session_name}\nDate: {when:%Y-%m-%d %H:%M:%S}\n{HEADER_RULE}\n\n"


def strip_header(content: str) -> str:
    """Body without the header block (content unchanged when there is none)."""
    marker = f"{HEADER_RULE}\n"
    idx = content.find(marker)
    if idx < 0:
        return content
    return content[idx + len(marker):].lstrip("\n")


class TranscriptWriter:
    """Writes session transcripts under one directory."""

    def __init__(self, transcript_dir: Optional[str] = None) -> None:
        self._dir = transcript_dir or get_settings().TRANSCRIPT_DIR

    @property
    def directory(self) -> str:
        return self._dir

    def path_for(self, session_name: str, suffix: str = "") -> str:
        return os.path.join(self._dir, f"{session_name}{suffix}.txt")

    def write(
        self,
        session_name: str,
        body: str,
        *,
        suffix: str = "",
        title: str = "Session Transcript",
        when: Optional[datetime] = None,
    ) -> str:
        """Write header + body, return the path. OSError propagates to the caller."""
        os.makedirs(self._dir, exist_ok=True)
        path = self.path_for(session_name, suffix)
        content = _format_header(title, session_name, when) + (body or "").rstrip("\n") + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=self._dir, prefix=".tmp_", suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, path)
        except OSError:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise
        logger.info("Transcript saved: %s", path)
        return path

    @staticmethod
    def read_body(path: str) -> str:
        with open(path, encoding="utf-8") as f:
            return strip_header(f.read())
