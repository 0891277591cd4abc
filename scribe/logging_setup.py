"""Logging setup for the capture and transcript pipeline."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from scribe.config import get_settings

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the root logger: stdout always, plus a file when log_file (or LOG_FILE) is set.
    Arguments left as None fall back to LOG_LEVEL / LOG_FILE from settings.
    """
    settings = get_settings()
    level = (level or settings.LOG_LEVEL or "INFO").upper()
    log_file = log_file if log_file is not None else settings.LOG_FILE

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=format_string,
        handlers=handlers,
        force=True,
    )
    return logging.getLogger("scribe")
