"""Per-speaker session capture, WAV encoding and chronological transcript assembly."""

__version__ = "0.1.0"
