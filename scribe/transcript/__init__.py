"""Transcript assembly: line format, chronology merge, scenes, chunking, persistence."""
from .format import TranscriptLine, format_line, format_timestamp, normalize_transcript, parse_line, parse_transcript
from .merger import merge_chronologically
from .scenes import (
    SceneBoundary,
    assign_to_scenes,
    assign_transcript,
    boundaries_from_cut_points,
    boundaries_from_width,
)
from .chunking import SceneChunk, build_chunks, chunk_by_scene, chunk_transcript
from .writer import TranscriptWriter

__all__ = [
    "TranscriptLine",
    "format_line",
    "format_timestamp",
    "normalize_transcript",
    "parse_line",
    "parse_transcript",
    "merge_chronologically",
    "SceneBoundary",
    "assign_to_scenes",
    "assign_transcript",
    "boundaries_from_cut_points",
    "boundaries_from_width",
    "SceneChunk",
    "build_chunks",
    "chunk_by_scene",
    "chunk_transcript",
    "TranscriptWriter",
]
