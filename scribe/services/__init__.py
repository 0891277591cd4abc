"""Services: generation engine client and chunked revise/summarize."""
from .generation import GenerationEngine, OllamaEngine
from .summary import TranscriptSummary, revise_transcript, summarize_transcript

__all__ = ["GenerationEngine", "OllamaEngine", "TranscriptSummary", "revise_transcript", "summarize_transcript"]
