"""Data models for the ShadowScribe application."""

from .audio import AudioStats, AudioFrame
from .events import FrameEvent, SessionEvent
from .transcription import WordResult, TranscriptSnapshot, flatten_transcript

__all__ = [
    "AudioStats",
    "AudioFrame",
    "FrameEvent",
    "SessionEvent",
    "WordResult",
    "TranscriptSnapshot",
    "flatten_transcript",
]
