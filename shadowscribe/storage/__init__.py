"""Transcript storage."""

from .transcript_store import TranscriptStore

__all__ = ["TranscriptStore"]
