"""Transcription-related data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

DEFAULT_SPEAKER = "S1"


@dataclass(frozen=True)
class WordResult:
    """One recognized token of a transcript."""
    content: str
    start_time: float  # Seconds from session start
    end_time: float    # Seconds from session start
    confidence: float
    speaker: str = DEFAULT_SPEAKER

    def to_result_dict(self) -> Dict[str, Any]:
        """Convert to the saved transcript "result" format."""
        return {
            "alternatives": [{
                "content": self.content,
                "confidence": self.confidence,
                "speaker": self.speaker,
            }],
            "start_time": self.start_time,
            "end_time": self.end_time,
            "type": "word",
        }

    @classmethod
    def from_result_dict(cls, data: Dict[str, Any]) -> "WordResult":
        """Build a WordResult from the saved transcript "result" format.

        Raises:
            ValueError: If the entry has no alternatives
        """
        alternatives = data.get("alternatives") or []
        if not alternatives:
            raise ValueError(f"Transcript entry has no alternatives: {data!r}")
        best = alternatives[0]
        return cls(
            content=str(best.get("content", "")),
            start_time=float(data.get("start_time", 0.0)),
            end_time=float(data.get("end_time", 0.0)),
            confidence=float(best.get("confidence", 0.0)),
            speaker=best.get("speaker") or DEFAULT_SPEAKER,
        )


def flatten_transcript(words) -> str:
    """Space-join word contents in order."""
    return " ".join(word.content for word in words)


@dataclass(frozen=True)
class TranscriptSnapshot:
    """Read-only view of both transcript buffers after a mutation."""
    partial: Tuple[WordResult, ...] = field(default_factory=tuple)
    finalized: Tuple[WordResult, ...] = field(default_factory=tuple)
    text: str = ""
