"""Event models for pub/sub frame and session processing."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class FrameEvent:
    """An encoded audio frame ready for network transmission."""
    payload: bytes
    sequence_number: int
    sample_rate: int
    sample_count: int
    timestamp: float  # Unix timestamp when the frame was sealed


@dataclass
class SessionEvent:
    """Session lifecycle event."""
    event_id: str
    event_type: str  # "connecting", "open", "closed", "error"
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
