"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    block_size: int
    total_blocks: int


@dataclass(frozen=True)
class AudioFrame:
    """A sealed, fixed-length window of mono float32 samples."""
    samples: np.ndarray
    sample_rate: int
    sequence_number: int
    timestamp: float  # Time when the frame was sealed

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / self.sample_rate
