"""Audio framer that repackages captured sample blocks into fixed-size frames."""

import time
import logging
from threading import Lock
from typing import Callable, Optional

import numpy as np

from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)

DEFAULT_FRAME_SIZE = 4096
DEFAULT_FRAME_DURATION_SECONDS = 0.085


class AudioFramer:
    """Accumulates raw float32 sample blocks into frames of exactly `buffer_size` samples.

    The framer runs on the capture thread: it only touches local memory and
    hands every sealed frame to `on_frame`. A delivered block that spans a
    frame boundary is split across as many frames as it fills. A sample-rate
    change requested from another thread is applied between blocks, never
    in the middle of one.
    """

    def __init__(self,
                 on_frame: Callable[[AudioFrame], None],
                 sample_rate: int = 16000,
                 frame_size: Optional[int] = None,
                 frame_duration_seconds: Optional[float] = None):
        """Initialize the framer.

        Args:
            on_frame: Called with each sealed frame, in order
            sample_rate: Sample rate of incoming blocks in Hz
            frame_size: Fixed frame length in samples (default 4096)
            frame_duration_seconds: Derive the frame length from the sample rate
                instead, e.g. 0.085 for ~85ms frames
        """
        if frame_size is not None and frame_duration_seconds is not None:
            raise ValueError("Specify either frame_size or frame_duration_seconds, not both")
        if frame_size is None and frame_duration_seconds is None:
            frame_size = DEFAULT_FRAME_SIZE

        self.on_frame = on_frame
        self.fixed_frame_size = frame_size
        self.frame_duration_seconds = frame_duration_seconds
        self.frames_emitted = 0
        self._lock = Lock()

        self._configure(sample_rate)
        logger.info(f"AudioFramer initialized: {self.sample_rate}Hz, "
                    f"{self.buffer_size} samples/frame")

    def _configure(self, sample_rate: int) -> None:
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        if self.fixed_frame_size is not None:
            buffer_size = int(self.fixed_frame_size)
        else:
            buffer_size = int(np.floor(sample_rate * self.frame_duration_seconds))
        if buffer_size <= 0:
            raise ValueError(f"Frame size must be positive, got {buffer_size}")

        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self._buffer = np.zeros(buffer_size, dtype=np.float32)
        self._buffer_index = 0

    @property
    def pending_samples(self) -> int:
        """Samples accumulated toward the next frame."""
        return self._buffer_index

    def reconfigure(self, sample_rate: int) -> None:
        """Apply a new sample rate, discarding any partially filled frame."""
        with self._lock:
            discarded = self._buffer_index
            self._configure(sample_rate)
        logger.info(f"AudioFramer reconfigured: {self.sample_rate}Hz, "
                    f"{self.buffer_size} samples/frame (discarded {discarded} pending samples)")

    def process(self, block) -> int:
        """Copy a block of samples into the accumulation buffer.

        Args:
            block: Sequence of mono float samples of any length

        Returns:
            Number of frames emitted while consuming the block
        """
        samples = np.asarray(block, dtype=np.float32).reshape(-1)
        emitted = 0
        position = 0
        total = len(samples)

        with self._lock:
            while position < total:
                remaining_in_buffer = self.buffer_size - self._buffer_index
                to_copy = min(remaining_in_buffer, total - position)
                self._buffer[self._buffer_index:self._buffer_index + to_copy] = samples[position:position + to_copy]
                self._buffer_index += to_copy
                position += to_copy

                if self._buffer_index == self.buffer_size:
                    self._emit()
                    emitted += 1

        return emitted

    def _emit(self) -> None:
        # The accumulation buffer is reused, so the frame gets its own copy
        sealed = self._buffer.copy()
        sealed.setflags(write=False)
        frame = AudioFrame(
            samples=sealed,
            sample_rate=self.sample_rate,
            sequence_number=self.frames_emitted,
            timestamp=time.time(),
        )
        self.frames_emitted += 1
        self._buffer_index = 0
        self.on_frame(frame)
