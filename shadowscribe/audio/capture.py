"""Audio capture module delivering float32 sample blocks from the input device."""

import logging
from threading import Thread, Event
from typing import Callable, Optional
from datetime import datetime

import numpy as np

from ..models.audio import AudioStats

logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous mono capture that hands raw sample blocks to a callback."""

    def __init__(
        self,
        callback: Callable[[np.ndarray], None],
        sample_rate: int = 16000,
        block_size: int = 1024,
        channels: int = 1,
        on_sample_rate: Optional[Callable[[int], None]] = None,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives each captured block as a float32 array
            sample_rate: Audio sample rate requested from the device
            block_size: Samples read per block (need not match the frame size)
            channels: Number of audio channels (1 for mono)
            on_sample_rate: Called from the capture thread, before the first
                block, when the device runs at a different rate than requested
        """
        self.block_callback = callback
        self.on_sample_rate = on_sample_rate
        self.requested_sample_rate = sample_rate
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.channels = channels

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_blocks = 0

        self.pyaudio_instance = None

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_blocks = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self) -> None:
        """Stop recording and clean up resources."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total blocks: {self.total_blocks}")

    def _open_audio_stream(self):
        # PyAudio ships in the optional "capture" extra
        import pyaudio

        self.pyaudio_instance = pyaudio.PyAudio()
        self.sample_rate = self.requested_sample_rate
        try:
            stream = self._open_at_rate(pyaudio, self.sample_rate)
        except (OSError, ValueError) as e:
            device_info = self.pyaudio_instance.get_default_input_device_info()
            device_rate = int(device_info['defaultSampleRate'])
            if device_rate == self.sample_rate:
                raise
            logger.warning(f"Cannot open input at {self.sample_rate}Hz ({e}), "
                           f"falling back to device rate {device_rate}Hz")
            stream = self._open_at_rate(pyaudio, device_rate)
            self.sample_rate = device_rate
            if self.on_sample_rate:
                self.on_sample_rate(device_rate)

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.block_size} samples/block")
        return stream

    def _open_at_rate(self, pyaudio, rate: int):
        return self.pyaudio_instance.open(
            format=pyaudio.paFloat32,
            channels=self.channels,
            rate=rate,
            input=True,
            frames_per_buffer=self.block_size,
            stream_callback=None
        )

    def _read_block(self, stream) -> np.ndarray:
        raw = stream.read(self.block_size, exception_on_overflow=False)
        samples = np.frombuffer(raw, dtype=np.float32)
        if self.channels > 1:
            # Downmix interleaved channels to mono
            samples = samples.reshape(-1, self.channels).mean(axis=1)
        self.total_blocks += 1
        return samples

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = None
        try:
            stream = self._open_audio_stream()
            while not self.stop_event.is_set():
                self.block_callback(self._read_block(stream))
        except Exception as e:
            logger.error(f"Audio capture failed: {e}", exc_info=True)
        finally:
            if stream:
                stream.stop_stream()
                stream.close()
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            block_size=self.block_size,
            total_blocks=self.total_blocks,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.is_recording:
            self.stop_recording()
