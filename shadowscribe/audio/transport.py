"""Frame transport that encodes sealed frames and publishes them for transmission."""

import logging

import numpy as np
from pubsub import pub

from ..models.audio import AudioFrame
from ..models.events import FrameEvent

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = ("pcm_s16le",)


def encode_pcm16(samples) -> bytes:
    """Encode float samples in [-1.0, 1.0] as 16-bit little-endian PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


class FrameTransport:
    """Publishes encoded audio frames using pubsub.pub, one frame at a time."""

    def __init__(self, topic: str = "audio_frames", encoding: str = "pcm_s16le"):
        """Initialize frame transport.

        Args:
            topic: Pub/sub topic name for encoded frames
            encoding: Wire encoding negotiated with the streaming service
        """
        if encoding not in SUPPORTED_ENCODINGS:
            raise ValueError(f"Unsupported audio encoding: {encoding}")
        self.topic = topic
        self.encoding = encoding
        self.frames_published = 0
        logger.info(f"FrameTransport initialized with topic: {topic} ({encoding})")

    def on_frame(self, frame: AudioFrame) -> None:
        """Encode a sealed frame into its own binary buffer and publish it.

        Args:
            frame: Frame handed off by the AudioFramer
        """
        event = FrameEvent(
            payload=encode_pcm16(frame.samples),
            sequence_number=frame.sequence_number,
            sample_rate=frame.sample_rate,
            sample_count=len(frame),
            timestamp=frame.timestamp,
        )
        self.frames_published += 1
        pub.sendMessage(self.topic, event=event)
