"""Audio capture, framing and frame transport."""

from .framer import AudioFramer
from .transport import FrameTransport, encode_pcm16
from .capture import AudioCapture

__all__ = [
    'AudioFramer',
    'FrameTransport',
    'encode_pcm16',
    'AudioCapture',
]
