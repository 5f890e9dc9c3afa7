"""ShadowScribe - real-time streaming speech transcription."""

__version__ = "0.1.0"
