"""Services layer for ShadowScribe application logic."""

from .transcription_service import TranscriptionService
from .token_service import TokenServiceSettings, create_token_app

__all__ = [
    "TranscriptionService",
    "TokenServiceSettings",
    "create_token_app",
]
