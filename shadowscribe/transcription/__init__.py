"""Streaming transcription session for ShadowScribe."""

from .messages import (
    BeginMessage,
    TurnMessage,
    TerminationMessage,
    ErrorMessage,
    VendorWord,
    MessageParseError,
    parse_message,
)
from .pause_gate import PauseGate
from .reconciler import TurnReconciler
from .tokens import AbstractTokenProvider, HttpTokenProvider, StaticTokenProvider, TokenError
from .channel import AbstractChannelConnector, AiohttpChannelConnector
from .session import SessionController, SessionSettings, SessionState
from .publisher import TranscriptPublisher
from .aggregator import TranscriptAggregator

__all__ = [
    "BeginMessage",
    "TurnMessage",
    "TerminationMessage",
    "ErrorMessage",
    "VendorWord",
    "MessageParseError",
    "parse_message",
    "PauseGate",
    "TurnReconciler",
    "AbstractTokenProvider",
    "HttpTokenProvider",
    "StaticTokenProvider",
    "TokenError",
    "AbstractChannelConnector",
    "AiohttpChannelConnector",
    "SessionController",
    "SessionSettings",
    "SessionState",
    "TranscriptPublisher",
    "TranscriptAggregator",
]
