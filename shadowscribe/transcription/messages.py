"""Typed inbound messages of the v3 streaming transcription protocol."""

import json
import logging
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

TERMINATE_MESSAGE = {"type": "Terminate"}


class MessageParseError(ValueError):
    """Raised when an inbound message cannot be decoded."""


class VendorWord(BaseModel):
    """Word-level entry of a Turn; times are milliseconds from session start."""
    text: str
    start: float
    end: float
    confidence: float = 0.0
    word_is_final: bool = False
    speaker: Optional[str] = None


class BeginMessage(BaseModel):
    type: Literal["Begin"]
    id: Optional[str] = None
    expires_at: Optional[int] = None


class TurnMessage(BaseModel):
    type: Literal["Turn"]
    turn_order: Optional[int] = None
    turn_is_formatted: bool = False
    end_of_turn: bool = False
    transcript: Optional[str] = None
    end_of_turn_confidence: Optional[float] = None
    words: List[VendorWord] = Field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return self.turn_is_formatted or self.end_of_turn


class TerminationMessage(BaseModel):
    type: Literal["Termination"]
    audio_duration_seconds: Optional[float] = None
    session_duration_seconds: Optional[float] = None


class ErrorMessage(BaseModel):
    type: Literal["Error"]
    code: Optional[Union[int, str]] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def describe(self) -> str:
        return f"{self.code} - {self.reason or self.error}"


ServerMessage = Annotated[
    Union[BeginMessage, TurnMessage, TerminationMessage, ErrorMessage],
    Field(discriminator="type"),
]

MESSAGE_TYPES = ("Begin", "Turn", "Termination", "Error")

_server_message_adapter = TypeAdapter(ServerMessage)


def parse_message(raw: Union[str, bytes]) -> Optional[ServerMessage]:
    """Decode one inbound JSON message.

    Returns:
        The typed message, or None for a message type this client does not handle

    Raises:
        MessageParseError: If the payload is not valid JSON or does not match its type
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MessageParseError(f"Invalid JSON message: {e}") from e

    if not isinstance(payload, dict):
        raise MessageParseError(f"Expected a JSON object, got {type(payload).__name__}")

    message_type = payload.get("type")
    if message_type not in MESSAGE_TYPES:
        logger.warning(f"Unhandled message type: {message_type}")
        return None

    try:
        return _server_message_adapter.validate_python(payload)
    except ValidationError as e:
        raise MessageParseError(f"Malformed {message_type} message: {e}") from e
