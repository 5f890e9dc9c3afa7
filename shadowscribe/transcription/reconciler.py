"""Turn reconciler that maintains the partial and finalized transcript buffers."""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from ..models.transcription import (
    DEFAULT_SPEAKER,
    TranscriptSnapshot,
    WordResult,
    flatten_transcript,
)
from .messages import TurnMessage
from .pause_gate import PauseGate

logger = logging.getLogger(__name__)

SYNTHESIZED_CONFIDENCE = 0.95
SYNTHESIZED_SLOT_SECONDS = 0.1


class TurnReconciler:
    """Applies inbound turns to the active-partial and finalized buffers.

    This is the only writer of both buffers. Consumers read tuple snapshots,
    either through the properties or through `on_update`, which fires after
    every mutation.
    """

    def __init__(self,
                 pause_gate: Optional[PauseGate] = None,
                 on_update: Optional[Callable[[TranscriptSnapshot], None]] = None,
                 default_speaker: str = DEFAULT_SPEAKER):
        """Initialize the reconciler.

        Args:
            pause_gate: Gate consulted before applying each turn
            on_update: Called with a fresh snapshot after each mutation
            default_speaker: Speaker label for words the service does not label
        """
        self.pause_gate = pause_gate or PauseGate()
        self.on_update = on_update
        self.default_speaker = default_speaker

        self._partial: List[WordResult] = []
        self._finalized: List[WordResult] = []
        self._transcript_text = ""

        self.turns_applied = 0
        self.turns_dropped = 0

    @property
    def partial(self) -> Tuple[WordResult, ...]:
        return tuple(self._partial)

    @property
    def finalized(self) -> Tuple[WordResult, ...]:
        return tuple(self._finalized)

    @property
    def transcript_text(self) -> str:
        """Space-joined contents of the finalized buffer."""
        return self._transcript_text

    def snapshot(self) -> TranscriptSnapshot:
        return TranscriptSnapshot(
            partial=self.partial,
            finalized=self.finalized,
            text=self._transcript_text,
        )

    def convert_turn(self, message: TurnMessage) -> List[WordResult]:
        """Convert a Turn into word results.

        Word-level entries are used when present (millisecond offsets become
        seconds). Otherwise the plain transcript is split on whitespace and
        each word gets an approximate 100ms slot, in declared order.
        """
        if message.words:
            return [
                WordResult(
                    content=word.text,
                    start_time=word.start / 1000.0,
                    end_time=word.end / 1000.0,
                    confidence=word.confidence,
                    speaker=word.speaker or self.default_speaker,
                )
                for word in message.words
            ]

        transcript = (message.transcript or "").strip()
        if not transcript:
            return []

        return [
            WordResult(
                content=text,
                start_time=index * SYNTHESIZED_SLOT_SECONDS,
                end_time=(index + 1) * SYNTHESIZED_SLOT_SECONDS,
                confidence=SYNTHESIZED_CONFIDENCE,
                speaker=self.default_speaker,
            )
            for index, text in enumerate(transcript.split())
        ]

    def apply_turn(self, message: TurnMessage) -> bool:
        """Apply one Turn message to the buffers.

        Returns:
            False if the turn was dropped because the pause gate is closed
        """
        if self.pause_gate.is_paused:
            self.turns_dropped += 1
            logger.debug(f"Dropping turn {message.turn_order} while paused")
            return False

        results = self.convert_turn(message)

        if message.is_final:
            self._finalized.extend(results)
            self._partial = []
            self._recompute_text()
            logger.debug(f"Finalized turn {message.turn_order}: {len(results)} words "
                         f"(formatted={message.turn_is_formatted}, end_of_turn={message.end_of_turn})")
        else:
            self._partial = results
            logger.debug(f"Partial turn {message.turn_order}: {len(results)} words")

        self.turns_applied += 1
        self._notify()
        return True

    def flush_partial(self) -> int:
        """Move any pending partial words to the finalized buffer.

        Returns:
            Number of words moved
        """
        moved = len(self._partial)
        if moved:
            self._finalized.extend(self._partial)
            self._partial = []
            self._recompute_text()
            logger.info(f"Flushed {moved} pending partial words into the finalized transcript")
            self._notify()
        return moved

    def clear_partial(self) -> None:
        if self._partial:
            self._partial = []
            self._notify()

    def load_saved_transcript(self, words: Iterable[WordResult]) -> None:
        """Replace the finalized buffer wholesale, e.g. to resume a saved session."""
        self._finalized = list(words)
        self._partial = []
        self._recompute_text()
        logger.info(f"Loaded saved transcript: {len(self._finalized)} words")
        self._notify()

    def reset(self) -> None:
        """Clear both buffers."""
        self._finalized = []
        self._partial = []
        self._transcript_text = ""
        self._notify()

    def _recompute_text(self) -> None:
        self._transcript_text = flatten_transcript(self._finalized)

    def _notify(self) -> None:
        if self.on_update:
            self.on_update(self.snapshot())
