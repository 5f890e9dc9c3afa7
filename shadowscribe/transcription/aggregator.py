"""Console transcript aggregator.

Subscribes to a transcript topic, keeps the most recent snapshot and prints
the finalized transcript once on shutdown.
"""

import logging
import threading
from typing import Any, Dict, Optional

from pubsub import pub

from ..models.transcription import TranscriptSnapshot

logger = logging.getLogger(__name__)


class TranscriptAggregator:
    """Tracks the latest transcript snapshot and prints it on shutdown."""

    def __init__(self, topic: str, name: str):
        """Initialize transcript aggregator.

        Args:
            topic: Topic for transcript snapshots
            name: Name for this aggregator (e.g., "live")
        """
        self.topic = topic
        self.name = name

        self.latest: Optional[TranscriptSnapshot] = None
        self.update_count = 0
        self.lock = threading.RLock()

        pub.subscribe(self._on_snapshot, topic)
        logger.info(f"TranscriptAggregator '{name}' initialized - subscribed to {topic}")

    def _on_snapshot(self, snapshot: TranscriptSnapshot) -> None:
        with self.lock:
            self.latest = snapshot
            self.update_count += 1

    def get_results_summary(self) -> Dict[str, Any]:
        """Get summary of the latest transcript.

        Returns:
            Dictionary with word counts and the flattened text
        """
        with self.lock:
            snapshot = self.latest or TranscriptSnapshot()
            return {
                "name": self.name,
                "updates": self.update_count,
                "finalized_words": len(snapshot.finalized),
                "partial_words": len(snapshot.partial),
                "text": snapshot.text,
            }

    def print_transcription_summary(self) -> None:
        """Print the finalized transcript."""
        summary = self.get_results_summary()

        print(f"\n{'='*60}")
        print(f"{self.name.upper()} TRANSCRIPT")
        print(f"{'='*60}")
        print(f"Updates received: {summary['updates']}")
        print(f"Finalized words: {summary['finalized_words']}")
        if summary['partial_words']:
            print(f"Pending partial words: {summary['partial_words']}")
        print("-" * 40)
        print(summary['text'])
        print(f"{'='*60}")

    def shutdown(self) -> bool:
        """Unsubscribe and print the transcript.

        Returns:
            True if shutdown completed successfully
        """
        logger.info(f"Shutting down TranscriptAggregator '{self.name}'...")
        try:
            pub.unsubscribe(self._on_snapshot, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")

        self.print_transcription_summary()
        return True
