"""Transcript publisher module for pub/sub event publishing."""

import logging
from typing import Callable

from pubsub import pub

from ..models.transcription import TranscriptSnapshot

logger = logging.getLogger(__name__)


class TranscriptPublisher:
    """Publishes transcript snapshots using pubsub.pub for pub/sub architecture."""

    def __init__(self, topic: str = "transcript_updates"):
        """Initialize transcript publisher.

        Args:
            topic: Pub/sub topic name for transcript snapshots
        """
        self.topic = topic
        logger.info(f"TranscriptPublisher initialized with topic: {topic}")

    def publish_snapshot(self, snapshot: TranscriptSnapshot) -> None:
        """Publish a transcript snapshot to the pub/sub topic.

        Args:
            snapshot: TranscriptSnapshot to publish
        """
        pub.sendMessage(self.topic, snapshot=snapshot)
        logger.debug(f"Published transcript snapshot: {len(snapshot.finalized)} finalized, "
                     f"{len(snapshot.partial)} partial")

    def get_callback(self) -> Callable[[TranscriptSnapshot], None]:
        """Get callback function for TurnReconciler to use.

        Returns:
            Callback function that publishes transcript snapshots
        """
        return self.publish_snapshot
