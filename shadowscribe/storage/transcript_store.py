"""File storage for finalized transcripts."""

import json
import random
import string
import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Sequence, Union

from ..models.transcription import WordResult

logger = logging.getLogger(__name__)


class TranscriptStore:
    """Saves and loads finalized transcripts as JSON in the word "result" format."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize transcript store with data directory.

        Args:
            data_dir: Base directory for storing transcripts
        """
        self.data_dir = Path(data_dir)
        self.transcripts_dir = self.data_dir / "transcripts"
        self.transcripts_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"TranscriptStore initialized with data_dir: {self.data_dir}")

    def _new_session_name(self) -> str:
        # Include random suffix to ensure uniqueness
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        return f"{timestamp}_{random_suffix}"

    def save_transcript(self, words: Sequence[WordResult], session_name: Optional[str] = None) -> Path:
        """Save a finalized transcript to a JSON file.

        Args:
            words: Finalized words in order
            session_name: File stem; a timestamp-based name is generated if omitted

        Returns:
            Path to the saved transcript file
        """
        path = self.transcripts_dir / f"{session_name or self._new_session_name()}.json"
        payload = [word.to_result_dict() for word in words]

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info(f"Transcript saved: {path} ({len(payload)} words)")
        return path

    def load_transcript(self, path: Union[str, Path]) -> List[WordResult]:
        """Load a transcript saved by save_transcript.

        Args:
            path: Transcript file path

        Returns:
            Finalized words in saved order

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a valid transcript
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Transcript file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid transcript file {path}: {e}")

        if not isinstance(data, list):
            raise ValueError(f"Invalid transcript file {path}: expected a list of words")

        if not all(isinstance(entry, dict) for entry in data):
            raise ValueError(f"Invalid transcript file {path}: every word must be an object")

        words = [WordResult.from_result_dict(entry) for entry in data]
        logger.info(f"Transcript loaded: {path} ({len(words)} words)")
        return words
