"""Main application entry point for ShadowScribe."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from .config import ShadowScribeConfig
from .services.transcription_service import TranscriptionService
from .storage.transcript_store import TranscriptStore
from .transcription.aggregator import TranscriptAggregator

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = ShadowScribeConfig(config_path)
        # Set up logging (command line overrides config)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.should_exit = False

    def init(self):
        logger.info("Initializing services...")
        self.store = TranscriptStore(self.config.get_data_directory())
        self.transcription_service = TranscriptionService(self.config)
        self.aggregator = TranscriptAggregator("transcript_updates", "live")

    def resume_from(self, transcript_path: str) -> None:
        words = self.store.load_transcript(transcript_path)
        self.transcription_service.load_saved_transcript(words)

    async def run(self, duration: int, reset: bool = False) -> bool:
        try:
            if not await self.transcription_service.start(reset_transcript=reset, with_capture=True):
                print(f"Error: {self.transcription_service.last_error}")
                return False
            if duration:
                await asyncio.sleep(duration)
            else:
                while not self.should_exit and self.transcription_service.is_open:
                    await asyncio.sleep(1)
            await self.transcription_service.stop(send_termination=True)
            return True
        finally:
            await self.cleanup()

    async def cleanup(self):
        await self.transcription_service.shutdown()

        snapshot = self.transcription_service.snapshot()
        if snapshot.finalized:
            path = self.store.save_transcript(snapshot.finalized)
            print(f"Transcript saved to {path}")

        self.aggregator.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/shadowscribe.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("="*50)
    logger.info("ShadowScribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for ShadowScribe."""
    parser = argparse.ArgumentParser(
        description="ShadowScribe - Real-time streaming transcription"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: shadowscribe.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Seconds to record before stopping (default: until the session closes)"
    )

    parser.add_argument(
        "--resume",
        type=str,
        help="Saved transcript JSON to continue from"
    )

    parser.add_argument(
        "--reset",
        action="store_true",
        help="Start with an empty transcript"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="ShadowScribe v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        if args.resume:
            server.resume_from(args.resume)
        ok = asyncio.run(server.run(args.duration, reset=args.reset))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
