"""Unit tests for the application entry point."""

import logging
from pathlib import Path

import pytest

from shadowscribe.main import Server
from shadowscribe.models.transcription import WordResult
from shadowscribe.transcription.tokens import HttpTokenProvider


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestServer:

    def test_logging_setup(self, config_file, temp_data_dir, restore_root_logging):
        Server(config_file(), log_level="WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert (Path(temp_data_dir) / "data" / "logs" / "test.log").exists()
        # console_output is disabled in the test config
        assert len(root.handlers) == 1

    def test_init_and_resume(self, config_file, temp_data_dir, restore_root_logging):
        server = Server(config_file())
        server.init()

        assert isinstance(server.transcription_service.session.token_provider, HttpTokenProvider)
        assert server.store.transcripts_dir == Path(temp_data_dir) / "data" / "transcripts"

        saved = server.store.save_transcript([WordResult("Resumed", 0.0, 0.5, 0.9)], session_name="earlier")
        server.resume_from(str(saved))

        assert server.transcription_service.snapshot().text == "Resumed"
        server.aggregator.shutdown()
