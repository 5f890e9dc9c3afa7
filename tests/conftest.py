"""Pytest configuration and fixtures for ShadowScribe tests."""

import asyncio
import json
import sys
import tempfile
import logging
from pathlib import Path
from typing import NamedTuple
from unittest.mock import Mock, patch

import aiohttp
import numpy as np
import pytest
import yaml
from pubsub import pub

from shadowscribe.transcription.channel import AbstractChannelConnector
from shadowscribe.transcription.session import SessionSettings
from shadowscribe.transcription.tokens import AbstractTokenProvider


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network or audio hardware")
    config.addinivalue_line("markers", "integration: tests that run a local streaming server")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop every pub/sub listener a test registered."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def audio_test_data():
    """Generate float32 sample blocks for testing."""
    def generate_audio(pattern="sine", samples=1024, sample_rate=16000):
        """Generate audio samples.

        Args:
            pattern: Type of audio pattern ('sine', 'ramp', 'silence')
            samples: Number of samples
            sample_rate: Sample rate in Hz

        Returns:
            np.ndarray: float32 samples in [-1, 1]
        """
        if pattern == "sine":
            t = np.arange(samples) / sample_rate
            data = 0.5 * np.sin(2 * np.pi * 440 * t)
        elif pattern == "ramp":
            # Sample values encode their own position
            data = np.arange(samples) / float(max(samples, 1))
        elif pattern == "silence":
            data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")
        return data.astype(np.float32)

    return generate_audio


@pytest.fixture
def mock_pyaudio():
    """Mock the pyaudio module for testing without audio hardware."""
    module = Mock()
    module.paFloat32 = 1
    instance = Mock()
    stream = Mock()

    stream.read.return_value = np.zeros(1024, dtype=np.float32).tobytes()
    instance.open.return_value = stream
    instance.get_default_input_device_info.return_value = {'defaultSampleRate': 16000.0}
    module.PyAudio.return_value = instance

    with patch.dict(sys.modules, {"pyaudio": module}):
        yield {
            'module': module,
            'instance': instance,
            'stream': stream
        }


@pytest.fixture
def config_file(temp_data_dir):
    """Write a test configuration file and return its path."""
    def write_config(overrides=None):
        config = {
            "audio": {"sample_rate": 16000, "block_size": 1024, "channels": 1, "frame_size": 4096},
            "streaming": {
                "url": "ws://127.0.0.1:1/v3/ws",
                "connect_timeout_seconds": 1.0,
                "poll_interval_seconds": 0.01,
            },
            "auth": {"token_endpoint": "http://127.0.0.1:1/api/assemblyai/token", "api_key_env": "SHADOWSCRIBE_TEST_KEY"},
            "storage": {"data_directory": "data"},
            "logging": {"level": "DEBUG", "file_path": "data/logs/test.log", "console_output": False},
        }
        for section, values in (overrides or {}).items():
            config.setdefault(section, {}).update(values)
        path = Path(temp_data_dir) / "shadowscribe.yaml"
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config, f)
        return str(path)

    return write_config


@pytest.fixture
def session_settings():
    return SessionSettings(
        url="wss://streaming.example.test/v3/ws",
        connect_timeout_seconds=1.0,
        poll_interval_seconds=0.01,
    )


class FakeMessage(NamedTuple):
    type: aiohttp.WSMsgType
    data: object
    extra: object = None


class FakeWebSocket:
    """In-memory stand-in for a client websocket.

    Create it inside a running event loop.
    """

    def __init__(self):
        self.sent_bytes = []
        self.sent_text = []
        self.closed = False
        self.close_code = None
        self.fail_sends = False
        self.fail_text = False
        self._incoming = asyncio.Queue()

    def push(self, payload):
        """Queue a server message; dicts are JSON encoded."""
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self._incoming.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, text))

    def push_error(self, reason="boom"):
        self._incoming.put_nowait(FakeMessage(aiohttp.WSMsgType.ERROR, reason))

    def server_close(self, code=1000):
        self.close_code = code
        self.closed = True
        self._incoming.put_nowait(None)

    async def send_bytes(self, data):
        if self.fail_sends:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent_bytes.append(data)

    async def send_str(self, data):
        if self.fail_text:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent_text.append(data)

    async def close(self, *, code=1000, message=b""):
        if not self.closed:
            self.closed = True
            self.close_code = code
            self._incoming.put_nowait(None)
        return True

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector(AbstractChannelConnector):
    """Connector returning a FakeWebSocket, failing, or never completing."""

    def __init__(self, error=None, hang=False):
        self.error = error
        self.hang = hang
        self.ws = None
        self.urls = []
        self.close_calls = 0

    async def connect(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()
        self.ws = FakeWebSocket()
        return self.ws

    async def close(self):
        self.close_calls += 1


class FakeTokenProvider(AbstractTokenProvider):

    def __init__(self, token="test-token", error=None):
        self.token = token
        self.error = error
        self.calls = 0

    async def fetch_token(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.token


@pytest.fixture
def fake_connector():
    """Factory for fake channel connectors."""
    return FakeConnector


@pytest.fixture
def fake_token_provider():
    """Factory for fake token providers."""
    return FakeTokenProvider


@pytest.fixture
def wait_until():
    """Poll a predicate from inside a coroutine until it holds or times out."""
    async def _wait(predicate, timeout=1.0, interval=0.005):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(interval)
        return True

    return _wait
