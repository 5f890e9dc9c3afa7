"""Connectors that open the bidirectional streaming channel."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)


class AbstractChannelConnector(ABC):
    """Abstract base class for streaming channel connectors.

    `connect` returns a websocket-like object supporting `send_bytes`,
    `send_str`, `close`, `close_code` and async iteration over messages
    with `type` and `data` attributes.
    """

    @abstractmethod
    async def connect(self, url: str):
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connector resources."""
        pass


class AiohttpChannelConnector(AbstractChannelConnector):
    """Opens channels with an aiohttp client session."""

    def __init__(self, heartbeat: Optional[float] = None):
        """Initialize connector.

        Args:
            heartbeat: Interval in seconds for websocket ping/pong, or None to disable
        """
        self.heartbeat = heartbeat
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        return await self.session.ws_connect(url, heartbeat=self.heartbeat)

    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None
