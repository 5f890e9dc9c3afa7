"""Clients for obtaining short-lived streaming tokens from a trusted backend."""

import asyncio
import logging
from abc import ABC, abstractmethod

import aiohttp

logger = logging.getLogger(__name__)


class TokenError(RuntimeError):
    """Raised when no usable streaming token could be obtained."""


class AbstractTokenProvider(ABC):
    """Abstract base class for streaming token sources."""

    @abstractmethod
    async def fetch_token(self) -> str:
        """Return a short-lived token for opening a streaming session.

        Raises:
            TokenError: If the token cannot be obtained
        """
        pass


class StaticTokenProvider(AbstractTokenProvider):
    """Token provider that returns a token supplied up front."""

    def __init__(self, token: str):
        self.token = token

    async def fetch_token(self) -> str:
        if not self.token:
            raise TokenError("Streaming token is not configured")
        return self.token


class HttpTokenProvider(AbstractTokenProvider):
    """Requests a temporary token from the backend token endpoint."""

    def __init__(self, endpoint_url: str, timeout_seconds: float = 10.0):
        """Initialize HTTP token provider.

        Args:
            endpoint_url: URL of the backend token endpoint (POST)
            timeout_seconds: Total timeout for the request
        """
        if not endpoint_url:
            raise ValueError("Token endpoint URL is required")
        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds

        logger.info(f"HttpTokenProvider initialized with endpoint: {endpoint_url}")

    async def fetch_token(self) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint_url, json={}) as response:
                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        data = {}
                    if response.status != 200:
                        message = data.get("error") if isinstance(data, dict) else None
                        raise TokenError(message or f"Failed to get streaming token (HTTP {response.status})")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TokenError(f"Failed to reach token endpoint: {e}") from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise TokenError("Token endpoint returned no token")

        logger.debug("Obtained streaming token from backend")
        return token
