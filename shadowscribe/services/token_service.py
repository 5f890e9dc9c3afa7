"""Token endpoint that hands clients short-lived streaming tokens.

The long-lived vendor API key stays on this server; clients POST to
/api/assemblyai/token and receive {"token": ...} valid for a short time.
"""

import asyncio
import sys
import argparse
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp
from aiohttp import web

from ..config import ShadowScribeConfig
from ..transcription.tokens import TokenError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_API_URL = "https://streaming.assemblyai.com/v3/token"
TOKEN_ROUTE = "/api/assemblyai/token"


@dataclass
class TokenServiceSettings:
    """Settings for minting temporary streaming tokens."""
    api_key: Optional[str]
    token_api_url: str = DEFAULT_TOKEN_API_URL
    expires_in_seconds: int = 60
    timeout_seconds: float = 10.0


SETTINGS_KEY = web.AppKey("token_service_settings", TokenServiceSettings)


async def fetch_temporary_token(settings: TokenServiceSettings) -> str:
    """Ask the vendor token API for a temporary streaming token.

    Raises:
        TokenError: If the vendor does not return a token
    """
    timeout = aiohttp.ClientTimeout(total=settings.timeout_seconds)
    headers = {"Authorization": settings.api_key}
    params = {"expires_in_seconds": str(settings.expires_in_seconds)}

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(settings.token_api_url, headers=headers, params=params) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise TokenError(f"Token API error: {response.status} - {error_text}")
                data = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise TokenError(f"Token API request failed: {e}") from e

    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise TokenError("Token API returned no token")
    return token


async def handle_token_request(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    if not settings.api_key:
        logger.error("Token requested but no API key is configured")
        return web.json_response({"error": "AssemblyAI API key not configured"}, status=500)

    try:
        token = await fetch_temporary_token(settings)
    except TokenError as e:
        logger.error(f"Error in AssemblyAI token: {e}")
        return web.json_response({"error": "Failed to get AssemblyAI token"}, status=502)

    logger.info(f"Issued streaming token ({settings.expires_in_seconds}s)")
    return web.json_response({"token": token})


def create_token_app(settings: TokenServiceSettings) -> web.Application:
    """Build the aiohttp application serving the token route."""
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app.router.add_post(TOKEN_ROUTE, handle_token_request)
    return app


def main() -> None:
    """Entry point for the token server."""
    parser = argparse.ArgumentParser(description="ShadowScribe streaming token server")
    parser.add_argument("--config", type=str, help="Path to configuration YAML file (default: shadowscribe.yaml)")
    parser.add_argument("--host", type=str, help="Interface to bind (overrides config)")
    parser.add_argument("--port", type=int, help="Port to listen on (overrides config)")
    args = parser.parse_args()

    try:
        config = ShadowScribeConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, str(config.get('logging.level', 'INFO')).upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    settings = TokenServiceSettings(
        api_key=config.get_api_key(),
        token_api_url=config.get('auth.token_api_url', DEFAULT_TOKEN_API_URL),
        expires_in_seconds=config.get('auth.expires_in_seconds', 60),
    )
    if not settings.api_key:
        logger.warning("No vendor API key found; token requests will fail")

    web.run_app(
        create_token_app(settings),
        host=args.host or config.get('token_server.host', '127.0.0.1'),
        port=args.port or config.get('token_server.port', 8787),
    )


if __name__ == "__main__":
    main()
