"""Session controller owning the lifecycle of one streaming transcription channel."""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
from pydantic import BaseModel

from ..models.events import FrameEvent
from ..models.transcription import WordResult
from .channel import AbstractChannelConnector, AiohttpChannelConnector
from .messages import (
    TERMINATE_MESSAGE,
    BeginMessage,
    ErrorMessage,
    MessageParseError,
    TerminationMessage,
    TurnMessage,
    parse_message,
)
from .reconciler import TurnReconciler
from .tokens import AbstractTokenProvider, TokenError

logger = logging.getLogger(__name__)

DEFAULT_STREAMING_URL = "wss://streaming.assemblyai.com/v3/ws"
NORMAL_CLOSE_CODES = (1000, 1005)


class SessionState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"


ACTIVE_STATES = (SessionState.CONNECTING, SessionState.OPEN)


class SessionSettings(BaseModel):
    """Settings for the streaming channel."""
    url: str = DEFAULT_STREAMING_URL
    sample_rate: int = 16000
    encoding: str = "pcm_s16le"
    format_turns: bool = True
    connect_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 0.1
    stop_grace_seconds: float = 0.0

    def build_url(self, token: str) -> str:
        """Channel URL with the query parameters the service requires."""
        params = urlencode({
            "token": token,
            "sample_rate": str(self.sample_rate),
            "encoding": self.encoding,
            "format_turns": "true" if self.format_turns else "false",
        })
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{params}"


@dataclass(frozen=True)
class ChannelOpened:
    ws: Any


@dataclass(frozen=True)
class ChannelFailed:
    reason: str


@dataclass(frozen=True)
class ChannelClosed:
    code: Optional[int] = None


class SessionController:
    """Connects, feeds and tears down a streaming transcription session.

    States: IDLE -> CONNECTING -> OPEN -> CLOSED, with ERROR reachable from
    CONNECTING or OPEN. Every transition happens in `_dispatch`, which is fed
    channel events and typed server messages one at a time, in arrival order.

    A vendor Error message ends the session in ERROR, not CLOSED, with the
    reason in `last_error`; the channel is released and `is_open` is False.

    `send_audio` may be called from any thread (typically the capture
    thread); frames are queued to a sender task on the event loop and go out
    in the order they were queued. No public method raises on network
    failure: `start` returns False and problems surface in `last_error`.
    """

    def __init__(self,
                 token_provider: AbstractTokenProvider,
                 reconciler: TurnReconciler,
                 settings: Optional[SessionSettings] = None,
                 connector: Optional[AbstractChannelConnector] = None,
                 on_state_change: Optional[Callable[[SessionState, Optional[str]], None]] = None):
        """Initialize session controller.

        Args:
            token_provider: Source of short-lived streaming tokens
            reconciler: Receives Turn messages and owns the transcript buffers
            settings: Channel settings (defaults to SessionSettings())
            connector: Opens the websocket (defaults to aiohttp)
            on_state_change: Called with (new_state, last_error) after each transition
        """
        self.token_provider = token_provider
        self.reconciler = reconciler
        self.settings = settings or SessionSettings()
        self.connector = connector or AiohttpChannelConnector()
        self.on_state_change = on_state_change

        self._state = SessionState.IDLE
        self.last_error: Optional[str] = None
        self.session_id: Optional[str] = None
        self.frames_sent = 0

        self._ws = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._receiver_task: Optional[asyncio.Task] = None
        self._sender_task: Optional[asyncio.Task] = None

    # --- Read-only session view ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    @property
    def partial(self) -> Tuple[WordResult, ...]:
        return self.reconciler.partial

    @property
    def finalized(self) -> Tuple[WordResult, ...]:
        return self.reconciler.finalized

    @property
    def transcript_text(self) -> str:
        return self.reconciler.transcript_text

    def load_saved_transcript(self, words: Iterable[WordResult]) -> None:
        self.reconciler.load_saved_transcript(words)

    # --- Commands ---

    async def start(self, reset_transcript: bool = False) -> bool:
        """Open the streaming channel and wait until it is ready.

        Args:
            reset_transcript: Also clear the finalized transcript kept from earlier sessions

        Returns:
            True once the channel is open; False on token, connection or timeout failure
        """
        if self._state in ACTIVE_STATES:
            logger.warning(f"Session already {self._state.value}, ignoring start")
            return False

        self.last_error = None
        self.session_id = None
        self.frames_sent = 0
        if reset_transcript:
            self.reconciler.reset()
        else:
            self.reconciler.clear_partial()

        try:
            token = await self.token_provider.fetch_token()
        except TokenError as e:
            self._fail(f"Failed to get streaming token: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error fetching streaming token: {e}", exc_info=True)
            self._fail(f"Failed to start streaming session: {e}")
            return False

        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue()
        self._set_state(SessionState.CONNECTING)
        logger.info(f"Connecting to {self.settings.url} "
                    f"({self.settings.sample_rate}Hz, {self.settings.encoding})")
        self._connect_task = asyncio.ensure_future(self._open_channel(self.settings.build_url(token)))

        # Poll for readiness, bounded by the connect timeout
        deadline = self._loop.time() + self.settings.connect_timeout_seconds
        while True:
            if self._state is SessionState.OPEN:
                logger.info("Streaming session open")
                return True
            if self._state not in ACTIVE_STATES:
                return False
            remaining = deadline - self._loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.settings.poll_interval_seconds, remaining))

        self._fail("Connection timeout")
        await self._release()
        return False

    def send_audio(self, payload) -> None:
        """Queue one binary audio frame for transmission. Never raises.

        Frames are dropped silently unless the session is open and the
        payload is non-empty. Any buffer-protocol object is accepted
        (bytes, bytearray, memoryview, numpy arrays).
        """
        if self._state is not SessionState.OPEN:
            return
        loop, outbox = self._loop, self._outbox
        if loop is None or outbox is None:
            return
        try:
            data = bytes(memoryview(payload))
        except TypeError as e:
            logger.warning(f"Dropping audio frame, not a binary buffer: {e}")
            return
        if not data:
            return
        try:
            loop.call_soon_threadsafe(outbox.put_nowait, data)
        except RuntimeError as e:
            logger.debug(f"Dropping audio frame, event loop unavailable: {e}")

    def on_frame_event(self, event: FrameEvent) -> None:
        """Pub/sub listener for encoded frames."""
        self.send_audio(event.payload)

    async def stop(self, send_termination: bool = True) -> None:
        """Stop the session and release the channel.

        Args:
            send_termination: Ask the service to terminate gracefully and move any
                pending partial words into the finalized transcript
        """
        if send_termination and self._state is SessionState.OPEN:
            if await self._send_termination() and self.settings.stop_grace_seconds > 0:
                await self._await_server_termination(self.settings.stop_grace_seconds)

        if send_termination:
            self.reconciler.flush_partial()

        await self._release()
        if self._state is not SessionState.IDLE:
            self._set_state(SessionState.CLOSED)
        logger.info(f"Streaming session stopped (frames sent: {self.frames_sent})")

    async def close(self) -> None:
        """Teardown for a discarded owner: best-effort termination, then forced close.

        Never raises.
        """
        try:
            if self._state is SessionState.OPEN:
                await self._send_termination()
        except Exception as e:
            logger.warning(f"Termination on teardown failed: {e}")
        try:
            await self._release()
        except Exception as e:
            logger.warning(f"Error releasing streaming channel on teardown: {e}")
        if self._state in ACTIVE_STATES:
            self._set_state(SessionState.CLOSED)

    async def __aenter__(self) -> "SessionController":
        return self

    async def __aexit__(self, _exc_type, _exc_val, _exc_tb) -> None:
        await self.close()

    # --- State machine ---

    async def _dispatch(self, event) -> None:
        """Apply one channel event or server message to the session."""
        if isinstance(event, ChannelOpened):
            if self._state is not SessionState.CONNECTING:
                await self._close_ws(event.ws)
                return
            self._ws = event.ws
            self.last_error = None
            self._set_state(SessionState.OPEN)
            self._receiver_task = asyncio.ensure_future(self._receive_loop(event.ws))
            self._sender_task = asyncio.ensure_future(self._send_loop(event.ws, self._outbox))

        elif isinstance(event, ChannelFailed):
            if self._state in ACTIVE_STATES:
                self._fail(f"Streaming connection error: {event.reason}")
            await self._release()

        elif isinstance(event, ChannelClosed):
            if self._state is SessionState.CONNECTING:
                self._fail("Connection closed before the session opened")
            elif self._state is SessionState.OPEN:
                logger.info(f"Streaming channel closed by server (code={event.code})")
                if event.code is not None and event.code not in NORMAL_CLOSE_CODES:
                    self.last_error = f"Connection closed: {event.code}"
                self._set_state(SessionState.CLOSED)
            await self._release()

        elif isinstance(event, BeginMessage):
            logger.info(f"Session started: {event.id}")
            self.session_id = event.id
            self.last_error = None
            if self._state in ACTIVE_STATES:
                self._set_state(SessionState.OPEN)

        elif isinstance(event, TurnMessage):
            self.reconciler.apply_turn(event)

        elif isinstance(event, TerminationMessage):
            logger.info(f"Session terminated: {event.audio_duration_seconds}s of audio")
            self.reconciler.flush_partial()
            self._set_state(SessionState.CLOSED)
            await self._release()

        elif isinstance(event, ErrorMessage):
            self._fail(f"Streaming API error: {event.describe()}")
            await self._release()

        else:
            logger.warning(f"Ignoring unknown session event: {event!r}")

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Session state {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change:
            self.on_state_change(state, self.last_error)

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.last_error = message
        self._set_state(SessionState.ERROR)

    # --- Channel tasks ---

    async def _open_channel(self, url: str) -> None:
        try:
            ws = await self.connector.connect(url)
        except Exception as e:
            await self._dispatch(ChannelFailed(str(e) or e.__class__.__name__))
            return
        await self._dispatch(ChannelOpened(ws))

    async def _receive_loop(self, ws) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self._handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    await self._dispatch(ChannelFailed(str(msg.data)))
                    return
                else:
                    logger.debug(f"Ignoring {msg.type} message from streaming service")
        except Exception as e:
            await self._dispatch(ChannelFailed(str(e) or e.__class__.__name__))
            return
        await self._dispatch(ChannelClosed(ws.close_code))

    async def _handle_text(self, raw: str) -> None:
        try:
            message = parse_message(raw)
        except MessageParseError as e:
            logger.error(f"Dropping unparseable message: {e}")
            return
        if message is None:
            return

        logger.debug(f"Received {message.type} message")
        try:
            await self._dispatch(message)
        except Exception as e:
            logger.error(f"Error applying {message.type} message: {e}", exc_info=True)

    async def _send_loop(self, ws, outbox: asyncio.Queue) -> None:
        while True:
            payload = await outbox.get()
            if payload is None:
                return
            if isinstance(payload, str):
                # Control messages are best-effort
                try:
                    await ws.send_str(payload)
                    logger.info("Sent termination message")
                except Exception as e:
                    logger.error(f"Error sending termination message: {e}")
                continue
            try:
                await ws.send_bytes(payload)
                self.frames_sent += 1
            except Exception as e:
                logger.error(f"Error sending audio: {e}")
                self.last_error = f"Error sending audio: {e}"

    async def _send_termination(self) -> bool:
        """Queue the Terminate message behind pending frames and wait for the sender to drain.

        Returns:
            True if the sender finished within the connect timeout
        """
        sender, outbox, loop = self._sender_task, self._outbox, self._loop
        if sender is None or sender.done() or outbox is None or loop is None:
            return False
        # Through the loop, so Terminate lands after frames still in its callback queue
        loop.call_soon(outbox.put_nowait, json.dumps(TERMINATE_MESSAGE))
        loop.call_soon(outbox.put_nowait, None)
        try:
            await asyncio.wait_for(asyncio.shield(sender), timeout=self.settings.connect_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("Timed out sending termination message")
            return False
        except asyncio.CancelledError:
            # The receiver may release the channel first if the server terminates
            if not sender.cancelled():
                raise
            return False
        return True

    async def _await_server_termination(self, grace_seconds: float) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + grace_seconds
        while self._state is SessionState.OPEN and loop.time() < deadline:
            await asyncio.sleep(min(self.settings.poll_interval_seconds, max(0.0, deadline - loop.time())))

    async def _release(self) -> None:
        """Cancel channel tasks and close the channel. Safe to call repeatedly."""
        current = asyncio.current_task()
        tasks = [task for task in (self._connect_task, self._sender_task, self._receiver_task)
                 if task is not None and task is not current and not task.done()]
        self._connect_task = self._sender_task = self._receiver_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_ws(ws)
        try:
            await self.connector.close()
        except Exception as e:
            logger.warning(f"Error closing channel connector: {e}")

    async def _close_ws(self, ws) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.warning(f"Error closing streaming channel: {e}")
