"""Transcription service that wires capture, framing and the streaming session together."""

import logging
import uuid
from typing import Iterable, Optional

from pubsub import pub

from ..audio.capture import AudioCapture
from ..audio.framer import AudioFramer
from ..audio.transport import FrameTransport
from ..config import ShadowScribeConfig
from ..models.events import SessionEvent
from ..models.transcription import TranscriptSnapshot, WordResult
from ..transcription.channel import AbstractChannelConnector
from ..transcription.pause_gate import PauseGate
from ..transcription.publisher import TranscriptPublisher
from ..transcription.reconciler import TurnReconciler
from ..transcription.session import SessionController, SessionState
from ..transcription.tokens import AbstractTokenProvider, HttpTokenProvider

logger = logging.getLogger(__name__)


class TranscriptionService:
    """Service that owns one streaming transcription pipeline and its lifecycle.

    Data flow: AudioCapture -> AudioFramer -> FrameTransport -(pubsub)->
    SessionController -> streaming service -> SessionController -> TurnReconciler
    -(pubsub)-> transcript consumers.
    """

    def __init__(self,
                 config: ShadowScribeConfig,
                 frame_topic: str = "audio_frames",
                 transcript_topic: str = "transcript_updates",
                 session_topic: str = "session_events",
                 token_provider: Optional[AbstractTokenProvider] = None,
                 connector: Optional[AbstractChannelConnector] = None):
        """Initialize transcription service.

        Args:
            config: Application configuration
            frame_topic: Pub/sub topic for encoded audio frames
            transcript_topic: Pub/sub topic for transcript snapshots
            session_topic: Pub/sub topic for session lifecycle events
            token_provider: Token source (defaults to the configured token endpoint)
            connector: Channel connector (defaults to aiohttp)
        """
        self.config = config
        self.frame_topic = frame_topic
        self.session_topic = session_topic
        self.settings = config.get_session_settings()

        if token_provider is None:
            token_provider = HttpTokenProvider(
                config.get_token_endpoint(),
                timeout_seconds=config.get('auth.timeout_seconds', 10.0),
            )

        self.pause_gate = PauseGate()
        self.transcript_publisher = TranscriptPublisher(transcript_topic)
        self.reconciler = TurnReconciler(
            pause_gate=self.pause_gate,
            on_update=self.transcript_publisher.get_callback(),
            default_speaker=config.get('streaming.default_speaker', 'S1'),
        )
        self.session = SessionController(
            token_provider=token_provider,
            reconciler=self.reconciler,
            settings=self.settings,
            connector=connector,
            on_state_change=self._publish_session_event,
        )

        self.transport = FrameTransport(frame_topic, encoding=self.settings.encoding)
        self.framer = AudioFramer(
            on_frame=self.transport.on_frame,
            sample_rate=self.settings.sample_rate,
            frame_size=config.get('audio.frame_size'),
            frame_duration_seconds=config.get('audio.frame_duration_seconds'),
        )
        self.capture: Optional[AudioCapture] = None

        pub.subscribe(self.session.on_frame_event, frame_topic)
        logger.info(f"TranscriptionService ready: {self.settings.sample_rate}Hz, "
                    f"{self.framer.buffer_size} samples/frame")

    @property
    def is_open(self) -> bool:
        return self.session.is_open

    @property
    def last_error(self) -> Optional[str]:
        return self.session.last_error

    def snapshot(self) -> TranscriptSnapshot:
        return self.reconciler.snapshot()

    async def start(self, reset_transcript: bool = False, with_capture: bool = False) -> bool:
        """Open the streaming session and optionally start microphone capture.

        Args:
            reset_transcript: Discard the finalized transcript kept from earlier sessions
            with_capture: Start reading from the input device once the session is open

        Returns:
            True if the session opened
        """
        if not await self.session.start(reset_transcript=reset_transcript):
            logger.error(f"Failed to start streaming session: {self.session.last_error}")
            return False

        if with_capture:
            self.capture = AudioCapture(
                callback=self.feed_samples,
                sample_rate=self.settings.sample_rate,
                block_size=self.config.get('audio.block_size', 1024),
                channels=self.config.get('audio.channels', 1),
                on_sample_rate=self.reconfigure_audio,
            )
            self.capture.start_recording()
        return True

    def feed_samples(self, block) -> int:
        """Push a block of captured samples through the framer (capture thread)."""
        return self.framer.process(block)

    def reconfigure_audio(self, sample_rate: int) -> None:
        """Apply a new capture sample rate to the framer (safe from the capture thread)."""
        self.framer.reconfigure(sample_rate)

    def pause(self) -> None:
        self.pause_gate.pause()

    def resume(self) -> None:
        self.pause_gate.resume()

    def load_saved_transcript(self, words: Iterable[WordResult]) -> None:
        self.session.load_saved_transcript(words)

    async def stop(self, send_termination: bool = True) -> TranscriptSnapshot:
        """Stop capture and the streaming session.

        Returns:
            Final transcript snapshot
        """
        if self.capture and self.capture.is_recording:
            self.capture.stop_recording()
        await self.session.stop(send_termination=send_termination)
        return self.reconciler.snapshot()

    async def shutdown(self) -> None:
        """Tear the pipeline down; never raises."""
        if self.capture and self.capture.is_recording:
            self.capture.stop_recording()
        try:
            pub.unsubscribe(self.session.on_frame_event, self.frame_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        await self.session.close()

    def _publish_session_event(self, state: SessionState, error: Optional[str]) -> None:
        event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=state.value,
            metadata={"error": error, "session_id": self.session.session_id},
        )
        pub.sendMessage(self.session_topic, event=event)
