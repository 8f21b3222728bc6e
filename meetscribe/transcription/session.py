"""Real-time transcription session: capture, streaming channel, merge and reconnect."""

import time
import queue
import logging
import threading
from functools import partial
from typing import Optional, Tuple

from pubsub import pub

from .base import AbstractStreamingBackend, StreamingChannel
from .consumers import ChunkForwarder
from .publisher import SessionPublisher
from ..audio.capture import AudioCaptureMonitor
from ..errors import CaptureError, ErrorKind, MeetScribeError, user_message
from ..models.audio import CaptureHandle
from ..models.events import (
    ChannelEvent,
    ChannelOpened,
    TranscriptUpdate,
    ChannelError,
    ChannelClosed,
)
from ..models.transcription import ConnectionStatus, Transcript, TranscriptSegment

logger = logging.getLogger(__name__)


class TranscriptionSession:
    """Owns one capture-to-transcript span and the connection to the ASR backend.

    Channel callbacks never touch session state directly: they enqueue
    ``(generation, event)`` pairs, and a single consumer thread applies them
    in arrival order under ``self.lock``. Every channel opened gets a new
    generation number; ``stop()`` and reconnects retire the previous one so
    that late events from a dead channel are dropped.

    Observable fields (``status``, ``error``, ``transcript``, ``audio_level``)
    are pushed to observers through the ``SessionPublisher`` topics.
    """

    def __init__(self,
                 backend: AbstractStreamingBackend,
                 capture: AudioCaptureMonitor,
                 publisher: Optional[SessionPublisher] = None,
                 chunk_interval_ms: float = 250.0,
                 max_reconnect_attempts: int = 1,
                 reconnect_backoff_seconds: float = 0.0,
                 idle_timeout_seconds: Optional[float] = None,
                 stop_capture_on_error: bool = False,
                 name: str = "session"):
        """Initialize transcription session.

        Args:
            backend: Streaming ASR backend (already initialized)
            capture: Capture monitor whose frames feed the channel
            publisher: Destination for observable state changes
            chunk_interval_ms: Cadence of audio writes to the channel
            max_reconnect_attempts: Consecutive reconnects allowed after an unexpected close
            reconnect_backoff_seconds: Delay before the first reconnect, doubled per attempt
            idle_timeout_seconds: Close a connected channel that produced no events for this long
            stop_capture_on_error: Release the microphone when the backend reports an error
            name: Name used in logs and thread names
        """
        if max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")

        self.backend = backend
        self.capture = capture
        self.publisher = publisher or SessionPublisher()
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_backoff_seconds = reconnect_backoff_seconds
        self.idle_timeout_seconds = idle_timeout_seconds
        self.stop_capture_on_error = stop_capture_on_error
        self.name = name

        self.lock = threading.RLock()
        self.events: "queue.Queue[Optional[Tuple[int, ChannelEvent]]]" = queue.Queue()
        self.stop_requested = threading.Event()

        self.desired_active = False
        self.current_transcript = Transcript()
        self.channel: Optional[StreamingChannel] = None
        self.handle: Optional[CaptureHandle] = None
        self.generation = 0
        self.reconnect_attempts = 0
        self._status = ConnectionStatus.DISCONNECTED
        self._error: Optional[str] = None
        self._audio_level = 0.0

        self.forwarder = ChunkForwarder(name, self._send_audio, chunk_interval_ms)
        pub.subscribe(self.forwarder.on_audio_chunk, capture.publisher.audio_topic)
        pub.subscribe(self._on_audio_level, capture.publisher.level_topic)

        self.worker = threading.Thread(target=self._consume_events, daemon=True)
        self.worker.name = f"{name}_events"
        self.worker.start()
        logger.info(f"TranscriptionSession '{name}' initialized "
                    f"(chunk_interval={chunk_interval_ms}ms, max_reconnects={max_reconnect_attempts})")

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def transcript(self) -> str:
        return self.current_transcript.text

    @property
    def audio_level(self) -> float:
        return self._audio_level

    @property
    def is_active(self) -> bool:
        """True from ``start()`` until the session is stopped or gives up."""
        return self.desired_active

    def start(self) -> None:
        """Start capturing and streaming to the backend.

        Failures are reported through ``status``/``error``, never raised.
        """
        with self.lock:
            if self.desired_active:
                logger.warning("Transcription session already active")
                return

            logger.info(f"Starting transcription session '{self.name}'")
            self.desired_active = True
            self.stop_requested.clear()
            self.current_transcript = Transcript()
            self.reconnect_attempts = 0
            self._error = None
            self.forwarder.reset()
            self.publisher.publish_transcript("")
            self._set_status(ConnectionStatus.CONNECTING)

            try:
                self.handle = self.capture.start()
            except CaptureError as e:
                logger.error(f"Audio capture failed to start: {e}")
                self._fail(e.kind, str(e))
                return

            try:
                self._open_channel()
            except Exception as e:
                logger.error(f"Could not open transcription channel: {e}")
                kind = e.kind if isinstance(e, MeetScribeError) else ErrorKind.NETWORK_FAILURE
                self._fail(kind, str(e))

    def stop(self) -> None:
        """Stop streaming and capture. Idempotent and safe from any state."""
        with self.lock:
            if self.desired_active or self.channel is not None or self.handle is not None:
                logger.info(f"Stopping transcription session '{self.name}'")
            self.desired_active = False
            self.stop_requested.set()
            # No frames arrive after capture stops; the buffered tail still
            # goes to the open channel before it is closed
            self.capture.stop()
            self.forwarder.flush()
            self._retire_channel()
            self._release_capture()
            self._error = None
            self._set_status(ConnectionStatus.DISCONNECTED)

    def drain(self, timeout: float = 5.0) -> bool:
        """Wait until every queued channel event has been applied.

        Returns:
            True if the queue drained before the timeout
        """
        start_time = time.time()
        while time.time() - start_time < timeout:
            if self.events.unfinished_tasks == 0:
                return True
            time.sleep(0.005)
        logger.warning(f"[{self.name}] Timeout waiting for {self.events.unfinished_tasks} channel events")
        return False

    def close(self) -> None:
        """Stop the session, its consumer thread and its subscriptions."""
        self.stop()
        try:
            pub.unsubscribe(self.forwarder.on_audio_chunk, self.capture.publisher.audio_topic)
            pub.unsubscribe(self._on_audio_level, self.capture.publisher.level_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")

        self.events.put(None)
        if self.worker.is_alive() and self.worker is not threading.current_thread():
            self.worker.join(2.0)
            if self.worker.is_alive():
                logger.warning(f"Worker thread {self.worker.name} did not terminate cleanly.")

    # Channel plumbing

    def _open_channel(self) -> None:
        """Open a new channel generation. Caller holds the lock."""
        self.generation += 1
        generation = self.generation
        self.channel = self.backend.open_channel(
            self.handle.sample_rate,
            self.handle.channels,
            partial(self._enqueue, generation),
        )
        logger.info(f"[{self.name}] Channel #{generation} opening")

    def _retire_channel(self) -> None:
        """Invalidate and close the current channel. Caller holds the lock."""
        self.generation += 1
        channel, self.channel = self.channel, None
        if channel is None:
            return
        try:
            channel.close()
        except Exception as e:
            logger.warning(f"Error closing transcription channel: {e}")

    def _release_capture(self) -> None:
        """Stop capture and reset the level. Caller holds the lock."""
        self.forwarder.reset()
        self.capture.stop()
        self.handle = None
        self._audio_level = 0.0
        self.publisher.publish_level(0.0)

    def _send_audio(self, audio_chunk: bytes) -> None:
        # Runs on the capture thread; stop() joins that thread while holding
        # the lock, so only read the channel reference here.
        channel = self.channel
        if channel is not None:
            channel.send(audio_chunk)

    def _on_audio_level(self, level: float) -> None:
        self._audio_level = level if self.handle is not None else 0.0
        self.publisher.publish_level(self._audio_level)

    def _enqueue(self, generation: int, event: ChannelEvent) -> None:
        self.events.put((generation, event))

    # Event consumer

    def _consume_events(self) -> None:
        """Single consumer: apply channel events in arrival order."""
        logger.debug(f"Worker thread {self.worker.name} starting")
        while True:
            try:
                item = self.events.get(timeout=self.idle_timeout_seconds)
            except queue.Empty:
                self._on_idle_timeout()
                continue

            if item is None:
                self.events.task_done()
                break

            generation, event = item
            try:
                self._apply(generation, event)
            except Exception as e:
                logger.error(f"Error applying {type(event).__name__}: {e}", exc_info=True)
            finally:
                self.events.task_done()
        logger.debug(f"Worker thread {self.worker.name} exiting")

    def _apply(self, generation: int, event: ChannelEvent) -> None:
        if isinstance(event, ChannelClosed):
            self._on_channel_closed(generation)
            return

        with self.lock:
            if generation != self.generation:
                logger.debug(f"Ignoring {type(event).__name__} from retired channel #{generation}")
                return

            if isinstance(event, ChannelOpened):
                self._on_channel_opened(generation)
            elif isinstance(event, TranscriptUpdate):
                self._on_transcript_update(event)
            elif isinstance(event, ChannelError):
                self._on_channel_error(event)
            else:
                logger.warning(f"Unknown channel event: {event!r}")

    def _on_channel_opened(self, generation: int) -> None:
        logger.info(f"[{self.name}] Channel #{generation} connected")
        self.reconnect_attempts = 0
        self._error = None
        self._set_status(ConnectionStatus.CONNECTED)

    def _on_transcript_update(self, event: TranscriptUpdate) -> None:
        text = self.current_transcript.apply(TranscriptSegment(text=event.text, final=event.is_final))
        if event.is_final:
            logger.debug(f"[{self.name}] FINAL: '{event.text}'")
        self.publisher.publish_transcript(text)

    def _on_channel_error(self, event: ChannelError) -> None:
        logger.warning(f"[{self.name}] Backend error ({event.kind.value}): {event.detail}")
        self._error = user_message(event.kind, event.detail)
        if self.stop_capture_on_error:
            self.desired_active = False
            self._release_capture()
        self._set_status(ConnectionStatus.ERROR)

    def _on_channel_closed(self, generation: int) -> None:
        with self.lock:
            if generation != self.generation:
                logger.debug(f"Ignoring close of retired channel #{generation}")
                return
            self.channel = None

            if not self.desired_active:
                logger.info(f"[{self.name}] Channel #{generation} closed")
                self._set_status(ConnectionStatus.DISCONNECTED)
                return

            if self.reconnect_attempts >= self.max_reconnect_attempts:
                logger.error(f"[{self.name}] Channel #{generation} closed; "
                             f"reconnect budget of {self.max_reconnect_attempts} exhausted")
                self._give_up()
                return

            self.reconnect_attempts += 1
            attempt = self.reconnect_attempts
            logger.warning(f"[{self.name}] Channel #{generation} closed unexpectedly; "
                           f"reconnect attempt {attempt}/{self.max_reconnect_attempts}")
            # Provisional text of the dead channel will never be finalized
            if self.current_transcript.discard_pending():
                self.publisher.publish_transcript(self.current_transcript.text)
            self._set_status(ConnectionStatus.CONNECTING)
            delay = self.reconnect_backoff_seconds * (2 ** (attempt - 1))

        if delay > 0 and self.stop_requested.wait(delay):
            logger.info(f"[{self.name}] Stop requested during reconnect backoff")
            return

        with self.lock:
            if not self.desired_active or generation != self.generation:
                return
            try:
                self._open_channel()
            except Exception as e:
                logger.error(f"[{self.name}] Reconnect attempt {attempt} failed: {e}")
                self._give_up()

    def _on_idle_timeout(self) -> None:
        with self.lock:
            if not self.desired_active or self._status != ConnectionStatus.CONNECTED or self.channel is None:
                return
            logger.warning(f"[{self.name}] No channel events for {self.idle_timeout_seconds}s; "
                           f"closing stalled channel #{self.generation}")
            # The resulting ChannelClosed goes through the reconnect path
            self.channel.close()

    def _give_up(self) -> None:
        """Declare the session disconnected after a failed recovery. Caller holds the lock."""
        self.desired_active = False
        self._retire_channel()
        self._release_capture()
        self._set_status(ConnectionStatus.DISCONNECTED)

    def _fail(self, kind: ErrorKind, detail: str) -> None:
        """Abort a start attempt. Caller holds the lock."""
        self.desired_active = False
        self._retire_channel()
        self._release_capture()
        self._error = user_message(kind, detail)
        self._set_status(ConnectionStatus.ERROR)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status != self._status:
            logger.info(f"[{self.name}] {self._status.value} -> {status.value}")
        self._status = status
        self.publisher.publish_status(status, self._error)
