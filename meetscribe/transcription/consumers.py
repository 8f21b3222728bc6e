"""Audio consumer that batches capture frames into fixed-cadence channel chunks."""

import logging
import threading
from typing import Callable

from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class ChunkForwarder:
    """Buffers audio events and forwards one chunk per ``chunk_interval_ms``.

    Capture delivers small device-sized frames; ASR backends prefer fewer,
    larger writes. Frames are accumulated until the buffered duration reaches
    the interval, then the whole buffer is handed to ``send``.
    """

    def __init__(self,
                 name: str,
                 send: Callable[[bytes], None],
                 chunk_interval_ms: float = 250.0):
        if chunk_interval_ms <= 0:
            raise ValueError("chunk_interval_ms must be positive")
        self.name = name
        self.send = send
        self.chunk_interval_ms = chunk_interval_ms

        self.lock = threading.Lock()
        self.audio_buffer = bytearray()
        self.buffered_ms = 0.0
        self.events_in_buffer = 0
        self.chunks_forwarded = 0

    def on_audio_chunk(self, event: AudioEvent) -> None:
        """Buffer a captured frame and forward the buffer once it is full."""
        if not event.audio_data:
            return

        with self.lock:
            self.audio_buffer.extend(event.audio_data)
            self.buffered_ms += event.chunk_duration_ms or 0.0
            self.events_in_buffer += 1
            if self.buffered_ms < self.chunk_interval_ms:
                return
            chunk = self._copy_and_clear_audio_buffer()

        self.send(chunk)

    def flush(self) -> None:
        """Forward whatever is buffered, even if short of the interval."""
        with self.lock:
            if not self.audio_buffer:
                return
            chunk = self._copy_and_clear_audio_buffer()
        self.send(chunk)

    def reset(self) -> None:
        """Drop buffered audio without forwarding it."""
        with self.lock:
            if self.audio_buffer:
                logger.debug(f"[{self.name}] Dropping {self.buffered_ms:.0f}ms of buffered audio")
            self.audio_buffer.clear()
            self.buffered_ms = 0.0
            self.events_in_buffer = 0

    def _copy_and_clear_audio_buffer(self) -> bytes:
        """Copy and clear the buffer. Caller holds the lock."""
        chunk = bytes(self.audio_buffer)
        logger.debug(f"[{self.name}] Forwarding chunk #{self.chunks_forwarded + 1}: "
                     f"{len(chunk)} bytes, {self.buffered_ms:.0f}ms, {self.events_in_buffer} frames")
        self.audio_buffer.clear()
        self.buffered_ms = 0.0
        self.events_in_buffer = 0
        self.chunks_forwarded += 1
        return chunk
