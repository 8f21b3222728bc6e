"""Abstract base classes for streaming transcription backends."""

from abc import ABC, abstractmethod
from typing import Callable
import logging

from ..models.events import ChannelEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[ChannelEvent], None]


class StreamingChannel(ABC):
    """One open bidirectional stream to an ASR backend."""

    @abstractmethod
    def send(self, audio_chunk: bytes) -> None:
        """Queue an encoded audio chunk for the backend.

        Must not block, and must be a no-op once the channel is closed.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the channel. Idempotent.

        A ChannelClosed event follows once the stream has actually ended.
        """
        pass


class AbstractStreamingBackend(ABC):
    """Abstract base class for streaming transcription backends."""

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def open_channel(self, sample_rate: int, channels: int, on_event: EventCallback) -> StreamingChannel:
        """Open a streaming recognition channel.

        Events (ChannelOpened, TranscriptUpdate, ChannelError, ChannelClosed)
        are delivered through on_event from whatever thread the backend uses.

        Args:
            sample_rate: Sample rate of the PCM audio that will be sent
            channels: Channel count of the PCM audio that will be sent
            on_event: Receiver for channel events

        Returns:
            The open channel

        Raises:
            ChannelOpenError: If the channel cannot be opened
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
