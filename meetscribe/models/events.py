"""Event models for audio publishing and the streaming ASR channel."""

from dataclasses import dataclass
from typing import Optional

from ..errors import ErrorKind


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int
    channels: int = 1
    chunk_duration_ms: Optional[float] = None

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            self.chunk_duration_ms = len(self.audio_data) * 1000.0 / bytes_per_second


class ChannelEvent:
    """Base class for messages produced by a streaming ASR channel."""


@dataclass
class ChannelOpened(ChannelEvent):
    """Backend acknowledged that the channel is ready."""


@dataclass
class TranscriptUpdate(ChannelEvent):
    """Recognition result; provisional unless is_final."""
    text: str
    is_final: bool = False


@dataclass
class ChannelError(ChannelEvent):
    """Backend reported an error on the channel."""
    kind: ErrorKind
    detail: Optional[str] = None


@dataclass
class ChannelClosed(ChannelEvent):
    """Channel ended, with or without a preceding error."""
