"""Data models for the MeetScribe application."""

from .transcription import ConnectionStatus, TranscriptSegment, Transcript
from .audio import AudioStats, CaptureHandle
from .session import SessionRecord, ChatMessage
from .events import (
    AudioEvent,
    ChannelEvent,
    ChannelOpened,
    TranscriptUpdate,
    ChannelError,
    ChannelClosed,
)

__all__ = [
    "ConnectionStatus",
    "TranscriptSegment",
    "Transcript",
    "AudioStats",
    "CaptureHandle",
    "SessionRecord",
    "ChatMessage",
    # Channel and audio events
    "AudioEvent",
    "ChannelEvent",
    "ChannelOpened",
    "TranscriptUpdate",
    "ChannelError",
    "ChannelClosed",
]
