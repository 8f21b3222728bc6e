"""Streaming transcription module for MeetScribe."""

from .base import AbstractStreamingBackend, StreamingChannel
from .consumers import ChunkForwarder
from .publisher import SessionPublisher
from .session import TranscriptionSession

__all__ = [
    "AbstractStreamingBackend",
    "StreamingChannel",
    "ChunkForwarder",
    "SessionPublisher",
    "TranscriptionSession",
]
