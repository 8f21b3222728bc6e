"""Streaming inference module for MeetScribe."""

from .base import AbstractGenerationBackend, GenerationRequest
from .aggregator import StreamingAggregator, StreamingAggregate
from .assistant import MeetingAssistant
from .openai_backend import OpenAIChatBackend

__all__ = [
    "AbstractGenerationBackend",
    "GenerationRequest",
    "StreamingAggregator",
    "StreamingAggregate",
    "MeetingAssistant",
    "OpenAIChatBackend",
]
