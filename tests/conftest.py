"""Pytest configuration and fixtures for MeetScribe tests."""

import time
import uuid
import logging
import tempfile
from typing import Callable, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from meetscribe.audio.audio_pub import AudioPublisher
from meetscribe.errors import ChannelOpenError, ErrorKind
from meetscribe.inference.base import AbstractGenerationBackend, GenerationRequest
from meetscribe.models.audio import CaptureHandle
from meetscribe.models.events import (
    AudioEvent,
    ChannelOpened,
    TranscriptUpdate,
    ChannelError,
    ChannelClosed,
)
from meetscribe.transcription.base import AbstractStreamingBackend, StreamingChannel
from meetscribe.transcription.publisher import SessionPublisher
from meetscribe.transcription.session import TranscriptionSession


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def unique_root(prefix: str) -> str:
    """Fresh pubsub topic root so tests never share listeners."""
    return f"{prefix}{uuid.uuid4().hex}"


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    start_time = time.time()
    while time.time() - start_time < timeout:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def sine_wave(freq: float, sample_rate: int, frames: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(frames) / sample_rate
    return amplitude * np.sin(2 * np.pi * freq * t)


class FakeCaptureMonitor:
    """Capture monitor double publishing on real pubsub topics."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        self.publisher = AudioPublisher(root=unique_root("audio"))
        self.sample_rate = sample_rate
        self.channels = channels
        self.fail_with: Optional[Exception] = None
        self.handle: Optional[CaptureHandle] = None
        self.start_calls = 0
        self.release_count = 0
        self.sequence = 0

    @property
    def is_capturing(self) -> bool:
        return self.handle is not None

    def start(self) -> CaptureHandle:
        self.start_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        if self.handle is None:
            self.handle = CaptureHandle(sample_rate=self.sample_rate, channels=self.channels,
                                        device_name="Fake Mic")
        return self.handle

    def stop(self) -> None:
        if self.handle is None:
            return
        self.handle = None
        self.release_count += 1

    def emit_frame(self, audio_data: bytes) -> None:
        self.sequence += 1
        self.publisher.publish_audio_event(AudioEvent(
            chunk_id=f"chunk_{self.sequence}",
            audio_data=audio_data,
            timestamp=time.time(),
            sequence_number=self.sequence,
            sample_rate=self.sample_rate,
            channels=self.channels,
        ))

    def emit_level(self, level: float) -> None:
        self.publisher.publish_level(level)


class FakeChannel(StreamingChannel):
    """Streaming channel double; tests drive the server side with emit_*."""

    def __init__(self, on_event, sample_rate: int, channels: int):
        self.on_event = on_event
        self.sample_rate = sample_rate
        self.channels = channels
        self.sent: List[bytes] = []
        self.closed = False

    def send(self, audio_chunk: bytes) -> None:
        if not self.closed:
            self.sent.append(audio_chunk)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.on_event(ChannelClosed())

    def emit_opened(self) -> None:
        self.on_event(ChannelOpened())

    def emit_text(self, text: str, final: bool = False) -> None:
        self.on_event(TranscriptUpdate(text=text, is_final=final))

    def emit_error(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.on_event(ChannelError(kind, detail))

    def emit_closed(self) -> None:
        """Server-side close."""
        self.closed = True
        self.on_event(ChannelClosed())


class FakeStreamingBackend(AbstractStreamingBackend):
    """Streaming ASR backend double that records every channel it opens."""

    def __init__(self, auto_open: bool = True):
        super().__init__("en-US")
        self.auto_open = auto_open
        self.fail_next_opens = 0
        self.open_calls = 0
        self.channels: List[FakeChannel] = []

    @property
    def latest(self) -> FakeChannel:
        return self.channels[-1]

    def initialize(self) -> bool:
        return True

    def open_channel(self, sample_rate, channels, on_event) -> FakeChannel:
        self.open_calls += 1
        if self.fail_next_opens > 0:
            self.fail_next_opens -= 1
            raise ChannelOpenError("connection refused", ErrorKind.NETWORK_FAILURE)
        channel = FakeChannel(on_event, sample_rate, channels)
        self.channels.append(channel)
        if self.auto_open:
            channel.emit_opened()
        return channel

    def cleanup(self) -> None:
        pass


class FakeGenerationBackend(AbstractGenerationBackend):
    """Generation backend double yielding scripted deltas.

    With ``error`` set, the error is raised after ``fail_after`` deltas.
    """

    def __init__(self, deltas=None, error: Optional[Exception] = None, fail_after: int = 0):
        self.deltas = list(deltas or [])
        self.error = error
        self.fail_after = fail_after
        self.requests: List[GenerationRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def stream(self, request: GenerationRequest):
        self.requests.append(request)
        for index, delta in enumerate(self.deltas):
            if self.error is not None and index == self.fail_after:
                raise self.error
            yield delta
        if self.error is not None and self.fail_after >= len(self.deltas):
            raise self.error


class SessionRecorder:
    """Records every message on a SessionPublisher's topics."""

    def __init__(self, publisher: SessionPublisher):
        self.statuses = []
        self.transcripts = []
        self.levels = []
        self.analyses = []
        pub.subscribe(self.on_status, publisher.status_topic)
        pub.subscribe(self.on_transcript, publisher.transcript_topic)
        pub.subscribe(self.on_level, publisher.level_topic)
        pub.subscribe(self.on_analysis, publisher.analysis_topic)

    def on_status(self, status, error):
        self.statuses.append((status, error))

    def on_transcript(self, transcript):
        self.transcripts.append(transcript)

    def on_level(self, level):
        self.levels.append(level)

    def on_analysis(self, analysis):
        self.analyses.append(analysis)


class AudioRecorder:
    """Records frames and levels published by an AudioPublisher."""

    def __init__(self, publisher: AudioPublisher):
        self.events = []
        self.levels = []
        pub.subscribe(self.on_frame, publisher.audio_topic)
        pub.subscribe(self.on_level, publisher.level_topic)

    def on_frame(self, event):
        self.events.append(event)

    def on_level(self, level):
        self.levels.append(level)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        def read(frames, exception_on_overflow=True):
            time.sleep(0.005)
            return b'\x00\x00' * frames  # Silent audio

        mock_stream.read.side_effect = read
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        device_info = {
            "index": 0,
            "name": "Test Mic",
            "maxInputChannels": 1,
            "defaultSampleRate": 48000.0,
        }
        mock_pyaudio_instance.get_default_input_device_info.return_value = device_info
        mock_pyaudio_instance.get_device_info_by_index.return_value = device_info
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'device_info': device_info,
        }


@pytest.fixture
def fake_capture():
    return FakeCaptureMonitor()


@pytest.fixture
def fake_backend():
    return FakeStreamingBackend()


@pytest.fixture
def session_publisher():
    return SessionPublisher(root=unique_root("session"))


@pytest.fixture
def session_recorder(session_publisher):
    return SessionRecorder(session_publisher)


@pytest.fixture
def session(fake_backend, fake_capture, session_publisher):
    """Transcription session wired to fake capture and ASR backend."""
    transcription_session = TranscriptionSession(
        fake_backend,
        fake_capture,
        publisher=session_publisher,
        chunk_interval_ms=100,
        name="test_session",
    )
    yield transcription_session
    transcription_session.close()


@pytest.fixture
def wait_until():
    """Polling wait: wait_until(predicate, timeout=2.0) -> bool."""
    return wait_for


@pytest.fixture
def topic_root():
    """Factory for unique pubsub topic roots."""
    return unique_root


@pytest.fixture
def generation_backend():
    """Factory for scripted generation backends."""
    return FakeGenerationBackend


@pytest.fixture
def streaming_backend():
    """Factory for fake streaming ASR backends."""
    return FakeStreamingBackend


@pytest.fixture
def audio_recorder():
    """Factory recording an AudioPublisher's frames and levels."""
    return AudioRecorder


@pytest.fixture
def tone():
    """Factory for sine test signals: tone(freq, sample_rate, frames, amplitude=0.5)."""
    return sine_wave
