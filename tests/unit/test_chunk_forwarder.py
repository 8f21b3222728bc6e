import time
import pytest
from unittest.mock import MagicMock

from meetscribe.models.events import AudioEvent
from meetscribe.transcription.consumers import ChunkForwarder


def create_audio_event(sequence: int, duration_ms: float = 50.0, sample_rate: int = 16000) -> AudioEvent:
    """Creates a silent audio event of the given duration."""
    frames = int(sample_rate * duration_ms / 1000)
    return AudioEvent(
        chunk_id=f"chunk_{sequence}",
        audio_data=b'\x00\x00' * frames,
        timestamp=time.time(),
        sequence_number=sequence,
        sample_rate=sample_rate,
    )


@pytest.fixture
def send():
    return MagicMock()


@pytest.mark.unit
def test_frames_batched_until_interval(send):
    forwarder = ChunkForwarder("test_forwarder", send, chunk_interval_ms=250)

    for i in range(4):
        forwarder.on_audio_chunk(create_audio_event(i))
    send.assert_not_called()

    forwarder.on_audio_chunk(create_audio_event(4))

    send.assert_called_once()
    assert len(send.call_args.args[0]) == 16000 * 2 // 4
    assert forwarder.chunks_forwarded == 1
    assert forwarder.buffered_ms == 0.0


@pytest.mark.unit
def test_large_frame_forwarded_immediately(send):
    forwarder = ChunkForwarder("test_forwarder", send, chunk_interval_ms=100)

    forwarder.on_audio_chunk(create_audio_event(0, duration_ms=300))

    assert send.call_count == 1


@pytest.mark.unit
def test_flush_sends_remainder(send):
    forwarder = ChunkForwarder("test_forwarder", send, chunk_interval_ms=250)
    forwarder.on_audio_chunk(create_audio_event(0))

    forwarder.flush()
    forwarder.flush()

    send.assert_called_once()
    assert len(send.call_args.args[0]) == 1600


@pytest.mark.unit
def test_reset_drops_buffer(send):
    forwarder = ChunkForwarder("test_forwarder", send, chunk_interval_ms=250)
    forwarder.on_audio_chunk(create_audio_event(0))

    forwarder.reset()
    forwarder.flush()

    send.assert_not_called()
    assert forwarder.events_in_buffer == 0


@pytest.mark.unit
def test_empty_frames_ignored(send):
    forwarder = ChunkForwarder("test_forwarder", send, chunk_interval_ms=10)

    forwarder.on_audio_chunk(AudioEvent("chunk_0", b"", time.time(), 0, 16000))

    send.assert_not_called()
    assert forwarder.events_in_buffer == 0


@pytest.mark.unit
def test_invalid_interval():
    with pytest.raises(ValueError):
        ChunkForwarder("test_forwarder", MagicMock(), chunk_interval_ms=0)
