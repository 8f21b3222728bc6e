"""Unit tests for AudioCaptureMonitor class."""

import errno

import pytest

from meetscribe.audio.audio_pub import AudioPublisher
from meetscribe.audio.capture import AudioCaptureMonitor
from meetscribe.errors import CaptureError, ErrorKind


@pytest.fixture
def audio_publisher(topic_root):
    return AudioPublisher(root=topic_root("capture"))


@pytest.fixture
def monitor(audio_publisher):
    capture = AudioCaptureMonitor(audio_publisher, chunk_size=480, level_refresh_hz=100)
    yield capture
    capture.stop()


@pytest.mark.unit
class TestAudioCaptureMonitor:
    """Test cases for AudioCaptureMonitor class."""

    def test_initialization(self, monitor):
        assert monitor.is_capturing is False
        assert monitor.chunk_size == 480
        assert monitor.total_chunks == 0
        assert monitor.sample_level() == 0.0

    def test_invalid_refresh_rate(self, audio_publisher):
        with pytest.raises(ValueError):
            AudioCaptureMonitor(audio_publisher, level_refresh_hz=0)

    def test_start_uses_device_sample_rate(self, monitor, mock_pyaudio):
        handle = monitor.start()

        assert handle.sample_rate == 48000
        assert handle.channels == 1
        assert handle.device_name == "Test Mic"
        assert handle.echo_cancellation and handle.noise_suppression and handle.auto_gain_control
        open_kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert open_kwargs['rate'] == 48000
        assert open_kwargs['input'] is True
        assert open_kwargs['frames_per_buffer'] == 480
        assert monitor.reader_thread.daemon is True

    def test_rate_follows_platform(self, monitor, mock_pyaudio):
        mock_pyaudio['device_info']['defaultSampleRate'] = 44100.0

        handle = monitor.start()

        assert handle.sample_rate == 44100

    def test_channels_capped_by_device(self, audio_publisher, mock_pyaudio):
        capture = AudioCaptureMonitor(audio_publisher, channels=2)
        try:
            handle = capture.start()
            assert handle.channels == 1
        finally:
            capture.stop()

    def test_indexed_device(self, audio_publisher, mock_pyaudio):
        capture = AudioCaptureMonitor(audio_publisher, input_device_index=3)
        try:
            capture.start()
            mock_pyaudio['instance'].get_device_info_by_index.assert_called_once_with(3)
        finally:
            capture.stop()

    def test_start_twice_returns_same_handle(self, monitor, mock_pyaudio):
        first = monitor.start()
        second = monitor.start()

        assert first is second
        assert mock_pyaudio['class'].call_count == 1

    def test_stop_is_idempotent(self, monitor, mock_pyaudio):
        monitor.start()

        monitor.stop()
        monitor.stop()

        assert monitor.is_capturing is False
        assert monitor.level == 0.0
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_restart_after_stop(self, monitor, mock_pyaudio):
        monitor.start()
        monitor.stop()
        handle = monitor.start()

        assert monitor.is_capturing
        assert handle.sample_rate == 48000
        assert mock_pyaudio['class'].call_count == 2

    def test_permission_denied(self, monitor, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError(errno.EACCES, "Permission denied")

        with pytest.raises(CaptureError) as exc_info:
            monitor.start()

        assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED
        mock_pyaudio['instance'].terminate.assert_called_once()
        assert monitor.is_capturing is False

    def test_no_default_device(self, monitor, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.side_effect = IOError(
            "No Default Input Device Available")

        with pytest.raises(CaptureError) as exc_info:
            monitor.start()

        assert exc_info.value.kind == ErrorKind.DEVICE_UNAVAILABLE
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_device_without_input_channels(self, monitor, mock_pyaudio):
        mock_pyaudio['device_info']['maxInputChannels'] = 0

        with pytest.raises(CaptureError) as exc_info:
            monitor.start()

        assert exc_info.value.kind == ErrorKind.DEVICE_UNAVAILABLE
        mock_pyaudio['instance'].open.assert_not_called()

    def test_frames_published(self, monitor, mock_pyaudio, audio_publisher, audio_recorder, wait_until):
        recorder = audio_recorder(audio_publisher)

        monitor.start()
        assert wait_until(lambda: len(recorder.events) >= 3)
        monitor.stop()

        event = recorder.events[0]
        assert event.sample_rate == 48000
        assert event.sequence_number == 1
        assert len(event.audio_data) == 480 * 2
        assert event.chunk_duration_ms == pytest.approx(10.0)

    def test_levels_published_and_reset(self, monitor, mock_pyaudio, audio_publisher, audio_recorder, wait_until):
        recorder = audio_recorder(audio_publisher)

        monitor.start()
        assert wait_until(lambda: len(recorder.levels) >= 2)
        monitor.stop()

        assert all(0.0 <= level <= 1.0 for level in recorder.levels)
        assert recorder.levels[-1] == 0.0

    def test_get_stats(self, monitor, mock_pyaudio, wait_until):
        monitor.start()
        assert wait_until(lambda: monitor.total_chunks > 0)

        stats = monitor.get_stats()

        assert stats.is_capturing is True
        assert stats.sample_rate == 48000
        assert stats.chunk_size == 480
        assert stats.total_chunks > 0
