"""Microphone capture with input conditioning, level sampling and event publishing."""

import errno
import time
import logging
import threading
from threading import Thread, Event
from typing import Optional

import pyaudio

from .audio_pub import AudioPublisher
from .level import FrequencyAnalyser, pcm16_to_float, float_to_pcm16
from .processing import InputProcessor
from ..errors import CaptureError, ErrorKind
from ..models.audio import AudioStats, CaptureHandle
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)


class AudioCaptureMonitor:
    """Owns the microphone stream and the periodic level sampler.

    Captured chunks are published as ``AudioEvent`` on the publisher's frame
    topic; the level is sampled ``level_refresh_hz`` times per second and
    published on its level topic. The monitor knows nothing about
    transcription.
    """

    def __init__(
        self,
        publisher: AudioPublisher,
        chunk_size: int = 1024,
        channels: int = 1,
        input_device_index: Optional[int] = None,
        fft_size: int = 256,
        smoothing_time_constant: float = 0.3,
        level_refresh_hz: float = 60.0,
        echo_cancellation: bool = True,
        noise_suppression: bool = True,
        auto_gain_control: bool = True,
        format: int = pyaudio.paInt16,
    ):
        """Initialize capture monitor.

        Args:
            publisher: Destination for audio frames and levels
            chunk_size: Frames per read from the device
            channels: Requested channel count (capped by the device)
            input_device_index: PyAudio device index, None for the default input
            fft_size: Analyser window size in samples
            smoothing_time_constant: Analyser smoothing between reads
            level_refresh_hz: Level sampler cadence
            echo_cancellation: Echo cancellation hint for the platform
            noise_suppression: Apply high-pass noise suppression
            auto_gain_control: Apply automatic gain
            format: Sample format (16-bit signed int)
        """
        if level_refresh_hz <= 0:
            raise ValueError("level_refresh_hz must be positive")

        self.publisher = publisher
        self.chunk_size = chunk_size
        self.channels = channels
        self.input_device_index = input_device_index
        self.level_interval = 1.0 / level_refresh_hz
        self.echo_cancellation = echo_cancellation
        self.noise_suppression = noise_suppression
        self.auto_gain_control = auto_gain_control
        self.format = format
        self.analyser = FrequencyAnalyser(fft_size=fft_size,
                                          smoothing_time_constant=smoothing_time_constant)

        self.lock = threading.Lock()
        self.handle: Optional[CaptureHandle] = None
        self.processor: Optional[InputProcessor] = None
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

        self.reader_thread: Optional[Thread] = None
        self.sampler_thread: Optional[Thread] = None
        self.stop_event = Event()

        self.start_time: Optional[float] = None
        self.total_chunks = 0
        self.level = 0.0

    @property
    def is_capturing(self) -> bool:
        return self.handle is not None

    def start(self) -> CaptureHandle:
        """Open the input stream and start reading and level sampling.

        Returns:
            Handle describing the negotiated stream

        Raises:
            CaptureError: PERMISSION_DENIED or DEVICE_UNAVAILABLE
        """
        with self.lock:
            if self.handle is not None:
                logger.warning("Capture already in progress")
                return self.handle

            logger.info("Starting audio capture")
            self.pyaudio_instance = pyaudio.PyAudio()
            try:
                handle = self.__open_audio_stream()
            except Exception:
                self.__release_device()
                raise

            self.processor = InputProcessor(
                sample_rate=handle.sample_rate,
                channels=handle.channels,
                noise_suppression=self.noise_suppression,
                auto_gain_control=self.auto_gain_control,
            )
            self.analyser.reset()
            self.stop_event.clear()
            self.start_time = time.time()
            self.total_chunks = 0
            self.handle = handle

            self.reader_thread = Thread(target=self._read_continuously, daemon=True)
            self.reader_thread.name = "AudioCaptureThread"
            self.reader_thread.start()

            self.sampler_thread = Thread(target=self._sample_levels, daemon=True)
            self.sampler_thread.name = "AudioLevelSampler"
            self.sampler_thread.start()
            return handle

    def __open_audio_stream(self) -> CaptureHandle:
        try:
            if self.input_device_index is None:
                device_info = self.pyaudio_instance.get_default_input_device_info()
            else:
                device_info = self.pyaudio_instance.get_device_info_by_index(self.input_device_index)
        except (IOError, OSError) as e:
            raise self.__capture_error(e, "No input device available") from e

        max_channels = int(device_info.get("maxInputChannels", 0))
        if max_channels < 1:
            raise CaptureError(f"Device '{device_info.get('name')}' has no input channels",
                               ErrorKind.DEVICE_UNAVAILABLE)

        # The rate is whatever the platform reports for the device; forcing a
        # fixed one breaks some Bluetooth hands-free profiles.
        sample_rate = int(device_info["defaultSampleRate"])
        channels = min(self.channels, max_channels)

        try:
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=channels,
                rate=sample_rate,
                input=True,
                input_device_index=int(device_info["index"]),
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (IOError, OSError) as e:
            raise self.__capture_error(e, "Could not open input stream") from e

        if self.echo_cancellation:
            logger.debug("Echo cancellation requested; left to the platform audio stack")

        logger.info(f"Audio stream opened on '{device_info.get('name')}': {sample_rate}Hz, "
                    f"{channels} channel(s), {self.chunk_size} samples/chunk")
        return CaptureHandle(
            sample_rate=sample_rate,
            channels=channels,
            device_name=str(device_info.get("name", "")),
            echo_cancellation=self.echo_cancellation,
            noise_suppression=self.noise_suppression,
            auto_gain_control=self.auto_gain_control,
        )

    @staticmethod
    def __capture_error(error: Exception, context: str) -> CaptureError:
        if isinstance(error, PermissionError) or getattr(error, "errno", None) in (errno.EACCES, errno.EPERM):
            return CaptureError(f"{context}: {error}", ErrorKind.PERMISSION_DENIED)
        return CaptureError(f"{context}: {error}", ErrorKind.DEVICE_UNAVAILABLE)

    def sample_level(self) -> float:
        """Read the current input level in [0, 1]."""
        if self.handle is None:
            return 0.0
        self.level = self.analyser.level()
        return self.level

    def _read_continuously(self) -> None:
        """Internal method: read, condition and publish audio until stopped."""
        stream = self.stream
        handle = self.handle
        while not self.stop_event.is_set():
            try:
                audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
            except (IOError, OSError) as e:
                if not self.stop_event.is_set():
                    logger.error(f"Audio read failed, capture thread exiting: {e}")
                break

            self.total_chunks += 1
            samples = self.processor.process(pcm16_to_float(audio_chunk, handle.channels))
            self.analyser.push(samples.mean(axis=1))
            self.__publish_audio_event(float_to_pcm16(samples), handle)

    def __publish_audio_event(self, audio_chunk: bytes, handle: CaptureHandle) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=handle.sample_rate,
            channels=handle.channels,
        )
        self.publisher.publish_audio_event(audio_event)

    def _sample_levels(self) -> None:
        """Internal method: publish the level on a steady cadence until stopped."""
        while not self.stop_event.wait(self.level_interval):
            self.publisher.publish_level(self.sample_level())

    def stop(self) -> None:
        """Stop capture and release the device. Safe to call repeatedly."""
        with self.lock:
            handle, self.handle = self.handle, None
            if handle is None:
                logger.debug("No capture in progress")
                return

            logger.info("Stopping audio capture")
            self.stop_event.set()
            for thread in (self.reader_thread, self.sampler_thread):
                if thread and thread.is_alive() and thread is not threading.current_thread():
                    thread.join(timeout=2.0)
                    if thread.is_alive():
                        logger.warning(f"{thread.name} did not stop cleanly")
            self.reader_thread = None
            self.sampler_thread = None

            self.__release_device()
            self.level = 0.0
            self.analyser.reset()
            logger.info(f"Capture stopped. Total chunks: {self.total_chunks}")

        self.publisher.publish_level(0.0)

    def __release_device(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except (IOError, OSError) as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def get_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time and self.handle is not None:
            duration = time.time() - self.start_time

        return AudioStats(
            is_capturing=self.is_capturing,
            duration_seconds=duration,
            sample_rate=self.handle.sample_rate if self.handle else 0,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            level=self.level,
        )
