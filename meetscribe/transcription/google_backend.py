"""Google Speech-to-Text streaming transcription backend."""

import queue
import logging
import threading
from typing import Optional, Dict, Any, Iterator

from .base import AbstractStreamingBackend, StreamingChannel, EventCallback
from ..errors import ChannelOpenError, ErrorKind, MissingCredentialError
from ..models.events import ChannelOpened, TranscriptUpdate, ChannelError, ChannelClosed

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


def error_kind_for(error: Exception) -> ErrorKind:
    """Map a Google API exception onto the error taxonomy."""
    if isinstance(error, (gax_exceptions.PermissionDenied,
                          gax_exceptions.Unauthenticated,
                          gax_exceptions.InvalidArgument,
                          gax_exceptions.ResourceExhausted)):
        return ErrorKind.SERVICE_REJECTED
    if isinstance(error, (gax_exceptions.ServiceUnavailable,
                          gax_exceptions.DeadlineExceeded)):
        return ErrorKind.NETWORK_FAILURE
    return ErrorKind.UNKNOWN


class GoogleStreamingChannel(StreamingChannel):
    """A single streaming_recognize call driven by a request generator."""

    def __init__(self,
                 client: speech.SpeechClient,
                 streaming_config: speech.StreamingRecognitionConfig,
                 on_event: EventCallback,
                 name: str = "GoogleStreamingChannel"):
        self.client = client
        self.streaming_config = streaming_config
        self.on_event = on_event
        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.closed = threading.Event()
        self.chunks_sent = 0

        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = name

    def start(self) -> None:
        self.thread.start()

    def send(self, audio_chunk: bytes) -> None:
        if self.closed.is_set():
            return
        self.audio_queue.put(audio_chunk)

    def close(self) -> None:
        if self.closed.is_set():
            return
        logger.debug(f"Closing {self.thread.name}")
        self.closed.set()
        # Sentinel ends the request generator, which half-closes the stream
        self.audio_queue.put(None)

    def _requests(self) -> Iterator[speech.StreamingRecognizeRequest]:
        """Yield queued audio, coalescing chunks that piled up while blocked."""
        while True:
            chunk = self.audio_queue.get()
            if chunk is None:
                return
            data = [chunk]
            finished = False
            while True:
                try:
                    chunk = self.audio_queue.get_nowait()
                except queue.Empty:
                    break
                if chunk is None:
                    finished = True
                    break
                data.append(chunk)

            self.chunks_sent += len(data)
            yield speech.StreamingRecognizeRequest(audio_content=b"".join(data))
            if finished:
                return

    def _run(self) -> None:
        """Internal method: run the stream and translate responses into channel events."""
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._requests(),
            )
            self.on_event(ChannelOpened())
            for response in responses:
                self.__handle_response(response)
        except gax_exceptions.OutOfRange as e:
            # Stream duration limit or audio timeout: a plain close
            logger.info(f"Google stream ended by server: {e}")
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT streaming error: {e}")
            self.on_event(ChannelError(error_kind_for(e), str(e)))
        except Exception as e:
            logger.error(f"Unexpected error in Google stream: {e}", exc_info=True)
            self.on_event(ChannelError(ErrorKind.UNKNOWN, str(e)))
        finally:
            self.closed.set()
            logger.debug(f"{self.thread.name} finished after {self.chunks_sent} chunks")
            self.on_event(ChannelClosed())

    def __handle_response(self, response: speech.StreamingRecognizeResponse) -> None:
        interim = []
        for result in response.results:
            if not result.alternatives:
                continue
            transcript = result.alternatives[0].transcript
            if result.is_final:
                logger.debug(f"--- FINAL --- '{transcript}'")
                self.on_event(TranscriptUpdate(text=transcript.strip(), is_final=True))
            else:
                interim.append(transcript)

        if interim:
            self.on_event(TranscriptUpdate(text="".join(interim).strip(), is_final=False))


class GoogleStreamingBackend(AbstractStreamingBackend):
    """Google Speech-to-Text streaming API backend."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 model: str = "latest_long",
                 use_enhanced: bool = False,
                 enable_automatic_punctuation: bool = True):
        """Initialize Google streaming backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'es-ES')
            model: Recognition model name
            use_enhanced: Whether to use enhanced model
            enable_automatic_punctuation: Enable automatic punctuation
        """
        super().__init__(language)
        if not credentials_path:
            raise MissingCredentialError("Google credentials path is required - cannot initialize without credentials")
        self.credentials_path = credentials_path
        self.model = model
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self.channels_opened = 0

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)

        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

        logger.info("Google Speech-to-Text streaming backend initialized successfully")
        return True

    def build_streaming_config(self, sample_rate: int, channels: int) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model=self.model,
        )
        return speech.StreamingRecognitionConfig(config=config, interim_results=True)

    def open_channel(self, sample_rate: int, channels: int, on_event: EventCallback) -> GoogleStreamingChannel:
        """Open a streaming_recognize call for audio at the negotiated rate."""
        if self.client is None:
            raise ChannelOpenError("Google Speech backend is not initialized", ErrorKind.UNKNOWN)

        self.channels_opened += 1
        logger.info(f"Opening Google streaming channel #{self.channels_opened}: "
                    f"{sample_rate}Hz x{channels}, language={self.language}, model={self.model}")
        channel = GoogleStreamingChannel(
            client=self.client,
            streaming_config=self.build_streaming_config(sample_rate, channels),
            on_event=on_event,
            name=f"GoogleStreamingChannel-{self.channels_opened}",
        )
        try:
            channel.start()
        except RuntimeError as e:
            raise ChannelOpenError(f"Could not start streaming thread: {e}", ErrorKind.UNKNOWN) from e
        return channel

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        if self.client is None:
            return
        try:
            self.client.transport.close()
        except Exception as e:
            logger.warning(f"Error closing Google Speech transport: {e}")
        self.client = None

    def get_stats(self) -> Dict[str, Any]:
        """Get Google-specific statistics."""
        return {
            "service": self.service_name,
            "language": self.language,
            "model": self.model,
            "use_enhanced": self.use_enhanced,
            "enable_punctuation": self.enable_automatic_punctuation,
            "channels_opened": self.channels_opened,
        }
