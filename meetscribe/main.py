"""Main application entry point for MeetScribe."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from rich.console import Console

from meetscribe.audio.audio_pub import AudioPublisher
from meetscribe.audio.capture import AudioCaptureMonitor
from meetscribe.errors import MissingCredentialError
from meetscribe.inference.assistant import MeetingAssistant
from meetscribe.inference.openai_backend import OpenAIChatBackend
from meetscribe.services.session_orchestrator import SessionOrchestrator
from meetscribe.storage.history_store import HistoryStore
from meetscribe.transcription.google_backend import GoogleStreamingBackend
from meetscribe.transcription.publisher import SessionPublisher
from meetscribe.transcription.session import TranscriptionSession
from meetscribe.ui.history_view import analyses_view, history_table, record_view
from meetscribe.ui.live_screen import LiveSessionScreen

from .config import MeetScribeConfig

logger = logging.getLogger(__name__)

CHAT_COMMANDS = ("Commands: /analyze re-runs the analysis, /analyses shows this session's analyses, "
                 "/history lists saved meetings.")


class App:

    def __init__(self, config_path: str, log_level: str = None):
        self.config = MeetScribeConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()

    def init(self):
        logger.info("Initializing services...")
        config = self.config

        # Generation credentials are checked first so a missing key fails before the mic opens
        generation_backend = OpenAIChatBackend(
            api_key=config.get_openai_api_key(),
            model=config.get('openai.model', 'gpt-4o-mini'),
            base_url=config.get('openai.base_url', 'https://api.openai.com/v1'),
            timeout_seconds=config.get('openai.timeout_seconds', 120),
        )
        self.assistant = MeetingAssistant(
            generation_backend,
            analysis_max_tokens=config.get('analysis.max_output_tokens', 2000),
            analysis_temperature=config.get('analysis.temperature', 0.3),
            chat_max_tokens=config.get('chat.max_output_tokens', 1000),
            chat_temperature=config.get('chat.temperature', 0.3),
        )

        self.speech_backend = GoogleStreamingBackend(
            credentials_path=config.get_google_credentials_path(),
            language=config.get('google_cloud.language', 'en-US'),
            model=config.get('google_cloud.model', 'latest_long'),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        )
        if not self.speech_backend.initialize():
            raise RuntimeError("Failed to initialize Google Speech backend")

        self.audio_publisher = AudioPublisher()
        self.capture = AudioCaptureMonitor(
            self.audio_publisher,
            chunk_size=config.get('audio.chunk_size', 1024),
            channels=config.get('audio.channels', 1),
            input_device_index=config.get('audio.input_device_index'),
            fft_size=config.get('audio.fft_size', 256),
            smoothing_time_constant=config.get('audio.smoothing_time_constant', 0.3),
            level_refresh_hz=config.get('audio.level_refresh_hz', 60),
            echo_cancellation=config.get('audio.echo_cancellation', True),
            noise_suppression=config.get('audio.noise_suppression', True),
            auto_gain_control=config.get('audio.auto_gain_control', True),
        )
        logger.info(f"Audio settings: {config.get('audio.chunk_size', 1024)} samples/chunk, "
                    f"{config.get('audio.channels', 1)} channels, device default sample rate")

        self.session = TranscriptionSession(
            self.speech_backend,
            self.capture,
            publisher=SessionPublisher(),
            chunk_interval_ms=config.get('transcription.chunk_interval_ms', 250),
            max_reconnect_attempts=config.get('transcription.max_reconnect_attempts', 1),
            reconnect_backoff_seconds=config.get('transcription.reconnect_backoff_seconds', 0.0),
            idle_timeout_seconds=config.get('transcription.idle_timeout_seconds'),
        )
        self.orchestrator = SessionOrchestrator(
            self.session,
            self.assistant,
            store=HistoryStore(config.get_data_directory()),
        )
        self.screen = LiveSessionScreen(self.orchestrator, self.console)

    def run(self, duration: int, analyze: bool = True, chat: bool = False):
        try:
            self.screen.record(duration)
            if analyze:
                asyncio.run(self.analyze())
                if chat:
                    self.chat_loop()
        finally:
            self.cleanup()

    async def analyze(self) -> str:
        with self.screen.live_markdown("📊 Meeting Analysis") as view:
            result = await self.orchestrator.request_analysis(on_partial=view.update)
            view.update(result)
        return result

    async def answer(self, question: str) -> str:
        with self.screen.live_markdown("💬 Answer") as view:
            result = await self.orchestrator.request_answer(question, on_partial=view.update)
            view.update(result)
        return result

    def chat_loop(self):
        self.console.print("Ask about the meeting (empty line to quit).", style="yellow")
        self.console.print(CHAT_COMMANDS, style="dim")
        while True:
            try:
                question = input("> ").strip()
            except EOFError:
                break
            if not question:
                break
            if not self.handle_command(question):
                asyncio.run(self.answer(question))

    def handle_command(self, line: str) -> bool:
        """Run a chat-loop slash command. Returns False for ordinary questions."""
        if line == "/analyze":
            asyncio.run(self.analyze())
        elif line == "/analyses":
            self.console.print(analyses_view(self.orchestrator.session_analyses))
        elif line == "/history":
            self.console.print(history_table(self.orchestrator.history()))
        else:
            return False
        return True

    def show_history(self, record_id: str = None) -> bool:
        """Print saved meetings, or one meeting in full when an id is given.

        Returns:
            False if the requested meeting does not exist
        """
        store = HistoryStore(self.config.get_data_directory())
        if record_id is None:
            records = store.list_records()
            if records:
                self.console.print(history_table(records))
            else:
                self.console.print("No meetings saved yet.", style="yellow")
            return True

        record = store.get_record(record_id)
        if record is None:
            self.console.print(f"❌ No saved meeting with id {record_id}", style="bold red")
            return False
        self.console.print(record_view(record))
        return True

    def cleanup(self):
        self.session.close()
        self.speech_backend.cleanup()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetscribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only warnings and above
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("MeetScribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for MeetScribe."""
    parser = argparse.ArgumentParser(
        description="MeetScribe - Live meeting transcription and analysis"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for meetscribe.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Seconds to record; 0 records until Ctrl+C (default: 0)"
    )

    parser.add_argument(
        "--no-analysis",
        action="store_true",
        help="Only transcribe; skip the meeting analysis"
    )

    parser.add_argument(
        "--chat",
        action="store_true",
        help="Ask follow-up questions about the meeting after the analysis"
    )

    parser.add_argument(
        "--history",
        action="store_true",
        help="List saved meetings and exit"
    )

    parser.add_argument(
        "--show",
        type=str,
        metavar="ID",
        help="Print the transcript and analysis of a saved meeting and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="MeetScribe v0.1.0"
    )

    args = parser.parse_args()

    try:
        app = App(args.config, args.log_level)
        if args.history or args.show:
            sys.exit(0 if app.show_history(args.show) else 1)
        app.init()
    except MissingCredentialError as e:
        print(f"❌ Missing credentials: {e}")
        logging.error(f"Missing credentials: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Startup error: {e}")
        sys.exit(1)

    try:
        app.run(args.duration, analyze=not args.no_analysis, chat=args.chat)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
