"""Terminal screen showing the live session and streamed assistant output."""

import time
import logging
from typing import Optional

from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.transcription import ConnectionStatus
from ..services.session_orchestrator import SessionOrchestrator


logger = logging.getLogger(__name__)

CONNECTION_LOST_NOTICE = "Connection to speech recognition was lost; recording stopped."

STATUS_STYLES = {
    ConnectionStatus.DISCONNECTED: ("⏹️  DISCONNECTED", "bold yellow"),
    ConnectionStatus.CONNECTING: ("🔄 CONNECTING", "bold cyan"),
    ConnectionStatus.CONNECTED: ("🔴 RECORDING", "bold red"),
    ConnectionStatus.ERROR: ("❌ ERROR", "bold magenta"),
}


def level_bar(level: float, width: int = 20) -> str:
    filled = int(max(0.0, min(1.0, level)) * width)
    return f"{'█' * filled:<{width}} {level:.3f}"


class LiveSessionScreen:
    """Rich rendering of an orchestrator's observable state."""

    def __init__(self, orchestrator: SessionOrchestrator, console: Optional[Console] = None):
        self.orchestrator = orchestrator
        self.console = console or Console()
        self.started_at: Optional[float] = None

    def create_layout(self) -> Layout:
        """Create the main UI layout."""
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main", ratio=1),
            Layout(name="footer", size=3)
        )
        layout["main"].split_row(
            Layout(name="audio_panel", ratio=1),
            Layout(name="transcript_panel", ratio=2)
        )
        return layout

    def update_header(self, layout: Layout) -> None:
        status_text, status_style = STATUS_STYLES[self.orchestrator.status]
        header_text = Text.assemble(
            Text("🎙️  MeetScribe - Live Transcription", style="bold blue"),
            "  |  ",
            (status_text, status_style),
        )
        layout["header"].update(Panel(Align.center(header_text), style="bright_blue"))

    def update_audio_panel(self, layout: Layout) -> None:
        audio_table = Table(title="🎵 Audio Monitor", show_header=True, header_style="bold magenta")
        audio_table.add_column("Metric", style="cyan")
        audio_table.add_column("Value", style="white")

        elapsed = time.monotonic() - self.started_at if self.started_at else 0.0
        audio_table.add_row("Duration", f"{elapsed:.1f}s")
        audio_table.add_row("Level", level_bar(self.orchestrator.audio_level))
        audio_table.add_row("Words", str(len(self.orchestrator.transcript.split())))

        error = self.orchestrator.error
        if error:
            audio_table.add_row("Error", Text(error, style="bold red"))

        layout["audio_panel"].update(Panel(audio_table, border_style="green"))

    def update_transcript_panel(self, layout: Layout) -> None:
        transcript = self.orchestrator.transcript
        if transcript:
            body = Text(transcript, style="white")
        else:
            body = Text("Listening for speech...", style="dim white italic")
        layout["transcript_panel"].update(Panel(body, title="📝 Transcript", border_style="blue"))

    def update_footer(self, layout: Layout) -> None:
        controls = Text.assemble(("Controls: ", "bold"), ("Ctrl+C", "bold red"), " Stop Recording")
        layout["footer"].update(Panel(Align.center(controls), style="bright_black"))

    def update_display(self, layout: Layout) -> None:
        self.update_header(layout)
        self.update_audio_panel(layout)
        self.update_transcript_panel(layout)
        self.update_footer(layout)

    def record(self, duration: float = 0.0, refresh_interval: float = 0.1) -> Optional[str]:
        """Start the session and render it until the duration passes, Ctrl-C,
        or the session ends on its own (capture failure, reconnect exhausted).

        Args:
            duration: Seconds to record, 0 to record until interrupted
            refresh_interval: Seconds between screen updates

        Returns:
            The session error shown when recording ended, if any
        """
        layout = self.create_layout()
        self.started_at = time.monotonic()
        self.orchestrator.start_session()
        ended_on_its_own = False
        try:
            with Live(layout, console=self.console, refresh_per_second=10, screen=True):
                while True:
                    self.update_display(layout)
                    if duration and time.monotonic() - self.started_at >= duration:
                        break
                    if not self.orchestrator.is_active:
                        logger.warning(f"Session ended on its own ({self.orchestrator.status.value}), "
                                       f"leaving live screen")
                        ended_on_its_own = True
                        break
                    time.sleep(refresh_interval)
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, stopping recording")
        finally:
            # stop_session() clears the error
            error = self.orchestrator.error
            self.orchestrator.stop_session()

        self.console.print(Panel(Text(self.orchestrator.transcript or "(no speech captured)"),
                                 title="📝 Final Transcript", border_style="blue"))
        if error:
            self.console.print(Text(f"❌ {error}", style="bold red"))
        elif ended_on_its_own:
            self.console.print(Text(CONNECTION_LOST_NOTICE, style="bold yellow"))
        return error

    def markdown_panel(self, text: str, title: str) -> Panel:
        return Panel(Markdown(text or "…"), title=title, border_style="green")

    def live_markdown(self, title: str) -> "StreamingMarkdownView":
        return StreamingMarkdownView(self, title)


class StreamingMarkdownView:
    """Context manager that re-renders a markdown panel as text streams in."""

    def __init__(self, screen: LiveSessionScreen, title: str):
        self.screen = screen
        self.title = title
        self.live: Optional[Live] = None

    def __enter__(self) -> "StreamingMarkdownView":
        self.live = Live(self.screen.markdown_panel("", self.title),
                         console=self.screen.console, refresh_per_second=10)
        self.live.__enter__()
        return self

    def update(self, text: str) -> None:
        if self.live:
            self.live.update(self.screen.markdown_panel(text, self.title))

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.live:
            self.live.__exit__(exc_type, exc, tb)
            self.live = None
