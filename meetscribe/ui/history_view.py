"""Rich renderings of stored meetings and of this run's analyses."""

from typing import List

from rich.console import Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.session import SessionRecord


def summary_line(analysis: str, width: int = 60) -> str:
    """First meaningful line of an analysis with markdown markers stripped."""
    for line in analysis.splitlines():
        line = line.strip().lstrip("#*->").strip().strip("*").strip()
        if line:
            return line if len(line) <= width else line[:width - 1] + "…"
    return ""


def history_table(records: List[SessionRecord]) -> Table:
    """Table of saved meetings, most recent first."""
    table = Table(title="📚 Meeting History", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Date", style="white", no_wrap=True)
    table.add_column("Words", justify="right")
    table.add_column("Summary", style="white")

    for record in sorted(records, key=lambda r: r.timestamp, reverse=True):
        table.add_row(
            record.id,
            record.timestamp.strftime("%Y-%m-%d %H:%M"),
            str(len(record.transcript.split())),
            summary_line(record.analysis),
        )
    return table


def record_view(record: SessionRecord) -> Group:
    """Transcript and analysis of one saved meeting."""
    title = record.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    return Group(
        Panel(Text(record.transcript or "(empty transcript)"),
              title=f"📝 Transcript - {title}", border_style="blue"),
        Panel(Markdown(record.analysis), title="📊 Analysis", border_style="green"),
    )


def analyses_view(analyses: List[str]) -> Group:
    """Every analysis produced in this run, oldest first."""
    if not analyses:
        return Group(Text("No analyses yet in this session.", style="dim italic"))
    return Group(*[
        Panel(Markdown(analysis), title=f"📊 Analysis {i}", border_style="green")
        for i, analysis in enumerate(analyses, start=1)
    ])
