"""Transcription-related data models."""

from dataclasses import dataclass
from enum import Enum


class ConnectionStatus(Enum):
    """Connection state of a transcription session."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class TranscriptSegment:
    """A single recognition result from the ASR backend."""
    text: str
    final: bool = False


class Transcript:
    """Committed history of final segments plus the latest provisional text.

    Final text is only ever appended; provisional text is replaced wholesale
    by every provisional segment and cleared by every final one.
    """

    def __init__(self):
        self.committed = ""
        self.pending = ""

    @property
    def text(self) -> str:
        """Transcript as shown to the user."""
        return self.committed + self.pending

    def apply(self, segment: TranscriptSegment) -> str:
        """Merge a segment and return the new visible text."""
        if segment.final:
            # An empty final still ends the utterance but adds no separator
            if segment.text:
                self.committed += segment.text + " "
            self.pending = ""
        else:
            self.pending = segment.text
        return self.text

    def discard_pending(self) -> bool:
        """Drop provisional text. Returns True if anything was dropped."""
        had_pending = bool(self.pending)
        self.pending = ""
        return had_pending

    def __repr__(self) -> str:
        return f"Transcript(committed={len(self.committed)} chars, pending={len(self.pending)} chars)"
