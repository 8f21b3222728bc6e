"""Session-related data models."""

import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any


def new_record_id(now: datetime) -> str:
    """Millisecond timestamp with a random suffix to keep ids unique."""
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{int(now.timestamp() * 1000)}_{random_suffix}"


@dataclass(frozen=True)
class SessionRecord:
    """A finished meeting: its transcript and the analysis produced for it."""
    id: str
    timestamp: datetime
    transcript: str
    analysis: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "transcript": self.transcript,
            "analysis": self.analysis,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        return cls(
            id=str(data["id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            transcript=data["transcript"],
            analysis=data["analysis"],
        )


@dataclass
class ChatMessage:
    """One turn of the follow-up conversation about a meeting."""
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = new_record_id(self.timestamp)
