"""Services layer for MeetScribe application logic."""

from .session_orchestrator import SessionOrchestrator

__all__ = [
    "SessionOrchestrator"
]
