"""Error taxonomy shared by capture, transcription and inference components."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Categories of failure surfaced to the user."""
    PERMISSION_DENIED = "permission_denied"
    DEVICE_UNAVAILABLE = "device_unavailable"
    NETWORK_FAILURE = "network_failure"
    SERVICE_REJECTED = "service_rejected"
    NO_SPEECH_TIMEOUT = "no_speech_timeout"
    MISSING_CREDENTIAL = "missing_credential"
    PRECONDITION_UNMET = "precondition_unmet"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    ErrorKind.PERMISSION_DENIED: "Microphone access denied. Please allow microphone permissions.",
    ErrorKind.DEVICE_UNAVAILABLE: "Audio capture failed. Please check your microphone.",
    ErrorKind.NETWORK_FAILURE: "Network error. Please check your internet connection.",
    ErrorKind.SERVICE_REJECTED: "Speech service not allowed. Please try again.",
    ErrorKind.NO_SPEECH_TIMEOUT: "No speech detected. Please try speaking louder.",
    ErrorKind.MISSING_CREDENTIAL: "API credentials are missing. Please check your configuration.",
    ErrorKind.PRECONDITION_UNMET: "Nothing to work with yet. Record a transcript first.",
}


def user_message(kind: ErrorKind, detail: Optional[str] = None) -> str:
    """Map an error kind to the message shown to the user.

    Args:
        kind: Error category
        detail: Backend-specific detail, only used for unknown errors

    Returns:
        Human-readable message
    """
    if kind in USER_MESSAGES:
        return USER_MESSAGES[kind]
    if detail:
        return f"Speech recognition error: {detail}"
    return "Speech recognition error"


class MeetScribeError(Exception):
    """Base class for all MeetScribe errors."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN):
        super().__init__(message)
        self.kind = kind


class CaptureError(MeetScribeError):
    """Microphone could not be opened or read."""


class ChannelOpenError(MeetScribeError):
    """Streaming ASR channel could not be opened."""


class MissingCredentialError(MeetScribeError):
    """A backend credential was not configured."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.MISSING_CREDENTIAL)


class InferenceError(MeetScribeError):
    """Generation backend request failed."""

    def __init__(self, reason: str, kind: ErrorKind = ErrorKind.UNKNOWN):
        super().__init__(reason, kind)
        self.reason = reason


class PreconditionUnmetError(InferenceError):
    """Request refused before any network call was made."""

    def __init__(self, reason: str):
        super().__init__(reason, ErrorKind.PRECONDITION_UNMET)
