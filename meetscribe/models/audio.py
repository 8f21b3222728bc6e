"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class CaptureHandle:
    """An open microphone stream as negotiated with the platform."""
    sample_rate: int
    channels: int
    device_name: str
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_capturing: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    level: float
