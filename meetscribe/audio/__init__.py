"""Audio capture and level metering module."""

from .capture import AudioCaptureMonitor
from .audio_pub import AudioPublisher
from .level import FrequencyAnalyser

__all__ = [
    'AudioCaptureMonitor',
    'AudioPublisher',
    'FrequencyAnalyser',
]
