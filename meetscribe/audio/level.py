"""Frequency-domain level metering for the microphone input.

Mirrors the behaviour of a browser ``AnalyserNode``: the most recent
``fft_size`` samples are Blackman-windowed, transformed, smoothed over time,
converted to decibels and mapped onto the byte range 0..255 between
``min_decibels`` and ``max_decibels``. The level is the mean of those bytes
normalized by 255.
"""

import threading

import numpy as np
from scipy.signal import get_window

MAX_BYTE_MAGNITUDE = 255.0


def pcm16_to_float(audio_data: bytes, channels: int = 1) -> np.ndarray:
    """Decode interleaved 16-bit PCM into a (frames, channels) float array in [-1, 1]."""
    samples = np.frombuffer(audio_data, dtype=np.int16).astype(np.float32) / 32768.0
    return samples.reshape(-1, channels)


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Encode a float array in [-1, 1] as interleaved 16-bit PCM."""
    return (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16).tobytes()


class FrequencyAnalyser:
    """Rolling FFT analyser fed from the capture thread and read by the level sampler."""

    def __init__(self,
                 fft_size: int = 256,
                 smoothing_time_constant: float = 0.3,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant < 1.0:
            raise ValueError("smoothing_time_constant must be in [0, 1)")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.window = get_window("blackman", fft_size)

        self.lock = threading.Lock()
        self.samples = np.zeros(fft_size, dtype=np.float32)
        self.smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, samples: np.ndarray) -> None:
        """Append mono samples, keeping only the most recent fft_size."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        if samples.size == 0:
            return
        with self.lock:
            if samples.size >= self.fft_size:
                self.samples = samples[-self.fft_size:].copy()
            else:
                self.samples = np.concatenate((self.samples[samples.size:], samples))

    def byte_frequency_data(self) -> np.ndarray:
        """Current spectrum as bytes, updating the time smoothing."""
        with self.lock:
            spectrum = np.fft.rfft(self.samples * self.window)[:self.frequency_bin_count]
            magnitude = np.abs(spectrum) / self.fft_size
            tau = self.smoothing_time_constant
            self.smoothed = tau * self.smoothed + (1.0 - tau) * magnitude
            smoothed = self.smoothed.copy()

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(smoothed)
        scale = MAX_BYTE_MAGNITUDE / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, MAX_BYTE_MAGNITUDE).astype(np.uint8)

    def level(self) -> float:
        """Average byte magnitude across bins, normalized to [0, 1]."""
        data = self.byte_frequency_data()
        return float(data.mean() / MAX_BYTE_MAGNITUDE)

    def reset(self) -> None:
        with self.lock:
            self.samples = np.zeros(self.fft_size, dtype=np.float32)
            self.smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
