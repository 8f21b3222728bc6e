"""Input conditioning applied to captured audio before it is forwarded."""

import logging

import numpy as np
from scipy.signal import butter, sosfilt

logger = logging.getLogger(__name__)


class InputProcessor:
    """Noise suppression (high-pass) and automatic gain for microphone frames.

    Filter state and gain carry over between chunks so that chunk boundaries
    do not produce clicks.
    """

    def __init__(self,
                 sample_rate: int,
                 channels: int = 1,
                 noise_suppression: bool = True,
                 auto_gain_control: bool = True,
                 highpass_hz: float = 100.0,
                 target_rms: float = 0.1,
                 max_gain: float = 8.0,
                 gain_smoothing: float = 0.9):
        self.sample_rate = sample_rate
        self.channels = channels
        self.noise_suppression = noise_suppression
        self.auto_gain_control = auto_gain_control
        self.target_rms = target_rms
        self.max_gain = max_gain
        self.gain_smoothing = gain_smoothing
        self.gain = 1.0

        self.sos = None
        self.zi = None
        if noise_suppression:
            self.sos = butter(2, highpass_hz, btype="highpass", fs=sample_rate, output="sos")
            self.zi = np.zeros((self.sos.shape[0], 2, channels))

        logger.debug(f"InputProcessor: {sample_rate}Hz x{channels}, "
                     f"noise_suppression={noise_suppression}, auto_gain={auto_gain_control}")

    def process(self, samples: np.ndarray) -> np.ndarray:
        """Condition a (frames, channels) float block and return a new block."""
        out = np.asarray(samples, dtype=np.float64)
        if out.size == 0:
            return out

        if self.sos is not None:
            out, self.zi = sosfilt(self.sos, out, axis=0, zi=self.zi)

        if self.auto_gain_control:
            rms = float(np.sqrt(np.mean(out ** 2)))
            # Silence: hold the current gain rather than amplifying the noise floor
            if rms > 1e-4:
                desired = min(self.target_rms / rms, self.max_gain)
                self.gain = self.gain_smoothing * self.gain + (1.0 - self.gain_smoothing) * desired
            out = out * self.gain

        return np.clip(out, -1.0, 1.0)
