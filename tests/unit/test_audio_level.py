"""Unit tests for level metering and input conditioning."""

import numpy as np
import pytest

from meetscribe.audio.level import FrequencyAnalyser, pcm16_to_float, float_to_pcm16
from meetscribe.audio.processing import InputProcessor


@pytest.mark.unit
class TestFrequencyAnalyser:

    def test_silence_is_zero(self):
        analyser = FrequencyAnalyser()
        analyser.push(np.zeros(512))

        assert analyser.level() == 0.0

    def test_tone_level_in_range(self, tone):
        analyser = FrequencyAnalyser()
        analyser.push(tone(1000, 48000, 256))

        level = analyser.level()

        assert 0.0 < level <= 1.0

    def test_byte_data_shape(self, tone):
        analyser = FrequencyAnalyser(fft_size=512)
        analyser.push(tone(440, 16000, 1024))

        data = analyser.byte_frequency_data()

        assert analyser.frequency_bin_count == 256
        assert data.shape == (256,)
        assert data.dtype == np.uint8
        assert data.max() == 255

    def test_smoothing_decays_gradually(self, tone):
        analyser = FrequencyAnalyser(smoothing_time_constant=0.3)
        analyser.push(tone(1000, 48000, 256))
        loud = analyser.level()

        analyser.push(np.zeros(256))
        decayed = analyser.level()

        assert 0.0 < decayed < loud

    def test_short_pushes_roll_the_window(self, tone):
        analyser = FrequencyAnalyser()
        signal = tone(1000, 48000, 256)
        for start in range(0, 256, 64):
            analyser.push(signal[start:start + 64])

        np.testing.assert_allclose(analyser.samples, signal.astype(np.float32))

    def test_reset(self, tone):
        analyser = FrequencyAnalyser()
        analyser.push(tone(1000, 48000, 256))
        analyser.level()

        analyser.reset()

        assert analyser.level() == 0.0

    @pytest.mark.parametrize("fft_size", [0, 100, 16])
    def test_invalid_fft_size(self, fft_size):
        with pytest.raises(ValueError):
            FrequencyAnalyser(fft_size=fft_size)

    def test_invalid_smoothing(self):
        with pytest.raises(ValueError):
            FrequencyAnalyser(smoothing_time_constant=1.0)


@pytest.mark.unit
class TestPcmConversion:

    def test_stereo_frames(self):
        pcm = np.array([0, 16384, -16384, 32767], dtype=np.int16).tobytes()

        samples = pcm16_to_float(pcm, channels=2)

        assert samples.shape == (2, 2)
        assert samples[0, 1] == pytest.approx(0.5)
        assert samples[1, 0] == pytest.approx(-0.5)

    def test_float_to_pcm_clips(self):
        pcm = float_to_pcm16(np.array([2.0, -2.0, 0.0]))

        assert np.frombuffer(pcm, dtype=np.int16).tolist() == [32767, -32767, 0]


@pytest.mark.unit
class TestInputProcessor:

    def test_passthrough_when_disabled(self, tone):
        processor = InputProcessor(16000, noise_suppression=False, auto_gain_control=False)
        block = tone(440, 16000, 1600, amplitude=0.3).reshape(-1, 1)

        np.testing.assert_allclose(processor.process(block), block)

    def test_highpass_removes_dc(self):
        processor = InputProcessor(16000, auto_gain_control=False)
        block = np.full((16000, 1), 0.5)

        out = processor.process(block)

        assert abs(out[-1600:].mean()) < 0.01

    def test_filter_state_carries_across_chunks(self):
        whole = InputProcessor(16000, auto_gain_control=False)
        chunked = InputProcessor(16000, auto_gain_control=False)
        block = np.random.default_rng(7).uniform(-0.5, 0.5, (3200, 1))

        expected = whole.process(block)
        actual = np.concatenate([chunked.process(block[:1600]), chunked.process(block[1600:])])

        np.testing.assert_allclose(actual, expected, atol=1e-12)

    def test_gain_raises_quiet_input(self, tone):
        processor = InputProcessor(16000, noise_suppression=False, max_gain=8.0)
        block = tone(440, 16000, 1600, amplitude=0.01).reshape(-1, 1)

        for _ in range(50):
            out = processor.process(block)

        assert 1.0 < processor.gain <= 8.0
        assert np.sqrt(np.mean(out ** 2)) > np.sqrt(np.mean(block ** 2))

    def test_gain_held_on_silence(self):
        processor = InputProcessor(16000, noise_suppression=False)

        processor.process(np.zeros((1600, 1)))

        assert processor.gain == 1.0

    def test_output_clipped(self, tone):
        processor = InputProcessor(16000, noise_suppression=False, target_rms=2.0)
        out = processor.process(tone(440, 16000, 1600, amplitude=0.9).reshape(-1, 1))

        assert out.max() <= 1.0
        assert out.min() >= -1.0
