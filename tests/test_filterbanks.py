"""Tests for scale conversions and the mel / chroma / Bark / ERB filter banks."""

import numpy as np
import pytest

from spectrascope.core import filterbanks
from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import (
    FilterBankFactory,
    bark_to_hz,
    bin_frequencies,
    erb_bandwidth,
    erb_to_hz,
    hz_to_bark,
    hz_to_erb,
    hz_to_mel,
    hz_to_pitch_class,
    mel_to_hz,
)


@pytest.fixture
def banks(config):
    return FilterBankFactory.build(config)


# ---------------------------------------------------------------------------
# Scale conversions
# ---------------------------------------------------------------------------

class TestScales:
    def test_mel_reference_point(self):
        assert float(hz_to_mel(700.0)) == pytest.approx(2595 * np.log10(2.0))

    def test_mel_round_trip(self):
        f = np.array([80.0, 440.0, 8000.0])
        np.testing.assert_allclose(mel_to_hz(hz_to_mel(f)), f, rtol=1e-9)

    def test_bark_at_1khz(self):
        assert float(hz_to_bark(1000.0)) == pytest.approx(8.51, abs=0.01)

    def test_bark_inverse_is_monotonic(self):
        z = np.linspace(1, 24, 24)
        assert np.all(np.diff(bark_to_hz(z)) > 0)

    def test_erb_round_trip(self):
        f = np.array([50.0, 1000.0, 12000.0])
        np.testing.assert_allclose(erb_to_hz(hz_to_erb(f)), f, rtol=1e-9)

    def test_erb_bandwidth_at_1khz(self):
        assert float(erb_bandwidth(1000.0)) == pytest.approx(24.7 * 5.37)

    def test_pitch_class_has_c_at_zero(self):
        assert float(hz_to_pitch_class(440.0)) == pytest.approx(9.0)
        assert float(hz_to_pitch_class(880.0)) == pytest.approx(9.0)
        c5 = float(hz_to_pitch_class(440.0 * 2 ** (3 / 12)))
        # C may land just below 12 and wrap; compare on the circle
        assert min(c5, 12.0 - c5) == pytest.approx(0.0, abs=1e-9)

    def test_pitch_class_respects_tuning(self):
        assert float(hz_to_pitch_class(432.0, tuning_freq=432.0)) == pytest.approx(9.0)

    def test_bin_frequencies(self, config):
        freqs = bin_frequencies(config)
        assert freqs[0] == 0.0
        assert freqs[1] == pytest.approx(config.bin_width)
        assert len(freqs) == config.n_bins


# ---------------------------------------------------------------------------
# Banks
# ---------------------------------------------------------------------------

class TestShapes:
    def test_bank_shapes(self, config, banks):
        assert banks.mel.shape == (config.mel_filter_banks, config.n_bins)
        assert banks.chroma.shape == (config.chroma_bins, config.n_bins)
        assert banks.bark.shape == (config.bark_bands, config.n_bins)
        assert banks.erb.shape == (config.erb_bands, config.n_bins)

    def test_banks_are_read_only(self, banks):
        for matrix in (banks.mel, banks.chroma, banks.bark, banks.erb, banks.bin_frequencies):
            with pytest.raises(ValueError):
                matrix[0] = 1.0


class TestMel:
    def test_triangles_are_bounded_and_non_empty(self, banks):
        assert banks.mel.min() >= 0.0
        assert banks.mel.max() <= 1.0 + 1e-6
        assert np.all(banks.mel.sum(axis=1) > 0)

    def test_no_weight_outside_range(self, config, banks):
        freqs = banks.bin_frequencies
        outside = (freqs < config.mel_min_freq) | (freqs > config.mel_max_freq)
        assert np.all(banks.mel[:, outside] == 0.0)

    def test_centers_increase(self, banks):
        peaks = np.argmax(banks.mel, axis=1)
        assert np.all(np.diff(peaks) >= 0)

    def test_upper_edge_clamped_to_nyquist(self):
        cfg = AnalysisConfig(sample_rate=16000, mel_max_freq=12000)
        mel = FilterBankFactory.mel(cfg)
        assert np.all(np.isfinite(mel))
        assert np.all(mel.sum(axis=1) > 0)


class TestChroma:
    def test_rows_are_l1_normalized(self, banks):
        np.testing.assert_allclose(banks.chroma.sum(axis=1), 1.0, rtol=1e-5)

    def test_zero_outside_range(self, config, banks):
        freqs = banks.bin_frequencies
        outside = (freqs < config.chroma_min_freq) | (freqs > config.chroma_max_freq)
        assert np.all(banks.chroma[:, outside] == 0.0)

    @pytest.mark.parametrize("freq, pitch_class", [(440.0, 9), (261.63, 0), (392.0, 7)])
    def test_bins_map_to_expected_pitch_class(self, config, banks, freq, pitch_class):
        k = int(round(freq / config.bin_width))
        assert int(np.argmax(banks.chroma[:, k])) == pitch_class

    def test_range_starting_at_dc(self):
        cfg = AnalysisConfig(chroma_min_freq=0.0)
        bank = FilterBankFactory.chroma(cfg)
        assert np.all(np.isfinite(bank))
        np.testing.assert_allclose(bank.sum(axis=1), 1.0, rtol=1e-5)
        assert np.all(bank[:, 0] == 0.0)
        k = int(round(440.0 / cfg.bin_width))
        assert int(np.argmax(bank[:, k])) == 9


class TestBarkErb:
    def test_bark_centers(self, config):
        np.testing.assert_allclose(FilterBankFactory.bark_centers(config), np.arange(1, 25))

    def test_bark_triangles_peak_at_one(self, banks):
        assert banks.bark.min() >= 0.0
        assert banks.bark.max() <= 1.0 + 1e-6
        assert np.all(banks.bark.max(axis=1) > 0.5)

    def test_erb_centers_increase(self, config):
        centers = FilterBankFactory.erb_centers(config)
        assert np.all(np.diff(centers) > 0)
        assert centers[-1] < config.nyquist

    def test_erb_filters_peak_near_center(self, config, banks):
        centers = FilterBankFactory.erb_centers(config)
        peaks = banks.bin_frequencies[np.argmax(banks.erb, axis=1)]
        np.testing.assert_allclose(peaks, centers, atol=config.bin_width)


class TestCaching:
    def test_same_config_returns_cached_set(self):
        assert FilterBankFactory.build(AnalysisConfig()) is FilterBankFactory.build(AnalysisConfig())

    def test_rebuild_is_bit_identical(self, config):
        before = FilterBankFactory.build(config)
        filterbanks._build_cached.cache_clear()
        after = FilterBankFactory.build(config)
        assert after is not before
        for name in ("mel", "chroma", "bark", "erb", "bin_frequencies"):
            np.testing.assert_array_equal(getattr(before, name), getattr(after, name))
