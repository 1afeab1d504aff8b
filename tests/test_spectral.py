"""Tests for spectral shape statistics, contrast and onset signals."""

import numpy as np
import pytest

from spectrascope.core.frames import SpectralFrame
from spectrascope.features.spectral import SpectralStatistics
from spectrascope.features.temporal import OnsetDetector


def _frame(magnitude) -> SpectralFrame:
    magnitude = np.asarray(magnitude, dtype=np.float32)
    return SpectralFrame.from_arrays(magnitude, np.zeros_like(magnitude))


@pytest.fixture
def stats(config, context):
    return SpectralStatistics(config, context.banks)


class TestSilence:
    def test_silent_frame_is_all_zero_and_finite(self, config, stats, context):
        out = stats.extract(SpectralFrame.silent(config.n_bins), context)
        for name in ("centroid", "spread", "skewness", "kurtosis", "rolloff", "flatness",
                     "slope", "decrease", "hfc", "irregularity", "flux", "energy"):
            assert out[name] == 0.0, name
        assert np.all(out["band_energies"] == 0.0)
        assert np.all(np.isfinite(out["spectral_contrast"]))
        assert np.all(out["spectral_crest"] == 0.0)


class TestMoments:
    def test_single_bin_centroid_and_spread(self, config, stats):
        mag = np.zeros(config.n_bins)
        mag[100] = 1.0
        centroid, spread, skewness, kurtosis = stats.moments(mag)
        assert centroid == pytest.approx(100 * config.bin_width)
        assert spread == pytest.approx(0.0, abs=1e-6)
        assert skewness == 0.0 and kurtosis == 0.0

    def test_flat_spectrum_centroid_is_mean_frequency(self, config, stats):
        centroid, spread, skewness, _ = stats.moments(np.ones(config.n_bins))
        assert centroid == pytest.approx(stats.freqs.mean())
        assert spread == pytest.approx(stats.freqs.std(), rel=1e-9)
        assert skewness == pytest.approx(0.0, abs=1e-9)

    def test_two_equal_bins_kurtosis(self, config, stats):
        mag = np.zeros(config.n_bins)
        mag[[10, 30]] = 1.0
        _, _, _, kurtosis = stats.moments(mag)
        # symmetric two-point distribution has excess kurtosis of -2
        assert kurtosis == pytest.approx(-2.0)


class TestShapeDescriptors:
    def test_flat_spectrum_flatness_is_one(self, config, stats):
        assert stats.flatness(np.ones(config.n_bins)) == pytest.approx(1.0)

    def test_peaky_spectrum_flatness_is_low(self, config, stats):
        mag = np.full(config.n_bins, 1e-3)
        mag[50] = 100.0
        assert stats.flatness(mag) < 0.1

    def test_flatness_ignores_dc_and_negligible_bins(self, config, stats):
        mag = np.zeros(config.n_bins)
        mag[0] = 50.0
        mag[10:20] = 2.0
        assert stats.flatness(mag) == pytest.approx(1.0)

    def test_rolloff_of_flat_spectrum(self, config, stats):
        rolloff = stats.rolloff(np.ones(config.n_bins))
        assert rolloff == pytest.approx(0.85 * config.nyquist, abs=2 * config.bin_width)

    def test_rolloff_of_single_bin(self, config, stats):
        power = np.zeros(config.n_bins)
        power[200] = 4.0
        assert stats.rolloff(power) == pytest.approx(200 * config.bin_width)

    def test_slope_of_linear_spectrum(self, stats):
        assert stats.slope(2.0 * stats.freqs + 1.0) == pytest.approx(2.0)

    def test_decrease(self, config, stats):
        mag = np.ones(config.n_bins)
        assert stats.decrease(mag) == pytest.approx(0.0)
        mag[1] = 3.0
        assert stats.decrease(mag) == pytest.approx(2.0)

    def test_hfc_weights_by_bin_number(self, config, stats):
        n = config.n_bins
        assert stats.hfc(np.ones(n)) == pytest.approx(n * (n + 1) / 2)

    def test_irregularity(self, stats):
        assert stats.irregularity(np.ones(64)) == pytest.approx(0.0)
        alternating = np.tile([0.0, 1.0], 32)
        assert stats.irregularity(alternating) == pytest.approx(1.0)


class TestBandsAndContrast:
    def test_band_energies_localized(self, config, stats):
        power = np.zeros(config.n_bins)
        in_bass = (stats.freqs >= 100) & (stats.freqs <= 200)
        power[in_bass] = 1.0
        energies = dict(zip(config.band_names, stats.band_energies(power)))
        assert energies["bass"] > 0.0
        assert energies["sub_bass"] == 0.0
        assert energies["brilliance"] == 0.0

    def test_flat_spectrum_has_no_contrast(self, config, stats):
        contrast, crest = stats.contrast(np.ones(config.n_bins))
        np.testing.assert_allclose(contrast, 0.0, atol=1e-6)
        np.testing.assert_allclose(crest, 1.0)

    def test_tone_raises_contrast_in_its_octave(self, config, stats):
        mag = np.full(config.n_bins, 1e-3)
        mag[int(round(400 / config.bin_width))] = 10.0
        contrast, crest = stats.contrast(mag)
        assert contrast.shape == (config.contrast_octaves,)
        assert int(np.argmax(contrast)) == 1  # octave centered on 400 Hz
        assert crest[1] > 1.0


class TestFluxAndOnsets:
    def test_flux_against_previous_spectrum(self, config, stats, context):
        context.history.spectrum.push(np.zeros(config.n_bins))
        out = stats.extract(_frame(np.ones(config.n_bins)), context)
        assert out["flux"] == pytest.approx(1.0)

    def test_flux_only_counts_increases(self, stats):
        previous = np.array([1.0, 1.0, 1.0, 1.0])
        current = np.array([2.0, 0.0, 1.0, 3.0])
        assert stats.flux(current, previous) == pytest.approx(3.0 / 4)

    def test_no_onset_without_history(self, config, context):
        detector = OnsetDetector(config, context.banks)
        context.results["flux"] = 5.0
        out = detector.extract(SpectralFrame.silent(config.n_bins), context)
        assert out == {"onset_strength": 5.0, "is_onset": False}

    def test_onset_when_flux_jumps(self, config, context):
        detector = OnsetDetector(config, context.banks)
        for value in (0.1, 0.12, 0.09, 0.11):
            context.history.onset.push(value)
        context.results["flux"] = 2.0
        assert detector.extract(SpectralFrame.silent(config.n_bins), context)["is_onset"]
        context.results["flux"] = 0.1
        assert not detector.extract(SpectralFrame.silent(config.n_bins), context)["is_onset"]
