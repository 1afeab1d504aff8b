"""Tests for the psychoacoustic model."""

import numpy as np
import pytest

from spectrascope.core.frames import SpectralFrame
from spectrascope.features.perceptual import (
    PerceptualModel,
    equal_loudness_weights,
    roughness_weight,
    sharpness_weights,
    threshold_in_quiet,
)
from spectrascope.pipeline import AnalysisPipeline

from conftest import make_tone


@pytest.fixture
def model(config, context):
    return PerceptualModel(config, context.banks)


# ---------------------------------------------------------------------------
# Weighting curves
# ---------------------------------------------------------------------------

class TestWeights:
    def test_threshold_at_1khz(self):
        assert float(threshold_in_quiet(1000.0)) == pytest.approx(3.37, abs=0.01)

    def test_threshold_clamped_below_20hz(self):
        assert float(threshold_in_quiet(5.0)) == pytest.approx(float(threshold_in_quiet(20.0)))

    def test_ear_most_sensitive_in_presence_region(self):
        weights = equal_loudness_weights(np.array([100.0, 3300.0]))
        assert weights[1] > 1.0 > weights[0]

    def test_sharpness_weight_rises_above_knee(self):
        weights = sharpness_weights(np.array([5.0, 15.0, 22.0]))
        np.testing.assert_allclose(weights[:2], 1.0)
        assert weights[2] > 2.0

    def test_roughness_weight_shape(self):
        w = roughness_weight(np.array([10.0, 20.0, 40.0, 70.0, 200.0]))
        assert w[0] == 0.0
        assert w[2] > w[1] and w[2] > w[3]
        assert w[4] < w[2] / 10


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class TestModel:
    def test_silence(self, config, model, context):
        out = model.extract(SpectralFrame.silent(config.n_bins), context)
        assert out["loudness"].shape == (config.bark_bands,)
        assert out["total_loudness"] < 1e-5
        assert out["sharpness"] == 0.0
        assert out["roughness"] == 0.0
        assert out["fluctuation_strength"] == 0.0
        assert out["erb_spectrum"].shape == (config.erb_bands,)

    def test_louder_input_is_louder(self, config, model):
        mag = np.ones(config.n_bins)
        assert model.loudness(4 * mag).sum() > model.loudness(mag).sum()

    def test_sharpness_of_low_and_high_content(self, config, model):
        low = np.zeros(config.n_bins)
        low[int(500 / config.bin_width)] = 1.0
        high = np.zeros(config.n_bins)
        high[int(10000 / config.bin_width)] = 1.0
        assert model.sharpness(low) == pytest.approx(1.0)
        assert model.sharpness(high) > 2.0

    def test_fluctuation_smoothing(self, model):
        assert model.fluctuation(10.0, None) == 0.0
        assert model.fluctuation(10.0, 0.0) == pytest.approx(1.0)
        assert model.fluctuation(10.0, 10.0) == pytest.approx(0.9)
        model.reset()
        assert model.fluctuation_strength == 0.0

    def test_beating_pair_is_rougher_than_wide_interval(self):
        def last_roughness(freqs):
            frames = AnalysisPipeline().analyze(make_tone(freqs, 0.5))
            return frames[-1].roughness

        assert last_roughness([1000.0, 1040.0]) > last_roughness([1000.0, 1500.0])
