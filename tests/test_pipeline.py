"""End-to-end tests for the analysis pipeline."""

import dataclasses

import numpy as np
import pytest

from spectrascope.core.config import AnalysisConfig, ConfigurationError
from spectrascope.pipeline import AnalysisPipeline

from conftest import TEST_SR, make_tone


# ---------------------------------------------------------------------------
# Spectral accuracy
# ---------------------------------------------------------------------------

class TestSpectralAccuracy:
    def test_pure_tone_peak_within_one_bin(self, pipeline, pure_sine):
        y, _ = pure_sine
        frame = pipeline.analyze(y)[-2]
        peak = int(np.argmax(frame.spectrum.magnitude)) * pipeline.config.bin_width
        assert abs(peak - 440.0) <= pipeline.config.bin_width

    def test_pure_tone_centroid_near_tone(self, pipeline, pure_sine):
        y, _ = pure_sine
        frame = pipeline.analyze(y)[-2]
        assert frame.centroid == pytest.approx(440.0, rel=0.1)

    def test_chroma_peaks_at_a(self, pipeline, pure_sine):
        y, _ = pure_sine
        frame = pipeline.analyze(y)[-2]
        assert int(np.argmax(frame.chroma)) == 9

    def test_parseval_on_half_spectrum(self, flat_config):
        rng = np.random.RandomState(11)
        x = rng.randn(flat_config.fft_size)
        frame = AnalysisPipeline(flat_config).process(x)
        expected = flat_config.padded_size * np.sum(x ** 2) / 2.0
        assert frame.energy == pytest.approx(expected, rel=0.02)


# ---------------------------------------------------------------------------
# Silence and invariants
# ---------------------------------------------------------------------------

class TestSilence:
    def test_silence_produces_finite_zeros(self, pipeline, silence):
        y, _ = silence
        for frame in pipeline.analyze(y):
            assert frame.energy == 0.0
            assert frame.centroid == 0.0
            assert frame.flatness == 0.0
            assert frame.total_loudness < 1e-5
            assert frame.fundamental == 0.0
            assert frame.chord_root == "N"
            assert frame.harmonic_strength == 0.0
            for name, value in frame.as_dict(include_spectrum=True).items():
                if isinstance(value, (str, bool)) or name == "band_names":
                    continue
                assert np.all(np.isfinite(np.asarray(value, dtype=np.float64))), name

    def test_silence_chroma_is_uniform(self, pipeline, silence):
        y, _ = silence
        frame = pipeline.analyze(y)[-2]
        np.testing.assert_allclose(frame.chroma, 1.0 / 12, rtol=1e-5)


class TestFrameInvariants:
    def test_chroma_sums_to_one(self, pipeline, white_noise):
        y, _ = white_noise
        for frame in pipeline.analyze(y):
            assert float(frame.chroma.sum()) == pytest.approx(1.0, rel=1e-5)

    def test_frames_are_immutable(self, pipeline, white_noise):
        y, _ = white_noise
        frame = pipeline.analyze(y[:4096])[-1]
        with pytest.raises(dataclasses.FrozenInstanceError):
            frame.centroid = 1.0
        with pytest.raises(ValueError):
            frame.mfcc[0] = 1.0
        with pytest.raises(ValueError):
            frame.spectrum.magnitude[0] = 1.0

    def test_earlier_frames_do_not_change(self, pipeline, white_noise):
        y, _ = white_noise
        first = pipeline.process(y[:1024])
        magnitude = first.spectrum.magnitude.copy()
        mfcc = first.mfcc.copy()
        pipeline.analyze(y[1024:])
        np.testing.assert_array_equal(first.spectrum.magnitude, magnitude)
        np.testing.assert_array_equal(first.mfcc, mfcc)

    def test_frame_index_and_stream_time(self, pipeline, white_noise):
        y, _ = white_noise
        frames = pipeline.analyze(y)
        advance = pipeline.config.frame_advance
        for i, frame in enumerate(frames):
            assert frame.frame_index == i
            assert frame.stream_time == pytest.approx(i * advance / TEST_SR)

    def test_frame_count_covers_signal(self, pipeline, pure_sine):
        y, _ = pure_sine
        frames = pipeline.analyze(y)
        assert len(frames) == int(np.ceil(len(y) / pipeline.block_size))

    def test_hop_size_sets_block_size(self, pure_sine):
        y, _ = pure_sine
        dense = AnalysisPipeline(AnalysisConfig(hop_size=256))
        assert dense.block_size == 256
        assert AnalysisPipeline(AnalysisConfig()).block_size == 1024
        frames = dense.analyze(y)
        assert len(frames) == int(np.ceil(len(y) / 256))
        assert frames[1].stream_time == pytest.approx(256 / TEST_SR)

    def test_band_lookup(self, pipeline, pure_sine):
        y, _ = pure_sine
        frame = pipeline.analyze(y)[-2]
        assert frame.band_energy("low_mid") > frame.band_energy("brilliance")
        assert frame.band_energy("nonexistent") is None


# ---------------------------------------------------------------------------
# Tonality
# ---------------------------------------------------------------------------

class TestTonality:
    def test_c_major_triad_detected(self, pipeline, c_major_triad):
        y, _ = c_major_triad
        frame = pipeline.analyze(y)[-2]
        assert frame.key == "C"
        assert frame.mode == "major"
        assert frame.key_confidence > 0.5
        assert (frame.chord_root, frame.chord_quality) == ("C", "major")

    def test_key_confidence_builds_gradually(self, pipeline, c_major_triad):
        y, _ = c_major_triad
        confidences = [f.key_confidence for f in pipeline.analyze(y)]
        assert confidences[0] < 0.1
        assert confidences[-1] > confidences[10]


# ---------------------------------------------------------------------------
# Reconfiguration and reset
# ---------------------------------------------------------------------------

class TestReconfigure:
    def test_same_config_is_idempotent(self, config, white_noise):
        y, _ = white_noise
        fresh = AnalysisPipeline(config).analyze(y)

        pipeline = AnalysisPipeline(config)
        pipeline.analyze(y[:8192])
        pipeline.reconfigure(config)
        pipeline.reconfigure(config)
        again = pipeline.analyze(y)

        assert len(again) == len(fresh)
        for a, b in zip(fresh, again):
            assert a.centroid == b.centroid
            np.testing.assert_array_equal(a.mfcc, b.mfcc)

    def test_invalid_config_keeps_previous(self, pipeline):
        before = pipeline.config
        with pytest.raises(ConfigurationError):
            pipeline.reconfigure({"fft_size": 1000})
        assert pipeline.config is before
        pipeline.process(np.zeros(pipeline.block_size))

    def test_new_fft_size(self, pipeline, pure_sine):
        y, _ = pure_sine
        pipeline.analyze(y[:4096])
        pipeline.reconfigure(AnalysisConfig(fft_size=2048, hop_size=512))
        assert pipeline.frame_index == 0
        assert len(pipeline.history) == 0
        assert pipeline.block_size == 512

        frame = pipeline.analyze(y)[-2]
        assert len(frame.spectrum) == 2048
        assert frame.mel_spectrum.shape == (pipeline.config.mel_filter_banks,)
        peak = int(np.argmax(frame.spectrum.magnitude)) * pipeline.config.bin_width
        assert abs(peak - 440.0) <= pipeline.config.bin_width

    def test_reset_clears_state(self, pipeline, c_major_triad):
        y, _ = c_major_triad
        pipeline.analyze(y[:TEST_SR])
        pipeline.reset()
        assert pipeline.frame_index == 0
        assert len(pipeline.history) == 0
        assert pipeline.statistics.frames_seen == 0

        frame = pipeline.process(np.zeros(pipeline.block_size))
        assert frame.frame_index == 0
        assert frame.key_confidence == 0.0
        assert frame.energy == 0.0


class TestStatistics:
    def test_running_statistics_follow_frames(self, pipeline):
        y = make_tone([440.0, 880.0], 0.5)
        frames = pipeline.analyze(y)
        stats = pipeline.statistics
        assert stats.frames_seen == len(frames)
        centroids = [f.centroid for f in frames]
        assert stats["centroid"].mean == pytest.approx(np.mean(centroids))
        assert stats["centroid"].maximum == pytest.approx(max(centroids))
        assert 0.0 <= stats["centroid"].normalize(centroids[-1]) <= 1.0
