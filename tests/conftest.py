"""Shared fixtures: configurations and synthetic test signals."""

import numpy as np
import pytest

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankFactory
from spectrascope.core.history import TemporalHistory
from spectrascope.features.base import ExtractionContext
from spectrascope.pipeline import AnalysisPipeline

TEST_SR = 44100

# C4, E4, G4
C_MAJOR_TRIAD = (261.63, 329.63, 392.00)


def make_tone(freqs, duration: float, sr: int = TEST_SR, amplitude: float = 0.3) -> np.ndarray:
    """Sum of equal-amplitude sines."""
    t = np.arange(int(sr * duration)) / sr
    y = sum(amplitude * np.sin(2 * np.pi * f * t) for f in freqs)
    return np.asarray(y, dtype=np.float32)


def make_harmonic_tone(f0: float, n_harmonics: int, duration: float, sr: int = TEST_SR) -> np.ndarray:
    """Sawtooth-like tone: harmonic ``h`` at amplitude ``1/h``."""
    t = np.arange(int(sr * duration)) / sr
    y = sum((0.3 / h) * np.sin(2 * np.pi * f0 * h * t) for h in range(1, n_harmonics + 1))
    return np.asarray(y, dtype=np.float32)


@pytest.fixture
def config():
    return AnalysisConfig()


@pytest.fixture
def flat_config():
    """No overlap, rectangular window: one call sees exactly one frame of input."""
    return AnalysisConfig(overlap_ratio=0.0, window_function="rectangular")


@pytest.fixture
def pipeline(config):
    return AnalysisPipeline(config)


@pytest.fixture
def context(config):
    """Empty-history extraction context for calling extractors directly."""
    return ExtractionContext(
        config=config,
        banks=FilterBankFactory.build(config),
        history=TemporalHistory(config),
    )


@pytest.fixture
def pure_sine():
    """One second of A4 (440 Hz)."""
    return make_tone([440.0], 1.0), TEST_SR


@pytest.fixture
def c_major_triad():
    """Four seconds of a C-major triad, a clear key detection signal."""
    return make_tone(C_MAJOR_TRIAD, 4.0), TEST_SR


@pytest.fixture
def silence():
    return np.zeros(TEST_SR, dtype=np.float32), TEST_SR


@pytest.fixture
def white_noise():
    rng = np.random.RandomState(1234)
    return (0.1 * rng.randn(TEST_SR)).astype(np.float32), TEST_SR
