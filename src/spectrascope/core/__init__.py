"""Core signal processing: configuration, framing, FFT, filter banks and history."""

from spectrascope.core.config import AnalysisConfig, ConfigurationError
from spectrascope.core.fft import FFTEngine
from spectrascope.core.filterbanks import FilterBankFactory, FilterBankSet
from spectrascope.core.frames import FeatureFrame, SpectralFrame
from spectrascope.core.framing import FrameBuilder
from spectrascope.core.history import RingBuffer, TemporalHistory
from spectrascope.core.windows import WindowLibrary

__all__ = [
    "AnalysisConfig",
    "ConfigurationError",
    "FFTEngine",
    "FilterBankFactory",
    "FilterBankSet",
    "FeatureFrame",
    "SpectralFrame",
    "FrameBuilder",
    "RingBuffer",
    "TemporalHistory",
    "WindowLibrary",
]
