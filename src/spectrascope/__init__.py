"""Real-time spectral analysis core for audio-reactive rendering."""

from spectrascope.core.config import AnalysisConfig, ConfigurationError
from spectrascope.core.frames import FeatureFrame, SpectralFrame
from spectrascope.io.exporter import FeatureExporter
from spectrascope.pipeline import AnalysisPipeline

__version__ = "0.1.0"
__all__ = [
    "AnalysisConfig",
    "ConfigurationError",
    "FeatureFrame",
    "SpectralFrame",
    "FeatureExporter",
    "AnalysisPipeline",
]
