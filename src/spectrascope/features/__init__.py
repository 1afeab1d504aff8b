"""Per-frame feature extractors."""

from spectrascope.features.base import ExtractionContext, SpectralExtractor
from spectrascope.features.cepstral import CepstralExtractor
from spectrascope.features.chroma import ChromaExtractor
from spectrascope.features.harmonic import HarmonicAnalyzer
from spectrascope.features.key import KeyEstimator
from spectrascope.features.perceptual import PerceptualModel
from spectrascope.features.spectral import SpectralStatistics
from spectrascope.features.temporal import OnsetDetector

__all__ = [
    "ExtractionContext",
    "SpectralExtractor",
    "CepstralExtractor",
    "ChromaExtractor",
    "HarmonicAnalyzer",
    "KeyEstimator",
    "PerceptualModel",
    "SpectralStatistics",
    "OnsetDetector",
]
