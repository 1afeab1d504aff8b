"""
Analysis pipeline.

Owns one instance of every stage (framing, FFT, filter banks, extractors,
history) and runs them in order for each block of samples:

    samples ─► FrameBuilder ─► FFTEngine ─► SpectralFrame
                                               │
        SpectralStatistics ─► OnsetDetector ─► CepstralExtractor ─►
        ChromaExtractor ─► KeyEstimator ─► HarmonicAnalyzer ─► PerceptualModel
                                               │
                                          FeatureFrame ─► TemporalHistory

The pipeline is synchronous and not re-entrant: one ``process`` call
finishes a frame before the next begins.
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from spectrascope.core.config import AnalysisConfig, ConfigurationError
from spectrascope.core.fft import FFTEngine
from spectrascope.core.filterbanks import FilterBankFactory, FilterBankSet
from spectrascope.core.frames import FeatureFrame
from spectrascope.core.framing import FrameBuilder
from spectrascope.core.history import TemporalHistory
from spectrascope.core.statistics import FeatureStatistics
from spectrascope.features.base import ExtractionContext, SpectralExtractor
from spectrascope.features.cepstral import CepstralExtractor
from spectrascope.features.chroma import ChromaExtractor
from spectrascope.features.harmonic import HarmonicAnalyzer
from spectrascope.features.key import KeyEstimator
from spectrascope.features.perceptual import PerceptualModel
from spectrascope.features.spectral import SpectralStatistics
from spectrascope.features.temporal import OnsetDetector
from spectrascope.io.loader import iter_blocks, load_audio

logger = logging.getLogger(__name__)

# Order matters: later extractors read earlier results from the context
EXTRACTOR_CLASSES = (
    SpectralStatistics,
    OnsetDetector,
    CepstralExtractor,
    ChromaExtractor,
    KeyEstimator,
    HarmonicAnalyzer,
    PerceptualModel,
)


class AnalysisPipeline:
    """
    Turns blocks of mono samples into :class:`FeatureFrame` snapshots.

    Args:
        config: Analysis parameters. Defaults to ``AnalysisConfig()``.

    Raises:
        ConfigurationError: If the configuration cannot be realized.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.statistics = FeatureStatistics()
        self._frame_index = 0
        self._install(self._prepare(config or AnalysisConfig()))
        logger.info(
            "Analysis pipeline ready: %d Hz, fft %d (x%d padding), window %s, %d bins",
            self.config.sample_rate, self.config.fft_size, self.config.zero_padding_factor,
            self.config.window_function, self.config.n_bins,
        )

    # ------------------------------------------------------------------
    # Construction / reconfiguration
    # ------------------------------------------------------------------

    @staticmethod
    def _prepare(config: AnalysisConfig) -> dict:
        """Build every config-dependent stage without touching live state."""
        if not isinstance(config, AnalysisConfig):
            raise ConfigurationError(
                f"Expected an AnalysisConfig, got {type(config).__name__}"
            )
        banks = FilterBankFactory.build(config)
        return {
            "config": config,
            "banks": banks,
            "fft": FFTEngine(config.padded_size),
            "framer": FrameBuilder(config),
            "history": TemporalHistory(config),
            "extractors": [cls(config, banks) for cls in EXTRACTOR_CLASSES],
        }

    def _install(self, stages: dict) -> None:
        self._config: AnalysisConfig = stages["config"]
        self._banks: FilterBankSet = stages["banks"]
        self._fft: FFTEngine = stages["fft"]
        self._framer: FrameBuilder = stages["framer"]
        self._history: TemporalHistory = stages["history"]
        self._extractors: List[SpectralExtractor] = stages["extractors"]

    def reconfigure(self, config: AnalysisConfig) -> None:
        """
        Rebuild all stages for a new configuration.

        Filter banks, extractors and history are replaced together; smoothing
        state and history are lost.  If the new configuration fails, the
        pipeline keeps running with the old one.
        """
        stages = self._prepare(config)
        self._install(stages)
        self._frame_index = 0
        self.statistics.reset()
        logger.info(
            "Pipeline reconfigured: fft %d, hop %d, window %s",
            config.fft_size, config.hop_size, config.window_function,
        )

    def reset(self) -> None:
        """Clear history, overlap and every extractor's tracking state."""
        self._framer.reset()
        self._history.clear()
        for extractor in self._extractors:
            extractor.reset()
        self._frame_index = 0
        self.statistics.reset()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    @property
    def filter_banks(self) -> FilterBankSet:
        return self._banks

    @property
    def history(self) -> TemporalHistory:
        return self._history

    @property
    def extractors(self) -> List[SpectralExtractor]:
        return list(self._extractors)

    @property
    def frame_index(self) -> int:
        """Number of frames produced since construction, reconfigure or reset."""
        return self._frame_index

    @property
    def block_size(self) -> int:
        """Fresh samples one call to :meth:`process` consumes."""
        return self._config.frame_advance

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(self, samples) -> FeatureFrame:
        """
        Analyze one block of samples.

        Args:
            samples: 1-D mono samples; shorter blocks are zero-filled and
                samples beyond :attr:`block_size` are ignored.

        Returns:
            Immutable FeatureFrame for this cycle.
        """
        config = self._config
        spectrum = self._fft.spectrum(self._framer.build(samples))

        context = ExtractionContext(
            config=config,
            banks=self._banks,
            history=self._history,
            frame_index=self._frame_index,
        )
        for extractor in self._extractors:
            context.results.update(extractor.extract(spectrum, context))

        results = context.results
        frame = FeatureFrame(
            frame_index=self._frame_index,
            timestamp=time.time(),
            stream_time=self._frame_index * config.frame_advance / config.sample_rate,
            spectrum=spectrum,
            **results,
        )

        self._history.record(
            spectrum=spectrum.magnitude,
            chroma=results["chroma"],
            mfcc=results["mfcc"],
            mfcc_delta=results["mfcc_delta"],
            energy=results["energy"],
            onset=results["onset_strength"],
        )
        self.statistics.update(frame)
        self._frame_index += 1
        return frame

    def analyze(self, samples: np.ndarray) -> List[FeatureFrame]:
        """Run a whole in-memory signal through the pipeline, block by block."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        return [self.process(block) for block in iter_blocks(samples, self.block_size)]

    def analyze_file(
        self,
        audio_path: Union[str, Path],
        max_duration: Optional[float] = None,
    ) -> List[FeatureFrame]:
        """
        Load an audio file at the configured sample rate and analyze it.

        The pipeline is reset first so results do not depend on earlier input.
        """
        clip = load_audio(audio_path, sr=self._config.sample_rate, max_duration=max_duration)
        self.reset()
        frames = self.analyze(clip.samples)
        logger.info("Analyzed %s: %d frames", audio_path, len(frames))
        return frames
