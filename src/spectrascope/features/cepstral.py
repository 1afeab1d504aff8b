"""Mel-frequency cepstral coefficients with first and second differences."""

from typing import Any, Dict

import numpy as np
from scipy import fft as scipy_fft

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet
from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor


def lifter_weights(n_coefficients: int, lifter_param: int) -> np.ndarray:
    """
    Sinusoidal lifter ``1 + (L/2) * sin(pi * c / L)`` for ``c >= 1``.

    Coefficient 0 is left untouched; ``lifter_param == 0`` disables liftering.
    """
    weights = np.ones(n_coefficients)
    if lifter_param > 0 and n_coefficients > 1:
        c = np.arange(1, n_coefficients)
        weights[1:] = 1.0 + (lifter_param / 2.0) * np.sin(np.pi * c / lifter_param)
    return weights


class CepstralExtractor(SpectralExtractor):
    """
    MFCCs from the mel filter bank.

    ``mfcc[c] = sqrt(2/M) * sum(log(mel[m]) * cos(pi * c * (m + 0.5) / M))``,
    followed by liftering.  Deltas are plain frame-to-frame differences
    against the MFCC history (zero until a previous frame exists).
    """

    name = "cepstral"

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        super().__init__(config, banks)
        self.n_mels = config.mel_filter_banks
        self.n_coefficients = config.mfcc_coefficients
        # scipy's unnormalized DCT-II carries a factor of 2
        self._dct_scale = np.sqrt(2.0 / self.n_mels) / 2.0
        self._lifter = lifter_weights(self.n_coefficients, config.lifter_param)

    def mel_spectrum(self, magnitude: np.ndarray) -> np.ndarray:
        mel = self.banks.mel.astype(np.float64) @ magnitude.astype(np.float64)
        return np.maximum(mel, EPSILON)

    def coefficients(self, mel: np.ndarray) -> np.ndarray:
        cepstrum = scipy_fft.dct(np.log(mel), type=2)[: self.n_coefficients]
        return cepstrum * self._dct_scale * self._lifter

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        mel = self.mel_spectrum(frame.magnitude)
        mfcc = self.coefficients(mel)

        history = context.history
        previous = history.mfcc.latest
        delta = mfcc - previous if previous is not None else np.zeros_like(mfcc)
        previous_delta = history.mfcc_delta.latest
        delta2 = delta - previous_delta if previous_delta is not None else np.zeros_like(delta)

        return {
            "mel_spectrum": mel,
            "mfcc": mfcc,
            "mfcc_delta": delta,
            "mfcc_delta2": delta2,
        }
