"""
Spectral shape statistics.

Moments are magnitude-weighted over the bin frequency axis.  All divisions
are guarded so a silent frame yields zeros rather than NaN.
"""

from typing import Any, Dict, List, Tuple

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet
from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor


class SpectralStatistics(SpectralExtractor):
    """Centroid, spread, higher moments, rolloff, flatness and related descriptors."""

    name = "spectral"

    # Spectral contrast octave bands are centered at CONTRAST_BASE_HZ * 2**octave
    CONTRAST_BASE_HZ = 200.0

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        super().__init__(config, banks)
        self.freqs = banks.bin_frequencies.astype(np.float64)
        self._freq_dev = self.freqs - self.freqs.mean()
        self._freq_var = float(np.sum(self._freq_dev ** 2))
        self._hfc_weights = np.arange(1, config.n_bins + 1, dtype=np.float64)
        self._decrease_weights = 1.0 / np.arange(1, config.n_bins, dtype=np.float64)

        self._band_masks = [
            (self.freqs >= lo) & (self.freqs <= hi) for _, lo, hi in config.spectral_bands
        ]
        self._contrast_slices = self._contrast_bands(config)

    def _contrast_bands(self, config: AnalysisConfig) -> List[Tuple[int, int]]:
        slices = []
        for octave in range(config.contrast_octaves):
            center = self.CONTRAST_BASE_HZ * 2.0 ** octave
            low = int(np.floor(center / np.sqrt(2.0) / config.bin_width))
            high = int(np.ceil(center * np.sqrt(2.0) / config.bin_width))
            low = min(max(low, 0), config.n_bins)
            high = min(max(high, low), config.n_bins)
            slices.append((low, high))
        return slices

    # ------------------------------------------------------------------
    # Individual descriptors
    # ------------------------------------------------------------------

    def moments(self, mag: np.ndarray) -> Tuple[float, float, float, float]:
        """(centroid, spread, skewness, excess kurtosis)."""
        total = float(mag.sum())
        if total < EPSILON:
            return 0.0, 0.0, 0.0, 0.0

        centroid = float(np.dot(self.freqs, mag) / total)
        dev = self.freqs - centroid
        variance = float(np.dot(dev ** 2, mag) / total)
        spread = float(np.sqrt(variance))
        if spread < EPSILON:
            return centroid, spread, 0.0, 0.0

        skewness = float(np.dot(dev ** 3, mag) / total / spread ** 3)
        kurtosis = float(np.dot(dev ** 4, mag) / total / variance ** 2 - 3.0)
        return centroid, spread, skewness, kurtosis

    def rolloff(self, power: np.ndarray) -> float:
        """Frequency below which ``rolloff_threshold`` of the power lies."""
        cumulative = np.cumsum(power, dtype=np.float64)
        threshold = self.config.rolloff_threshold * cumulative[-1]
        idx = int(np.searchsorted(cumulative, threshold, side="left"))
        return float(self.freqs[min(idx, len(self.freqs) - 1)])

    @staticmethod
    def flatness(mag: np.ndarray) -> float:
        """Geometric over arithmetic mean of the non-DC, non-negligible bins."""
        values = mag[1:]
        values = values[values > EPSILON]
        if values.size == 0:
            return 0.0
        arithmetic = float(values.mean())
        geometric = float(np.exp(np.mean(np.log(values))))
        return geometric / arithmetic

    def slope(self, mag: np.ndarray) -> float:
        """Least-squares slope of magnitude against frequency."""
        if self._freq_var < EPSILON:
            return 0.0
        return float(np.dot(self._freq_dev, mag - mag.mean()) / self._freq_var)

    def decrease(self, mag: np.ndarray) -> float:
        first = float(mag[0])
        if first <= EPSILON:
            return 0.0
        return float(np.dot(mag[1:] - first, self._decrease_weights) / first)

    def hfc(self, mag: np.ndarray) -> float:
        return float(np.dot(self._hfc_weights, mag))

    @staticmethod
    def irregularity(mag: np.ndarray) -> float:
        """Mean deviation of each bin from the average of its two neighbours."""
        if mag.size < 3:
            return 0.0
        neighbours = 0.5 * (mag[:-2] + mag[2:])
        return float(np.mean(np.abs(mag[1:-1] - neighbours)))

    def band_energies(self, power: np.ndarray) -> np.ndarray:
        return np.array(
            [power[mask].mean() if mask.any() else 0.0 for mask in self._band_masks]
        )

    def contrast(self, mag: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Octave-band spectral contrast (dB) and crest factor.

        Peak and valley are the means of the strongest and weakest
        ``contrast_alpha`` fraction of bins in each band.
        """
        alpha = self.config.contrast_alpha
        contrast = np.zeros(len(self._contrast_slices))
        crest = np.zeros(len(self._contrast_slices))
        for i, (low, high) in enumerate(self._contrast_slices):
            band = np.sort(mag[low:high])
            if band.size == 0:
                continue
            n = max(1, int(alpha * band.size))
            valley = float(band[:n].mean())
            peak = float(band[-n:].mean())
            contrast[i] = 20.0 * np.log10((peak + EPSILON) / (valley + EPSILON))
            mean = float(band.mean())
            crest[i] = float(band[-1]) / mean if mean > EPSILON else 0.0
        return contrast, crest

    @staticmethod
    def flux(mag: np.ndarray, previous) -> float:
        """Mean half-wave rectified increase over the previous spectrum."""
        if previous is None:
            return 0.0
        diff = mag - previous
        return float(np.sum(diff[diff > 0]) / mag.size)

    # ------------------------------------------------------------------

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        mag = frame.magnitude.astype(np.float64)
        power = frame.power.astype(np.float64)

        centroid, spread, skewness, kurtosis = self.moments(mag)
        contrast, crest = self.contrast(mag)

        return {
            "energy": float(power.sum()),
            "centroid": centroid,
            "spread": spread,
            "skewness": skewness,
            "kurtosis": kurtosis,
            "rolloff": self.rolloff(power),
            "flatness": self.flatness(mag),
            "slope": self.slope(mag),
            "decrease": self.decrease(mag),
            "hfc": self.hfc(mag),
            "irregularity": self.irregularity(mag),
            "flux": self.flux(mag, context.history.previous_spectrum()),
            "band_energies": self.band_energies(power),
            "band_names": self.config.band_names,
            "spectral_contrast": contrast,
            "spectral_crest": crest,
        }
