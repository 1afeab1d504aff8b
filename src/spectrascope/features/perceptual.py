"""
Psychoacoustic descriptors: specific loudness, sharpness, roughness and
fluctuation strength.

These are lightweight approximations meant to drive visuals, not calibrated
loudness measurements; the input spectrum is unnormalized, so absolute
values scale with signal level and FFT size.
"""

from typing import Any, Dict

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet, hz_to_bark
from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor

LOUDNESS_EXPONENT = 0.67
SHARPNESS_KNEE_BARK = 15.8
ROUGHNESS_MIN_HZ = 20.0
ROUGHNESS_PEAK_HZ = 70.0


def threshold_in_quiet(freq):
    """Terhardt approximation of the absolute hearing threshold in dB SPL."""
    khz = np.clip(np.asarray(freq, dtype=np.float64), 20.0, 20000.0) / 1000.0
    return (
        3.64 * khz ** -0.8
        - 6.5 * np.exp(-0.6 * (khz - 3.3) ** 2)
        + 1e-3 * khz ** 4
    )


def equal_loudness_weights(freq) -> np.ndarray:
    """Linear gain that attenuates each frequency by its hearing threshold."""
    return 10.0 ** (-threshold_in_quiet(freq) / 20.0)


def sharpness_weights(bark) -> np.ndarray:
    bark = np.asarray(bark, dtype=np.float64)
    return np.where(bark < SHARPNESS_KNEE_BARK, 1.0, 0.066 * np.exp(0.171 * bark))


def roughness_weight(beat_freq) -> np.ndarray:
    """Beating weight: zero below 20 Hz, peaking near 40 Hz."""
    f = np.asarray(beat_freq, dtype=np.float64)
    ratio = f / ROUGHNESS_PEAK_HZ
    return np.where(f < ROUGHNESS_MIN_HZ, 0.0, ratio ** 2 * np.exp(-3.5 * ratio))


class PerceptualModel(SpectralExtractor):
    """
    Bark-band loudness and derived percepts.

    Attributes:
        fluctuation_strength: Smoothed magnitude of the frame-to-frame change
            in total energy; the only state carried between frames.
    """

    name = "perceptual"

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        super().__init__(config, banks)
        freqs = banks.bin_frequencies.astype(np.float64)
        self._loudness_matrix = banks.bark.astype(np.float64) * equal_loudness_weights(freqs)[None, :]
        self._sharpness = sharpness_weights(hz_to_bark(freqs))
        offsets = np.arange(1, min(config.roughness_window, config.n_bins))
        self._roughness_offsets = offsets
        self._roughness_weights = roughness_weight(offsets * config.bin_width)
        self.reset()

    def reset(self) -> None:
        self.fluctuation_strength = 0.0

    def loudness(self, mag: np.ndarray) -> np.ndarray:
        return np.maximum(self._loudness_matrix @ mag, EPSILON) ** LOUDNESS_EXPONENT

    def sharpness(self, mag: np.ndarray) -> float:
        total = float(mag.sum())
        if total < EPSILON:
            return 0.0
        return float(np.dot(mag, self._sharpness) / total)

    def roughness(self, mag: np.ndarray) -> float:
        """Weighted products of bin pairs whose spacing falls in the beating range."""
        total = 0.0
        for d, weight in zip(self._roughness_offsets, self._roughness_weights):
            if weight > 0.0:
                total += weight * float(np.dot(mag[:-d], mag[d:]))
        return total

    def fluctuation(self, energy: float, previous_energy) -> float:
        change = 0.0 if previous_energy is None else abs(energy - previous_energy)
        self.fluctuation_strength += (
            (change - self.fluctuation_strength) * self.config.fluctuation_smoothing
        )
        return self.fluctuation_strength

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        mag = frame.magnitude.astype(np.float64)
        energy = context.results.get("energy")
        if energy is None:
            energy = float(frame.power.sum())

        loudness = self.loudness(mag)
        return {
            "loudness": loudness,
            "total_loudness": float(loudness.sum()),
            "sharpness": self.sharpness(mag),
            "roughness": self.roughness(mag),
            "fluctuation_strength": self.fluctuation(energy, context.history.energy.latest),
            "erb_spectrum": self.banks.erb.astype(np.float64) @ mag,
        }
