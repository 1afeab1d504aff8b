"""
Fundamental frequency tracking and harmonic structure.

Pitch is found by harmonic template matching: each log-spaced candidate
fundamental owns a template with ``1/h`` weight at its first harmonics, and
the candidate whose template collects the most magnitude wins.
"""

from typing import Any, Dict, Tuple

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet
from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor

# Inharmonicity search radius around each expected partial, as a fraction of f0
PARTIAL_SEARCH_RADIUS = 0.1


def parabolic_peak(y1: float, y2: float, y3: float) -> float:
    """
    Peak of the parabola through three equally spaced samples centered on ``y2``.

    The vertex offset is clipped to one bin either side and the result
    floored at zero.
    """
    a = 0.5 * (y1 - 2.0 * y2 + y3)
    b = 0.5 * (y3 - y1)
    if abs(a) < EPSILON:
        return max(y2, 0.0)
    offset = min(max(-b / (2.0 * a), -1.0), 1.0)
    return max(a * offset * offset + b * offset + y2, 0.0)


def build_harmonic_templates(config: AnalysisConfig) -> Tuple[np.ndarray, np.ndarray]:
    """
    Harmonic templates and their candidate fundamentals.

    Returns:
        (templates, candidates): an L1-normalized ``(pitch_candidates, n_bins)``
        matrix and the log-spaced candidate frequencies in Hz.
    """
    n_bins = config.n_bins
    candidates = np.geomspace(config.pitch_min_freq, config.pitch_max_freq, config.pitch_candidates)
    templates = np.zeros((len(candidates), n_bins))
    rows = np.arange(len(candidates))

    for h in range(1, config.harmonic_count + 1):
        harmonic_freqs = candidates * h
        bins = np.rint(harmonic_freqs * n_bins / config.nyquist).astype(int)
        valid = (harmonic_freqs < config.nyquist) & (bins < n_bins)
        amplitude = 1.0 / h
        np.add.at(templates, (rows[valid], bins[valid]), amplitude)

        lower = valid & (bins > 0)
        np.add.at(templates, (rows[lower], bins[lower] - 1), 0.5 * amplitude)
        upper = valid & (bins < n_bins - 1)
        np.add.at(templates, (rows[upper], bins[upper] + 1), 0.5 * amplitude)

    sums = templates.sum(axis=1, keepdims=True)
    templates = np.divide(templates, sums, out=np.zeros_like(templates), where=sums > 0)
    return templates.astype(np.float32), candidates


class HarmonicAnalyzer(SpectralExtractor):
    """
    Pitch tracker with harmonic amplitudes, inharmonicity and HNR.

    The tracker follows the per-frame estimate (rate ``pitch_smoothing``)
    while its confidence exceeds ``pitch_confidence_threshold`` and holds
    its last value otherwise.
    """

    name = "harmonic"

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        super().__init__(config, banks)
        self.templates, self.candidates = build_harmonic_templates(config)
        self.freqs = banks.bin_frequencies.astype(np.float64)
        self.reset()

    def reset(self) -> None:
        self.fundamental = 0.0

    def estimate(self, mag: np.ndarray) -> Tuple[float, float]:
        """Raw (frequency, confidence) of the best template match; (0, 0) on silence."""
        salience = self.templates @ mag.astype(np.float32)
        best = int(np.argmax(salience))
        if salience[best] < EPSILON:
            return 0.0, 0.0
        confidence = float(salience[best]) / (float(mag.sum()) + EPSILON)
        return float(self.candidates[best]), confidence

    def track(self, estimate: float, confidence: float) -> float:
        if confidence > self.config.pitch_confidence_threshold:
            if self.fundamental <= 0.0:
                self.fundamental = estimate
            else:
                self.fundamental += (estimate - self.fundamental) * self.config.pitch_smoothing
        return self.fundamental

    def harmonic_amplitudes(self, mag: np.ndarray, f0: float) -> np.ndarray:
        count = self.config.harmonic_count
        amplitudes = np.zeros(count)
        if f0 <= 0.0:
            return amplitudes

        n_bins = mag.size
        for i in range(count):
            freq = f0 * (i + 1)
            if freq >= self.config.nyquist:
                break
            center = int(round(freq / self.config.bin_width))
            if center >= n_bins:
                break
            if 0 < center < n_bins - 1:
                amplitudes[i] = parabolic_peak(mag[center - 1], mag[center], mag[center + 1])
            else:
                amplitudes[i] = mag[center]
        return amplitudes

    @staticmethod
    def ratios(amplitudes: np.ndarray) -> np.ndarray:
        if amplitudes[0] < EPSILON:
            return np.zeros(amplitudes.size - 1)
        return amplitudes[1:] / amplitudes[0]

    def inharmonicity(self, mag: np.ndarray, f0: float) -> float:
        """Mean relative deviation of the strongest partial near each ``h * f0`` (h >= 2)."""
        if f0 <= 0.0:
            return 0.0
        radius = PARTIAL_SEARCH_RADIUS * f0
        deviations = []
        for h in range(2, self.config.harmonic_count + 1):
            expected = f0 * h
            if expected >= self.config.nyquist:
                break
            lo = int(np.searchsorted(self.freqs, expected - radius, side="left"))
            hi = int(np.searchsorted(self.freqs, expected + radius, side="right"))
            if hi <= lo:
                continue
            actual = self.freqs[lo + int(np.argmax(mag[lo:hi]))]
            deviations.append(abs(actual - expected) / expected)
        return float(np.mean(deviations)) if deviations else 0.0

    @staticmethod
    def hnr(amplitudes: np.ndarray, power: np.ndarray) -> float:
        """Harmonic-to-noise ratio in dB (+inf when no noise energy remains)."""
        total = float(power.sum())
        if total < EPSILON:
            return 0.0
        harmonic = max(float(np.sum(amplitudes ** 2)), EPSILON)
        noise = total - harmonic
        if noise <= EPSILON:
            return float("inf")
        return float(10.0 * np.log10(harmonic / noise))

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        mag = frame.magnitude.astype(np.float64)
        estimate, confidence = self.estimate(frame.magnitude)
        f0 = self.track(estimate, confidence)
        amplitudes = self.harmonic_amplitudes(mag, f0)

        return {
            "fundamental": f0,
            "pitch_estimate": estimate,
            "pitch_confidence": confidence,
            "harmonics": amplitudes,
            "harmonic_ratios": self.ratios(amplitudes),
            "inharmonicity": self.inharmonicity(mag, f0),
            "hnr": self.hnr(amplitudes, frame.power.astype(np.float64)),
            "harmonic_strength": float(amplitudes.mean()),
        }
