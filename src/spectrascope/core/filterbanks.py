"""
Perceptual filter banks.

Every bank is a dense ``(bands, n_bins)`` float32 matrix applied to the
magnitude spectrum with a single matrix-vector product.  Banks are pure
functions of the configuration and are cached per config, so rebuilding a
pipeline with an identical config hands back the very same matrices.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

import librosa
import numpy as np

from spectrascope.core.config import AnalysisConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scale conversions
# ---------------------------------------------------------------------------

def hz_to_mel(freq):
    """HTK mel scale: ``2595 * log10(1 + f / 700)``."""
    return librosa.hz_to_mel(freq, htk=True)


def mel_to_hz(mel):
    return librosa.mel_to_hz(mel, htk=True)


def hz_to_bark(freq):
    """Zwicker & Terhardt critical-band rate."""
    freq = np.asarray(freq, dtype=np.float64)
    return 13.0 * np.arctan(0.00076 * freq) + 3.5 * np.arctan((freq / 7500.0) ** 2)


def bark_to_hz(bark):
    """Approximate inverse of the Bark scale (Schroeder)."""
    return 600.0 * np.sinh(np.asarray(bark, dtype=np.float64) / 6.0)


def critical_bandwidth(freq):
    """Zwicker critical bandwidth in Hz at ``freq``."""
    freq = np.asarray(freq, dtype=np.float64)
    return 25.0 + 75.0 * (1.0 + 1.4 * (freq / 1000.0) ** 2) ** 0.69


def hz_to_erb(freq):
    """Glasberg & Moore ERB-number."""
    return 21.4 * np.log10(1.0 + 0.00437 * np.asarray(freq, dtype=np.float64))


def erb_to_hz(erb):
    return (10.0 ** (np.asarray(erb, dtype=np.float64) / 21.4) - 1.0) / 0.00437


def erb_bandwidth(freq):
    """Equivalent rectangular bandwidth in Hz at ``freq``."""
    return 24.7 * (4.37 * np.asarray(freq, dtype=np.float64) / 1000.0 + 1.0)


def hz_to_pitch_class(freq, tuning_freq: float = 440.0, bins: int = 12):
    """
    Continuous pitch class with C at 0.

    Args:
        freq: Frequencies in Hz (must be > 0).
        tuning_freq: Reference frequency of A4.
        bins: Number of pitch classes per octave.

    Returns:
        Values in ``[0, bins)``.
    """
    semitones = 12.0 * np.log2(np.asarray(freq, dtype=np.float64) / tuning_freq) + 9.0
    return np.mod(semitones * bins / 12.0, bins)


def bin_frequencies(config: AnalysisConfig) -> np.ndarray:
    """Center frequency of each retained spectrum bin."""
    return np.arange(config.n_bins, dtype=np.float64) * config.bin_width


# ---------------------------------------------------------------------------
# Banks
# ---------------------------------------------------------------------------

def _readonly(matrix: np.ndarray) -> np.ndarray:
    matrix = np.ascontiguousarray(matrix, dtype=np.float32)
    matrix.flags.writeable = False
    return matrix


@dataclass(frozen=True)
class FilterBankSet:
    """The four filter banks for one configuration, plus the bin frequency axis."""

    mel: np.ndarray
    chroma: np.ndarray
    bark: np.ndarray
    erb: np.ndarray
    bin_frequencies: np.ndarray
    bark_centers: np.ndarray
    erb_centers: np.ndarray


class FilterBankFactory:
    """Builds (and caches) filter banks from an :class:`AnalysisConfig`."""

    @staticmethod
    def mel(config: AnalysisConfig) -> np.ndarray:
        """Triangular filters on the mel scale between mel_min_freq and min(mel_max_freq, Nyquist)."""
        freqs = bin_frequencies(config)
        upper = min(config.mel_max_freq, config.nyquist)
        mel_points = np.linspace(
            hz_to_mel(config.mel_min_freq), hz_to_mel(upper), config.mel_filter_banks + 2
        )
        hz_points = mel_to_hz(mel_points)

        bank = np.zeros((config.mel_filter_banks, config.n_bins))
        for m in range(config.mel_filter_banks):
            left, center, right = hz_points[m], hz_points[m + 1], hz_points[m + 2]
            rising = (freqs >= left) & (freqs <= center)
            falling = (freqs > center) & (freqs <= right)
            if center > left:
                bank[m, rising] = (freqs[rising] - left) / (center - left)
            if right > center:
                bank[m, falling] = (right - freqs[falling]) / (right - center)
        return _readonly(bank)

    @staticmethod
    def chroma(config: AnalysisConfig) -> np.ndarray:
        """
        Gaussian pitch-class filters (sigma = half a semitone), L1-normalized.

        Bins outside ``[chroma_min_freq, chroma_max_freq]`` carry no weight,
        nor does the DC bin, which has no pitch class.
        """
        bins = config.chroma_bins
        freqs = bin_frequencies(config)
        in_range = (
            (freqs > 0.0)
            & (freqs >= config.chroma_min_freq)
            & (freqs <= config.chroma_max_freq)
        )

        bank = np.zeros((bins, config.n_bins))
        if not in_range.any():
            return _readonly(bank)

        pitch_class = hz_to_pitch_class(freqs[in_range], config.tuning_freq, bins)
        sigma = 0.5 * bins / 12.0
        for c in range(bins):
            d = np.abs(pitch_class - c)
            d = np.minimum(d, bins - d)
            bank[c, in_range] = np.exp(-0.5 * (d / sigma) ** 2)

        sums = bank.sum(axis=1, keepdims=True)
        bank = np.divide(bank, sums, out=np.zeros_like(bank), where=sums > 0)
        return _readonly(bank)

    @staticmethod
    def bark_centers(config: AnalysisConfig) -> np.ndarray:
        return (np.arange(config.bark_bands) + 1) * 24.0 / config.bark_bands

    @staticmethod
    def bark(config: AnalysisConfig) -> np.ndarray:
        """Triangles in the Bark domain, one critical band wide on each side."""
        bin_barks = hz_to_bark(bin_frequencies(config))
        centers = FilterBankFactory.bark_centers(config)

        bank = np.zeros((config.bark_bands, config.n_bins))
        for b, z_center in enumerate(centers):
            f_center = float(bark_to_hz(z_center))
            half_bw = critical_bandwidth(f_center) / 2.0
            width = float(
                hz_to_bark(f_center + half_bw) - hz_to_bark(max(f_center - half_bw, 0.0))
            )
            if width <= 0:
                continue
            bank[b] = np.clip(1.0 - np.abs(bin_barks - z_center) / width, 0.0, None)
        return _readonly(bank)

    @staticmethod
    def erb_centers(config: AnalysisConfig) -> np.ndarray:
        erb_numbers = (np.arange(config.erb_bands) + 1) * 40.0 / config.erb_bands
        return erb_to_hz(erb_numbers)

    @staticmethod
    def erb(config: AnalysisConfig) -> np.ndarray:
        """Gaussian auditory filters in Hz with sigma = ERB / 4."""
        freqs = bin_frequencies(config)
        centers = FilterBankFactory.erb_centers(config)
        sigmas = erb_bandwidth(centers) / 4.0
        bank = np.exp(-0.5 * ((freqs[None, :] - centers[:, None]) / sigmas[:, None]) ** 2)
        return _readonly(bank)

    @classmethod
    def build(cls, config: AnalysisConfig) -> FilterBankSet:
        """Return the (cached) filter bank set for ``config``."""
        return _build_cached(config)


@lru_cache(maxsize=8)
def _build_cached(config: AnalysisConfig) -> FilterBankSet:
    logger.debug(
        "Building filter banks: %d bins, %d mel, %d chroma, %d bark, %d erb",
        config.n_bins, config.mel_filter_banks, config.chroma_bins,
        config.bark_bands, config.erb_bands,
    )
    freqs = bin_frequencies(config)
    freqs.flags.writeable = False
    bark_centers = FilterBankFactory.bark_centers(config)
    bark_centers.flags.writeable = False
    erb_centers = FilterBankFactory.erb_centers(config)
    erb_centers.flags.writeable = False
    return FilterBankSet(
        mel=FilterBankFactory.mel(config),
        chroma=FilterBankFactory.chroma(config),
        bark=FilterBankFactory.bark(config),
        erb=FilterBankFactory.erb(config),
        bin_frequencies=freqs,
        bark_centers=bark_centers,
        erb_centers=erb_centers,
    )
