"""
Key, chord and tonal-space estimates from the chroma vector.

Key detection correlates the chroma with the 24 rotated
Krumhansl-Schmuckler profiles and smooths the winning correlation so that
the reported key only changes after sustained evidence.  The church mode
is matched against the seven diatonic scales rooted on the tracked key.
"""

from typing import Any, Dict, Tuple

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet
from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor
from spectrascope.features.chroma import CHROMA_NAMES

# Interval pairs (in semitones) counted as consonant
CONSONANT_INTERVALS = (3, 4, 5, 7, 8, 9)

# Diatonic modes as semitone offsets from the tonic
MODE_INTERVALS = (
    ("ionian", (0, 2, 4, 5, 7, 9, 11)),
    ("dorian", (0, 2, 3, 5, 7, 9, 10)),
    ("phrygian", (0, 1, 3, 5, 7, 8, 10)),
    ("lydian", (0, 2, 4, 6, 7, 9, 11)),
    ("mixolydian", (0, 2, 4, 5, 7, 9, 10)),
    ("aeolian", (0, 2, 3, 5, 7, 8, 10)),
    ("locrian", (0, 1, 3, 5, 6, 8, 10)),
)
MODE_NAMES = tuple(name for name, _ in MODE_INTERVALS)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom < EPSILON:
        return 0.0
    return float(np.dot(a, b) / denom)


def fold_to_twelve(chroma: np.ndarray) -> np.ndarray:
    """Resample a chroma vector with any number of bins onto 12 pitch classes."""
    bins = chroma.size
    if bins == 12:
        return chroma
    positions = np.arange(12) * bins / 12.0
    return np.interp(positions, np.arange(bins), chroma, period=bins)


def tonal_centroid(chroma: np.ndarray) -> np.ndarray:
    """
    Six-dimensional tonal centroid.

    Chroma weights projected onto the circles of fifths, major thirds and
    minor thirds, as (cos, sin) pairs.
    """
    pc = np.arange(12)
    out = np.empty(6)
    for i, step in enumerate((7, 4, 3)):
        angle = 2.0 * np.pi * pc * step / 12.0
        out[2 * i] = np.dot(chroma, np.cos(angle))
        out[2 * i + 1] = np.dot(chroma, np.sin(angle))
    return out


def consonance(chroma: np.ndarray) -> float:
    """Sum of chroma products over consonant interval pairs."""
    total = 0.0
    for interval in CONSONANT_INTERVALS:
        # pairs (i, i + interval) with i + interval < 12
        total += float(np.dot(chroma[: 12 - interval], chroma[interval:]))
    return total


class KeyEstimator(SpectralExtractor):
    """
    Smoothed key and mode tracking, plus per-frame chord estimate.

    Must run after :class:`ChromaExtractor`; reads ``chroma`` and
    ``chroma_raw`` from the context.
    """

    name = "key"

    MAJOR_PROFILE = np.array(
        [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
    )
    MINOR_PROFILE = np.array(
        [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
    )

    MAJOR_TRIAD = np.array([1, 0, 0, 0, 1, 0, 0, 1, 0, 0, 0, 0], dtype=np.float64)
    MINOR_TRIAD = np.array([1, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 0], dtype=np.float64)

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        super().__init__(config, banks)
        # rows 0-11 major keys on C..B, rows 12-23 minor keys
        self.key_profiles = np.vstack(
            [np.roll(self.MAJOR_PROFILE, i) for i in range(12)]
            + [np.roll(self.MINOR_PROFILE, i) for i in range(12)]
        )
        self.chord_templates = np.vstack(
            [np.roll(self.MAJOR_TRIAD, i) for i in range(12)]
            + [np.roll(self.MINOR_TRIAD, i) for i in range(12)]
        )
        self.mode_templates = np.zeros((len(MODE_INTERVALS), 12))
        for row, (_, intervals) in enumerate(MODE_INTERVALS):
            self.mode_templates[row, list(intervals)] = 1.0
        self.reset()

    def reset(self) -> None:
        self.key_index = 0
        self.mode = "major"
        self.confidence = 0.0

    @staticmethod
    def _correlate(chroma: np.ndarray, templates: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(templates, axis=1) * np.linalg.norm(chroma)
        return np.divide(
            templates @ chroma, norms, out=np.zeros(len(templates)), where=norms > EPSILON
        )

    def key_correlations(self, chroma: np.ndarray) -> np.ndarray:
        """Cosine similarity against the 24 key profiles (12 major then 12 minor)."""
        return self._correlate(fold_to_twelve(chroma), self.key_profiles)

    def update(self, chroma: np.ndarray) -> Tuple[str, str, float]:
        """Feed one chroma vector; returns (key name, mode, smoothed confidence)."""
        correlations = self.key_correlations(chroma)
        best = int(np.argmax(correlations))
        best_corr = float(correlations[best])

        if best_corr > self.config.key_min_correlation:
            self.confidence += (best_corr - self.confidence) * (1.0 - self.config.key_smoothing)
            if self.confidence > self.config.key_commit_threshold:
                self.key_index = best % 12
                self.mode = "major" if best < 12 else "minor"

        return CHROMA_NAMES[self.key_index], self.mode, self.confidence

    def chord(self, chroma: np.ndarray) -> Tuple[str, str, float]:
        """Best matching major/minor triad as (root, quality, similarity)."""
        scores = self._correlate(fold_to_twelve(chroma), self.chord_templates)
        best = int(np.argmax(scores))
        quality = "major" if best < 12 else "minor"
        return CHROMA_NAMES[best % 12], quality, float(scores[best])

    def modal_scale(self, chroma: np.ndarray) -> Tuple[str, float]:
        """Best matching mode on the tracked key root as (mode name, similarity)."""
        relative = np.roll(fold_to_twelve(chroma), -self.key_index)
        scores = self._correlate(relative, self.mode_templates)
        best = int(np.argmax(scores))
        return MODE_NAMES[best], float(scores[best])

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        chroma = np.asarray(context.results["chroma"], dtype=np.float64)
        raw = np.asarray(context.results["chroma_raw"], dtype=np.float64)
        twelve = fold_to_twelve(chroma)

        if raw.sum() < EPSILON:
            # no tonal evidence: hold the tracked key, report no chord
            key, mode, confidence = CHROMA_NAMES[self.key_index], self.mode, self.confidence
            chord_root, chord_quality, chord_confidence = "N", "none", 0.0
            modal_scale, modal_confidence = MODE_NAMES[0], 0.0
        else:
            key, mode, confidence = self.update(chroma)
            chord_root, chord_quality, chord_confidence = self.chord(chroma)
            modal_scale, modal_confidence = self.modal_scale(chroma)

        return {
            "key": key,
            "key_index": self.key_index,
            "mode": mode,
            "key_confidence": float(confidence),
            "chord_root": chord_root,
            "chord_quality": chord_quality,
            "chord_confidence": chord_confidence,
            "tonal_centroid": tonal_centroid(twelve),
            "consonance": consonance(twelve),
            "modal_scale": modal_scale,
            "modal_confidence": modal_confidence,
        }
