"""Pitch-class energy (chromagram) with temporal smoothing."""

from typing import Any, Dict, List

import numpy as np

from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor

CHROMA_NAMES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def normalize_chroma(raw: np.ndarray) -> np.ndarray:
    """Scale to unit sum; a (near) silent vector becomes uniform."""
    total = float(raw.sum())
    if total < EPSILON:
        return np.full(raw.shape, 1.0 / raw.size)
    return raw / total


class ChromaExtractor(SpectralExtractor):
    """
    Projects the magnitude spectrum onto the chroma filter bank.

    ``chroma_raw`` is the unnormalized projection.  ``chroma`` is the
    unit-sum vector smoothed against the previous frame:
    ``prev + (current - prev) * (1 - chroma_smoothing)``.
    """

    name = "chroma"

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        raw = self.banks.chroma.astype(np.float64) @ frame.magnitude.astype(np.float64)
        current = normalize_chroma(raw)

        previous = context.history.chroma.latest
        if previous is None:
            chroma = current
        else:
            chroma = previous + (current - previous) * (1.0 - self.config.chroma_smoothing)

        return {"chroma_raw": raw, "chroma": chroma}
