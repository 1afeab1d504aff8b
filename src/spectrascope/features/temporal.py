"""Onset signals derived from spectral flux and the onset history."""

from typing import Any, Dict

import numpy as np

from spectrascope.core.frames import SpectralFrame
from spectrascope.features.base import EPSILON, ExtractionContext, SpectralExtractor

# Onset decisions need a minimal amount of past flux to form a threshold
MIN_ONSET_HISTORY = 3


class OnsetDetector(SpectralExtractor):
    """
    Flags frames whose flux stands out from recent history.

    A frame is an onset when its flux exceeds ``mean + onset_sensitivity * std``
    of the buffered onset strengths.  Reads ``flux`` from the spectral
    statistics result, so it must run after :class:`SpectralStatistics`.
    """

    name = "temporal"

    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        flux = context.results.get("flux")
        if flux is None:
            previous = context.history.previous_spectrum()
            if previous is None:
                flux = 0.0
            else:
                diff = frame.magnitude - previous
                flux = float(np.sum(diff[diff > 0]) / frame.magnitude.size)

        is_onset = False
        if len(context.history.onset) >= MIN_ONSET_HISTORY and flux > EPSILON:
            past = context.history.onset.to_array()
            threshold = past.mean() + self.config.onset_sensitivity * past.std()
            is_onset = bool(flux > threshold)

        return {"onset_strength": float(flux), "is_onset": is_onset}
