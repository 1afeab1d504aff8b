"""Running (Welford) statistics over scalar frame features."""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from spectrascope.core.frames import FeatureFrame

TRACKED_FEATURES: Tuple[str, ...] = (
    "energy", "centroid", "spread", "skewness", "kurtosis", "rolloff", "flatness",
    "slope", "decrease", "hfc", "irregularity", "flux", "onset_strength",
    "fundamental", "pitch_confidence", "inharmonicity", "hnr", "harmonic_strength",
    "key_confidence", "chord_confidence", "consonance", "modal_confidence",
    "total_loudness", "sharpness", "roughness", "fluctuation_strength",
)


@dataclass
class RunningStat:
    """Mean, variance and range of one scalar, updated one sample at a time."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf

    def update(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)

    @property
    def variance(self) -> float:
        return self.m2 / self.count if self.count > 1 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def normalize(self, value: float) -> float:
        """Map ``value`` to [0, 1] over the observed range (0.5 before any spread)."""
        span = self.maximum - self.minimum
        if self.count == 0 or span <= 0:
            return 0.5
        return min(max((value - self.minimum) / span, 0.0), 1.0)

    def as_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "mean": self.mean,
            "std": self.std,
            "min": self.minimum if self.count else 0.0,
            "max": self.maximum if self.count else 0.0,
        }


class FeatureStatistics:
    """
    Per-feature running statistics fed with every produced frame.

    Non-finite values (e.g. an infinite HNR) are skipped.
    """

    def __init__(self, features: Iterable[str] = TRACKED_FEATURES):
        self.features = tuple(features)
        self.reset()

    def reset(self) -> None:
        self._stats: Dict[str, RunningStat] = {name: RunningStat() for name in self.features}
        self.frames_seen = 0

    def update(self, frame: FeatureFrame) -> None:
        self.frames_seen += 1
        for name, stat in self._stats.items():
            value = float(getattr(frame, name))
            if math.isfinite(value):
                stat.update(value)

    def __getitem__(self, name: str) -> RunningStat:
        return self._stats[name]

    def summary(self) -> Dict[str, Dict[str, float]]:
        return {name: stat.as_dict() for name, stat in self._stats.items()}
