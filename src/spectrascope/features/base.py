"""
Extractor interface.

Every feature extractor turns the current :class:`SpectralFrame` (plus the
shared, read-only context) into a partial set of :class:`FeatureFrame`
fields.  The pipeline runs extractors in a fixed order and merges their
outputs; later extractors may read earlier results from the context.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.filterbanks import FilterBankSet
from spectrascope.core.frames import SpectralFrame
from spectrascope.core.history import TemporalHistory

EPSILON = 1e-10


@dataclass
class ExtractionContext:
    """Read-only inputs shared by all extractors during one cycle."""

    config: AnalysisConfig
    banks: FilterBankSet
    history: TemporalHistory
    frame_index: int = 0
    results: Dict[str, Any] = field(default_factory=dict)


class SpectralExtractor(ABC):
    """Base class for per-frame feature extractors."""

    #: Short identifier used in timing reports and logs
    name: str = "extractor"

    def __init__(self, config: AnalysisConfig, banks: FilterBankSet):
        self.config = config
        self.banks = banks

    @abstractmethod
    def extract(self, frame: SpectralFrame, context: ExtractionContext) -> Dict[str, Any]:
        """Return this extractor's fields for the current frame."""

    def reset(self) -> None:
        """Drop any smoothing or tracking state."""
