"""
Value objects produced by the analysis core.

Both frame types are frozen dataclasses whose arrays are private copies
flagged read-only, so a frame handed to a renderer can never change under it
and never aliases pipeline scratch buffers.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np


def freeze_array(values, dtype=np.float32) -> np.ndarray:
    """Copy ``values`` into a new read-only array."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class SpectralFrame:
    """One-sided spectrum of a single time frame (bins 0 .. N/2 - 1)."""

    magnitude: np.ndarray
    phase: np.ndarray
    power: np.ndarray

    @classmethod
    def from_arrays(cls, magnitude: np.ndarray, phase: np.ndarray) -> "SpectralFrame":
        magnitude = freeze_array(magnitude)
        # power is derived from the stored float32 magnitude so it matches exactly
        power = freeze_array(magnitude * magnitude)
        return cls(magnitude=magnitude, phase=freeze_array(phase), power=power)

    @classmethod
    def silent(cls, n_bins: int) -> "SpectralFrame":
        zeros = np.zeros(n_bins, dtype=np.float32)
        return cls.from_arrays(zeros, zeros)

    def __len__(self) -> int:
        return len(self.magnitude)


@dataclass(frozen=True)
class FeatureFrame:
    """
    Complete feature snapshot for one processing cycle.

    Array fields are float32 and read-only.  Scalars are plain Python values.
    """

    frame_index: int
    timestamp: float        # wall clock (time.time()) when the frame was built
    stream_time: float      # position in the input stream in seconds
    spectrum: SpectralFrame
    energy: float

    # Spectral statistics
    centroid: float
    spread: float
    skewness: float
    kurtosis: float
    rolloff: float
    flatness: float
    slope: float
    decrease: float
    hfc: float
    irregularity: float
    flux: float
    band_energies: np.ndarray
    spectral_contrast: np.ndarray
    spectral_crest: np.ndarray

    # Onsets
    onset_strength: float
    is_onset: bool

    # Cepstral
    mfcc: np.ndarray
    mfcc_delta: np.ndarray
    mfcc_delta2: np.ndarray
    mel_spectrum: np.ndarray

    # Chroma / tonality
    chroma_raw: np.ndarray
    chroma: np.ndarray
    key: str
    key_index: int
    mode: str
    key_confidence: float
    chord_root: str
    chord_quality: str
    chord_confidence: float
    tonal_centroid: np.ndarray
    consonance: float
    modal_scale: str
    modal_confidence: float

    # Harmonic
    fundamental: float
    pitch_estimate: float
    pitch_confidence: float
    harmonics: np.ndarray
    harmonic_ratios: np.ndarray
    inharmonicity: float
    hnr: float
    harmonic_strength: float

    # Psychoacoustic
    loudness: np.ndarray
    total_loudness: float
    sharpness: float
    roughness: float
    fluctuation_strength: float
    erb_spectrum: np.ndarray

    band_names: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                object.__setattr__(self, f.name, freeze_array(value))

    def band_energy(self, name: str) -> Optional[float]:
        """Energy of a named spectral band, or None if the band is unknown."""
        try:
            return float(self.band_energies[self.band_names.index(name)])
        except ValueError:
            return None

    def as_dict(self, include_spectrum: bool = False) -> Dict[str, Any]:
        """Plain-Python view of the frame (arrays become lists)."""
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, SpectralFrame):
                if include_spectrum:
                    out["magnitude"] = value.magnitude.tolist()
                continue
            if isinstance(value, np.ndarray):
                value = value.tolist()
            elif isinstance(value, tuple):
                value = list(value)
            out[f.name] = value
        return out
