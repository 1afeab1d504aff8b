"""
Analysis configuration.

A single frozen dataclass holds every parameter of the analysis core.  It is
validated once at construction; the pipeline never re-checks it per frame.
Change settings by building a new config (``config.replace(...)``) and
handing it to :meth:`AnalysisPipeline.reconfigure`.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple

WINDOW_TYPES = ("hann", "hamming", "blackman", "kaiser", "flattop", "rectangular")

# (name, low Hz, high Hz), inclusive on both ends
DEFAULT_SPECTRAL_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("sub_bass", 20.0, 60.0),
    ("bass", 60.0, 250.0),
    ("low_mid", 250.0, 500.0),
    ("mid", 500.0, 2000.0),
    ("high_mid", 2000.0, 4000.0),
    ("presence", 4000.0, 8000.0),
    ("brilliance", 8000.0, 20000.0),
)


class ConfigurationError(ValueError):
    """Raised when analysis parameters are inconsistent or out of range."""


def is_power_of_two(n: int) -> bool:
    return isinstance(n, int) and n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable parameter set for one analysis pipeline."""

    sample_rate: int = 44100
    fft_size: int = 4096
    # When given, hop_size sets the stride and overlap_ratio is recomputed
    # from it; otherwise hop_size = fft_size - floor(fft_size * overlap_ratio).
    hop_size: Optional[int] = None
    zero_padding_factor: int = 2
    overlap_ratio: float = 0.75
    window_function: str = "hann"
    kaiser_beta: float = 8.6

    # Mel / MFCC
    mel_filter_banks: int = 128
    mel_min_freq: float = 80.0
    mel_max_freq: float = 8000.0
    mfcc_coefficients: int = 13
    lifter_param: int = 22

    # Chroma / key
    chroma_bins: int = 12
    chroma_min_freq: float = 65.0
    chroma_max_freq: float = 2093.0
    tuning_freq: float = 440.0
    chroma_smoothing: float = 0.8
    key_smoothing: float = 0.95
    key_min_correlation: float = 0.3
    key_commit_threshold: float = 0.5

    # Harmonic / pitch
    harmonic_count: int = 8
    pitch_min_freq: float = 50.0
    pitch_max_freq: float = 2000.0
    pitch_candidates: int = 200
    pitch_confidence_threshold: float = 0.05
    pitch_smoothing: float = 0.3

    # Psychoacoustics
    bark_bands: int = 24
    erb_bands: int = 32
    roughness_window: int = 50
    fluctuation_smoothing: float = 0.1

    # Spectral statistics
    rolloff_threshold: float = 0.85
    spectral_bands: Tuple[Tuple[str, float, float], ...] = DEFAULT_SPECTRAL_BANDS
    contrast_octaves: int = 6
    contrast_alpha: float = 0.02
    onset_sensitivity: float = 0.3

    # History depth (frames)
    spectrum_history: int = 128
    chroma_history: int = 32
    mfcc_history: int = 32

    def __post_init__(self):
        # Normalize sequences so the config stays hashable
        bands = tuple(
            (str(name), float(lo), float(hi)) for name, lo, hi in self.spectral_bands
        )
        object.__setattr__(self, "spectral_bands", bands)
        self._validate()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def padded_size(self) -> int:
        return self.fft_size * self.zero_padding_factor

    @property
    def n_bins(self) -> int:
        """Number of retained spectrum bins (DC up to, excluding, Nyquist)."""
        return self.padded_size // 2

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0

    @property
    def bin_width(self) -> float:
        """Frequency spacing between spectrum bins in Hz."""
        return self.nyquist / self.n_bins

    @property
    def overlap_samples(self) -> int:
        return self.fft_size - self.hop_size

    @property
    def frame_advance(self) -> int:
        """Fresh samples consumed per frame (the stride between frames)."""
        return self.hop_size

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _, _ in self.spectral_bands)

    def replace(self, **changes) -> "AnalysisConfig":
        """
        Return a validated copy with ``changes`` applied.

        Changing ``fft_size`` or ``overlap_ratio`` without an explicit
        ``hop_size`` re-derives the hop from the new values.
        """
        if "hop_size" not in changes and ({"fft_size", "overlap_ratio"} & set(changes)):
            changes["hop_size"] = None
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self):
        if self.sample_rate <= 0:
            raise ConfigurationError(f"sample_rate must be positive, got {self.sample_rate}")
        if not is_power_of_two(self.fft_size):
            raise ConfigurationError(f"fft_size must be a power of two, got {self.fft_size}")
        if not is_power_of_two(self.zero_padding_factor):
            raise ConfigurationError(
                f"zero_padding_factor must be a power of two, got {self.zero_padding_factor}"
            )
        if not 0.0 <= self.overlap_ratio < 1.0:
            raise ConfigurationError(f"overlap_ratio must be in [0, 1), got {self.overlap_ratio}")
        self._resolve_stride()
        if self.window_function not in WINDOW_TYPES:
            raise ConfigurationError(
                f"Unknown window_function {self.window_function!r}; "
                f"expected one of {', '.join(WINDOW_TYPES)}"
            )
        if self.kaiser_beta < 0:
            raise ConfigurationError("kaiser_beta must be non-negative")

        for name in (
            "mel_filter_banks", "mfcc_coefficients", "chroma_bins", "harmonic_count",
            "pitch_candidates", "bark_bands", "erb_bands", "roughness_window",
            "contrast_octaves", "spectrum_history", "chroma_history", "mfcc_history",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

        if self.mfcc_coefficients > self.mel_filter_banks:
            raise ConfigurationError(
                "mfcc_coefficients cannot exceed mel_filter_banks "
                f"({self.mfcc_coefficients} > {self.mel_filter_banks})"
            )
        if self.lifter_param < 0:
            raise ConfigurationError("lifter_param must be >= 0 (0 disables liftering)")
        if self.tuning_freq <= 0:
            raise ConfigurationError("tuning_freq must be positive")

        self._check_range("mel", self.mel_min_freq, self.mel_max_freq)
        self._check_range("chroma", self.chroma_min_freq, self.chroma_max_freq)
        self._check_range("pitch", self.pitch_min_freq, self.pitch_max_freq)
        if self.pitch_min_freq <= 0:
            raise ConfigurationError("pitch_min_freq must be positive")
        for name, lo, hi in self.spectral_bands:
            if not 0 <= lo < hi:
                raise ConfigurationError(f"spectral band {name!r} has invalid range {lo}-{hi}")

        for name in (
            "chroma_smoothing", "key_smoothing", "fluctuation_smoothing",
        ):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1), got {value}")
        # follow rate of the pitch tracker; 1.0 adopts every estimate
        if not 0.0 < self.pitch_smoothing <= 1.0:
            raise ConfigurationError(f"pitch_smoothing must be in (0, 1], got {self.pitch_smoothing}")

        for name in (
            "key_min_correlation", "key_commit_threshold", "pitch_confidence_threshold",
            "contrast_alpha",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if not 0.0 < self.rolloff_threshold <= 1.0:
            raise ConfigurationError("rolloff_threshold must be in (0, 1]")
        if self.onset_sensitivity < 0:
            raise ConfigurationError("onset_sensitivity must be non-negative")

    def _resolve_stride(self):
        if self.hop_size is None:
            hop = self.fft_size - int(self.fft_size * self.overlap_ratio)
            object.__setattr__(self, "hop_size", hop)
            return
        if not isinstance(self.hop_size, int) or not 0 < self.hop_size <= self.fft_size:
            raise ConfigurationError(
                f"hop_size must be in (0, fft_size={self.fft_size}], got {self.hop_size!r}"
            )
        # exact: fft_size is a power of two
        ratio = (self.fft_size - self.hop_size) / self.fft_size
        object.__setattr__(self, "overlap_ratio", ratio)

    def _check_range(self, label: str, lo: float, hi: float):
        if not 0 <= lo < hi:
            raise ConfigurationError(f"{label} frequency range must satisfy 0 <= min < max, got {lo}-{hi}")
        if lo >= self.nyquist:
            raise ConfigurationError(
                f"{label}_min_freq ({lo} Hz) must be below Nyquist ({self.nyquist} Hz)"
            )
