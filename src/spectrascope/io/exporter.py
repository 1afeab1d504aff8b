"""
Feature serialization module.

Exports sequences of FeatureFrame snapshots to a JSON document (for
renderers and inspection) or a compressed NumPy archive (for fast reloads).
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.frames import FeatureFrame
from spectrascope.core.statistics import FeatureStatistics
from spectrascope.features.chroma import CHROMA_NAMES

# Per-frame scalar fields written to the document, in order
SCALAR_FIELDS = (
    "energy",
    "centroid", "spread", "skewness", "kurtosis", "rolloff", "flatness",
    "slope", "decrease", "hfc", "irregularity", "flux",
    "onset_strength",
    "fundamental", "pitch_estimate", "pitch_confidence", "inharmonicity", "hnr",
    "harmonic_strength",
    "key_confidence", "chord_confidence", "consonance", "modal_confidence",
    "total_loudness", "sharpness", "roughness", "fluctuation_strength",
)

# Per-frame vector fields
VECTOR_FIELDS = (
    "spectral_contrast", "spectral_crest", "mfcc", "mfcc_delta", "mfcc_delta2",
    "harmonics", "harmonic_ratios", "tonal_centroid", "loudness",
)


@dataclass
class ExportMetadata:
    """Metadata header for a feature document."""

    sample_rate: int
    fft_size: int
    frame_advance: int
    n_frames: int
    duration: float
    source: Optional[str] = None
    version: str = "0.1.0"
    schema_version: str = "1.0"


class FeatureExporter:
    """
    Exports feature frames to JSON and NumPy formats.

    Non-finite floats (an infinite HNR, for instance) become ``null`` in
    JSON so the output stays standards-compliant.
    """

    def __init__(self, precision: int = 4, include_spectrum: bool = False):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
            include_spectrum: Also write each frame's magnitude spectrum.
        """
        self.precision = precision
        self.include_spectrum = include_spectrum

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        return round(float(value), self.precision)

    def _safe_float(self, value) -> Optional[float]:
        """Rounded float, or None for missing / non-finite values."""
        if value is None:
            return None
        try:
            f = float(value)
        except (TypeError, ValueError):
            return None
        if np.isnan(f) or np.isinf(f):
            return None
        return self._round(f)

    def _vector(self, values: np.ndarray) -> List[Optional[float]]:
        return [self._safe_float(v) for v in values]

    def _build_frame(self, frame: FeatureFrame) -> Dict[str, Any]:
        """
        Build a single frame's data dictionary.

        Args:
            frame: Source feature frame.

        Returns:
            Dictionary with all frame data.
        """
        data: Dict[str, Any] = {
            "frame_index": frame.frame_index,
            "time": self._round(frame.stream_time),
            "is_onset": bool(frame.is_onset),
        }
        for name in SCALAR_FIELDS:
            data[name] = self._safe_float(getattr(frame, name))

        data["bands"] = {
            name: self._safe_float(value)
            for name, value in zip(frame.band_names, frame.band_energies)
        }
        for name in VECTOR_FIELDS:
            data[name] = self._vector(getattr(frame, name))

        # 12-bin chroma gets note names; other resolutions stay positional
        if len(frame.chroma) == len(CHROMA_NAMES):
            data["chroma"] = {
                note: self._safe_float(v) for note, v in zip(CHROMA_NAMES, frame.chroma)
            }
        else:
            data["chroma"] = self._vector(frame.chroma)

        data["key"] = {
            "root": frame.key,
            "root_index": frame.key_index,
            "mode": frame.mode,
            "scale": frame.modal_scale,
        }
        data["chord"] = {"root": frame.chord_root, "quality": frame.chord_quality}

        if self.include_spectrum:
            data["magnitude"] = self._vector(frame.spectrum.magnitude)
        return data

    def build_manifest(
        self,
        frames: Sequence[FeatureFrame],
        config: AnalysisConfig,
        source: Optional[Union[str, Path]] = None,
    ) -> Dict[str, Any]:
        """
        Build the complete feature document.

        Args:
            frames: Frames in stream order.
            config: Configuration the frames were produced with.
            source: Optional name of the analyzed file.

        Returns:
            Dictionary ready for serialization.
        """
        metadata = ExportMetadata(
            sample_rate=config.sample_rate,
            fft_size=config.fft_size,
            frame_advance=config.frame_advance,
            n_frames=len(frames),
            duration=self._round(len(frames) * config.frame_advance / config.sample_rate),
            source=str(source) if source is not None else None,
        )

        stats = FeatureStatistics()
        for frame in frames:
            stats.update(frame)

        manifest: Dict[str, Any] = {
            "metadata": {
                "sample_rate": metadata.sample_rate,
                "fft_size": metadata.fft_size,
                "frame_advance": metadata.frame_advance,
                "n_frames": metadata.n_frames,
                "duration": metadata.duration,
                "source": metadata.source,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "statistics": {
                name: {key: self._safe_float(value) for key, value in summary.items()}
                for name, summary in stats.summary().items()
            },
            "frames": [self._build_frame(frame) for frame in frames],
        }

        if frames:
            last = frames[-1]
            manifest["key"] = {
                "root": last.key,
                "root_index": last.key_index,
                "mode": last.mode,
                "confidence": self._safe_float(last.key_confidence),
            }

        return manifest

    def export_json(
        self,
        frames: Sequence[FeatureFrame],
        config: AnalysisConfig,
        output_path: Union[str, Path],
        source: Optional[Union[str, Path]] = None,
        indent: int = 2,
    ) -> Path:
        """
        Export the feature document to a JSON file.

        Returns:
            Path to written file.
        """
        manifest = self.build_manifest(frames, config, source=source)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        frames: Sequence[FeatureFrame],
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export features as a NumPy .npz archive, one array per field.

        Scalars become ``(n_frames,)`` arrays and vectors ``(n_frames, dim)``.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)
        if not frames:
            raise ValueError("No frames to export")

        arrays: Dict[str, Any] = {
            "frame_index": np.array([f.frame_index for f in frames]),
            "stream_time": np.array([f.stream_time for f in frames]),
            "is_onset": np.array([f.is_onset for f in frames]),
            "key_index": np.array([f.key_index for f in frames]),
        }
        for name in SCALAR_FIELDS:
            arrays[name] = np.array([getattr(f, name) for f in frames], dtype=np.float64)
        for name in VECTOR_FIELDS + ("band_energies", "chroma", "chroma_raw", "mel_spectrum"):
            arrays[name] = np.stack([getattr(f, name) for f in frames])
        if self.include_spectrum:
            arrays["magnitude"] = np.stack([f.spectrum.magnitude for f in frames])

        np.savez_compressed(output_path, **arrays)

        return output_path

    def to_dict(
        self,
        frames: Sequence[FeatureFrame],
        config: AnalysisConfig,
    ) -> Dict[str, Any]:
        """Return the feature document as a dictionary (for in-memory use)."""
        return self.build_manifest(frames, config)
