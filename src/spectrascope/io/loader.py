"""
Audio file loading and block iteration.

Files are decoded with librosa and resampled to the analysis rate so the
pipeline always sees mono samples at ``AnalysisConfig.sample_rate``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

import librosa
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class AudioClip:
    """Decoded mono audio."""

    samples: np.ndarray
    sample_rate: int

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        return self.n_samples / float(self.sample_rate)


def load_audio(
    audio_path: Union[str, Path],
    sr: Optional[int] = None,
    mono: bool = True,
    max_duration: Optional[float] = None,
) -> AudioClip:
    """
    Load audio from file.

    Args:
        audio_path: Path to audio file (wav, flac, ogg, mp3 where supported).
        sr: Target sample rate. None preserves the file's rate.
        mono: Downmix to mono if True.
        max_duration: Only decode the first ``max_duration`` seconds.

    Returns:
        AudioClip with float32 samples.
    """
    y, sr_out = librosa.load(audio_path, sr=sr, mono=mono, duration=max_duration)
    clip = AudioClip(samples=np.asarray(y, dtype=np.float32), sample_rate=int(sr_out))
    logger.info("Loaded %s: %.2f s at %d Hz", audio_path, clip.duration, clip.sample_rate)
    return clip


def iter_blocks(samples: np.ndarray, block_size: int, pad_last: bool = True) -> Iterator[np.ndarray]:
    """
    Yield consecutive ``block_size`` slices of ``samples``.

    Args:
        samples: 1-D signal.
        block_size: Samples per block.
        pad_last: Zero-pad a trailing partial block instead of dropping it.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")
    n = len(samples)
    for start in range(0, n, block_size):
        block = samples[start:start + block_size]
        if len(block) < block_size:
            if not pad_last:
                return
            block = np.pad(block, (0, block_size - len(block)))
        yield block
