"""
Fixed-capacity temporal history.

Each :class:`RingBuffer` preallocates its storage once and overwrites the
oldest entry when full.  Index 0 is always the most recent entry.
"""

from typing import Iterator, Optional, Tuple, Union

import numpy as np

from spectrascope.core.config import AnalysisConfig


class RingBuffer:
    """
    FIFO of fixed-shape float32 snapshots.

    Args:
        capacity: Maximum number of entries kept.
        shape: Shape of one entry; ``()`` for scalars.
    """

    def __init__(self, capacity: int, shape: Union[int, Tuple[int, ...]] = ()):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if isinstance(shape, int):
            shape = (shape,)
        self.capacity = capacity
        self.shape = tuple(shape)
        self._storage = np.zeros((capacity,) + self.shape, dtype=np.float32)
        self._head = 0   # slot the next push writes to
        self._count = 0

    def push(self, value) -> None:
        self._storage[self._head] = value
        self._head = (self._head + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)

    def __len__(self) -> int:
        return self._count

    def __bool__(self) -> bool:
        return self._count > 0

    def _slot(self, index: int) -> int:
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"history index {index} out of range ({self._count} entries)")
        return (self._head - 1 - index) % self.capacity

    def __getitem__(self, index: int):
        """Entry ``index`` steps back in time (0 = newest), as a read-only copy."""
        value = self._storage[self._slot(index)]
        if not self.shape:
            return float(value)
        value = value.copy()
        value.flags.writeable = False
        return value

    def __iter__(self) -> Iterator:
        for i in range(self._count):
            yield self[i]

    @property
    def latest(self):
        """Newest entry, or None when empty."""
        return self[0] if self._count else None

    def to_array(self) -> np.ndarray:
        """All entries stacked newest first."""
        order = [(self._head - 1 - i) % self.capacity for i in range(self._count)]
        return self._storage[order].copy()

    def clear(self) -> None:
        self._storage[...] = 0.0
        self._head = 0
        self._count = 0


class TemporalHistory:
    """
    Per-pipeline history of spectra and features.

    Written exactly once per processing cycle by the pipeline, after all
    extractors have read the previous state.
    """

    def __init__(self, config: AnalysisConfig):
        self.spectrum = RingBuffer(config.spectrum_history, config.n_bins)
        self.chroma = RingBuffer(config.chroma_history, config.chroma_bins)
        self.mfcc = RingBuffer(config.mfcc_history, config.mfcc_coefficients)
        self.mfcc_delta = RingBuffer(config.mfcc_history, config.mfcc_coefficients)
        self.energy = RingBuffer(config.chroma_history)
        self.onset = RingBuffer(config.chroma_history)

    def record(
        self,
        spectrum: np.ndarray,
        chroma: np.ndarray,
        mfcc: np.ndarray,
        mfcc_delta: np.ndarray,
        energy: float,
        onset: float,
    ) -> None:
        self.spectrum.push(spectrum)
        self.chroma.push(chroma)
        self.mfcc.push(mfcc)
        self.mfcc_delta.push(mfcc_delta)
        self.energy.push(energy)
        self.onset.push(onset)

    def previous_spectrum(self) -> Optional[np.ndarray]:
        return self.spectrum.latest

    def clear(self) -> None:
        for buffer in (
            self.spectrum, self.chroma, self.mfcc, self.mfcc_delta, self.energy, self.onset,
        ):
            buffer.clear()

    def __len__(self) -> int:
        return len(self.spectrum)
