"""
Radix-2 Cooley-Tukey FFT.

The engine keeps the classic iterative structure (bit-reversal permutation
followed by log2(N) butterfly stages) but runs every stage as a vectorized
NumPy operation over all butterflies at once.  Bit-reversal and twiddle
tables are built once per transform size and cached.

The transform is unnormalized: ``X[k] = sum(x[n] * exp(-2j*pi*k*n/N))``.
"""

from functools import lru_cache
from typing import Tuple

import numpy as np

from spectrascope.core.config import ConfigurationError, is_power_of_two
from spectrascope.core.frames import SpectralFrame


@lru_cache(maxsize=16)
def bit_reversal_table(size: int) -> np.ndarray:
    """Permutation mapping index ``i`` to its bit-reversed index over log2(size) bits."""
    bits = size.bit_length() - 1
    indices = np.arange(size)
    reversed_ = np.zeros(size, dtype=np.intp)
    for b in range(bits):
        reversed_ |= ((indices >> b) & 1) << (bits - 1 - b)
    reversed_.flags.writeable = False
    return reversed_


@lru_cache(maxsize=64)
def twiddle_factors(length: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Twiddles for one butterfly stage of span ``length``.

    Returns:
        (cos, sin) arrays of length ``length // 2`` for angles ``-2*pi*k/length``.
    """
    angles = -2.0 * np.pi * np.arange(length // 2) / length
    cos_t = np.cos(angles)
    sin_t = np.sin(angles)
    cos_t.flags.writeable = False
    sin_t.flags.writeable = False
    return cos_t, sin_t


class FFTEngine:
    """
    Complex in-place FFT for a fixed power-of-two size.

    Args:
        size: Transform length; must be a power of two.

    Raises:
        ConfigurationError: If ``size`` is not a power of two.
    """

    def __init__(self, size: int):
        if not is_power_of_two(size):
            raise ConfigurationError(f"FFT size must be a power of two, got {size}")
        self.size = size
        self._permutation = bit_reversal_table(size)
        # Stage spans 2, 4, ..., N
        self._stages = []
        length = 2
        while length <= size:
            self._stages.append((length, twiddle_factors(length)))
            length *= 2

    def transform(self, real: np.ndarray, imag: np.ndarray) -> None:
        """
        Transform ``real + 1j*imag`` in place.

        Both arrays must be contiguous, writable float arrays of length ``size``.
        """
        if real.shape != (self.size,) or imag.shape != (self.size,):
            raise ValueError(
                f"Expected arrays of length {self.size}, got {real.shape} and {imag.shape}"
            )
        if not (real.flags.c_contiguous and imag.flags.c_contiguous):
            raise ValueError("FFT buffers must be C-contiguous")

        real[:] = real[self._permutation]
        imag[:] = imag[self._permutation]

        for length, (cos_t, sin_t) in self._stages:
            half = length // 2
            re = real.reshape(-1, length)
            im = imag.reshape(-1, length)
            even_re, odd_re = re[:, :half], re[:, half:]
            even_im, odd_im = im[:, :half], im[:, half:]

            t_re = cos_t * odd_re - sin_t * odd_im
            t_im = cos_t * odd_im + sin_t * odd_re

            odd_re[...] = even_re - t_re
            odd_im[...] = even_im - t_im
            even_re += t_re
            even_im += t_im

    def spectrum(self, frame: np.ndarray) -> SpectralFrame:
        """
        Transform a real time-domain frame and keep the first ``size // 2`` bins.

        Args:
            frame: Real samples of length ``size`` (already windowed and padded).

        Returns:
            SpectralFrame with magnitude, phase and power.
        """
        real = np.array(frame, dtype=np.float64, copy=True)
        imag = np.zeros(self.size, dtype=np.float64)
        self.transform(real, imag)

        n_bins = self.size // 2
        re = real[:n_bins]
        im = imag[:n_bins]
        magnitude = np.sqrt(re * re + im * im).astype(np.float32)
        phase = np.arctan2(im, re).astype(np.float32)
        return SpectralFrame.from_arrays(magnitude, phase)
