"""
Window function tables.

All windows are the symmetric variants (denominator ``N - 1``), matching the
frame builder's expectation that the first and last samples of a frame are
treated alike.  Tables are computed once per (name, size, beta) and shared as
read-only arrays.
"""

from functools import lru_cache
from typing import Dict

import numpy as np

from spectrascope.core.config import WINDOW_TYPES, ConfigurationError

# Five-term flat-top coefficients (a0..a4), signs alternate
FLATTOP_COEFFS = (0.21557895, 0.41663158, 0.277263158, 0.083578947, 0.006947368)

_I0_MAX_TERMS = 50
_I0_TOLERANCE = 1e-12


def bessel_i0(x):
    """
    Modified Bessel function of the first kind, order zero.

    Evaluated with the power series ``sum((x/2)^(2k) / (k!)^2)``, stopping
    per element after the first term smaller than 1e-12 (50 terms max).

    Args:
        x: Scalar or array argument.

    Returns:
        I0(x) with the same shape as ``x`` (a float for scalar input).
    """
    x = np.asarray(x, dtype=np.float64)
    total = np.ones_like(x)
    term = np.ones_like(x)
    active = np.ones(x.shape, dtype=bool)
    half = x / 2.0

    for k in range(1, _I0_MAX_TERMS + 1):
        term = np.where(active, term * (half / k) ** 2, term)
        total = np.where(active, total + term, total)
        active &= term >= _I0_TOLERANCE
        if not active.any():
            break

    if total.ndim == 0:
        return float(total)
    return total


def _compute_window(name: str, size: int, beta: float) -> np.ndarray:
    if size == 1:
        return np.ones(1)

    n = np.arange(size, dtype=np.float64)
    denom = size - 1
    phase = 2.0 * np.pi * n / denom

    if name == "hann":
        return 0.5 * (1.0 - np.cos(phase))
    if name == "hamming":
        return 0.54 - 0.46 * np.cos(phase)
    if name == "blackman":
        return 0.42 - 0.5 * np.cos(phase) + 0.08 * np.cos(2.0 * phase)
    if name == "kaiser":
        centered = 2.0 * (n - denom / 2.0) / denom
        arg = beta * np.sqrt(np.clip(1.0 - centered ** 2, 0.0, None))
        return bessel_i0(arg) / bessel_i0(beta)
    if name == "flattop":
        a0, a1, a2, a3, a4 = FLATTOP_COEFFS
        return (
            a0
            - a1 * np.cos(phase)
            + a2 * np.cos(2.0 * phase)
            - a3 * np.cos(3.0 * phase)
            + a4 * np.cos(4.0 * phase)
        )
    if name == "rectangular":
        return np.ones(size)

    raise ConfigurationError(f"Unknown window type {name!r}")


@lru_cache(maxsize=64)
def get_window(name: str, size: int, beta: float = 8.6) -> np.ndarray:
    """
    Return the cached, read-only coefficient table for a window.

    Args:
        name: One of ``WINDOW_TYPES``.
        size: Window length in samples.
        beta: Kaiser shape parameter (ignored by the other windows).

    Returns:
        float64 array of length ``size``.
    """
    if name not in WINDOW_TYPES:
        raise ConfigurationError(f"Unknown window type {name!r}")
    if size <= 0:
        raise ConfigurationError(f"Window size must be positive, got {size}")

    table = _compute_window(name, size, float(beta))
    table.flags.writeable = False
    return table


class WindowLibrary:
    """Precomputed window tables for a single frame size."""

    def __init__(self, size: int, beta: float = 8.6):
        self.size = size
        self.beta = beta
        self._tables: Dict[str, np.ndarray] = {
            name: get_window(name, size, beta) for name in WINDOW_TYPES
        }

    def __getitem__(self, name: str) -> np.ndarray:
        try:
            return self._tables[name]
        except KeyError:
            raise ConfigurationError(f"Unknown window type {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._tables

    def apply(self, name: str, frame: np.ndarray) -> np.ndarray:
        """Multiply ``frame`` by the named window and return the product."""
        return frame * self[name]
