"""Windowed, overlapped, zero-padded frame assembly."""

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.windows import WindowLibrary


class FrameBuilder:
    """
    Turns consecutive sample blocks into analysis frames.

    When ``hop_size < fft_size`` the tail of the previous frame
    (``fft_size - hop_size`` samples) is carried to the head of
    the next one and new samples fill the rest.  Otherwise each call starts
    from scratch.  Short input is zero-filled; samples beyond the available
    space are ignored.

    Args:
        config: Analysis configuration.
    """

    def __init__(self, config: AnalysisConfig):
        self.fft_size = config.fft_size
        self.padded_size = config.padded_size
        self.overlap_samples = config.overlap_samples
        self.window_function = config.window_function
        self.windows = WindowLibrary(config.fft_size, config.kaiser_beta)

        self._input = np.zeros(self.fft_size, dtype=np.float64)
        self._tail = np.zeros(self.overlap_samples, dtype=np.float64)

    @property
    def window(self) -> np.ndarray:
        return self.windows[self.window_function]

    @property
    def new_samples_per_frame(self) -> int:
        """How many fresh samples one frame can take."""
        return self.fft_size - self.overlap_samples

    def build(self, samples) -> np.ndarray:
        """
        Assemble the next frame.

        Args:
            samples: 1-D mono samples (any length).

        Returns:
            New float64 array of length ``padded_size``: windowed frame
            followed by zero padding.
        """
        samples = np.asarray(samples, dtype=np.float64).ravel()
        ov = self.overlap_samples

        self._input[:ov] = self._tail
        n = min(len(samples), self.fft_size - ov)
        self._input[ov:ov + n] = samples[:n]
        self._input[ov + n:] = 0.0

        if ov:
            self._tail[:] = self._input[self.fft_size - ov:]

        frame = np.zeros(self.padded_size, dtype=np.float64)
        frame[:self.fft_size] = self.windows.apply(self.window_function, self._input)
        return frame

    def reset(self):
        """Forget the carried overlap."""
        self._input[:] = 0.0
        self._tail[:] = 0.0
