"""
Real-time chunk accumulator in front of the analysis pipeline.

Architecture Overview
---------------------
::

    Audio Device callback
        │
        ▼  (arbitrary chunk sizes, e.g. 256 / 512 / 1 024 samples)
    RealtimeAnalyzer.process_chunk(chunk)
        │
        ├─► accumulator (grows until one frame advance is available)
        │
        ├─► AnalysisPipeline.process(block)   (once per full block)
        │        └─► FeatureFrame
        │
        └─► latest FeatureFrame  (polled by the renderer)

Design Goals
------------
* **Decoupled block sizes**: device chunk size does not have to match the
  pipeline's frame advance.
* **Thread-safe**: process_chunk(), latest and flush() share one lock, so a
  PyAudio-style callback thread and a render thread can both use the object.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.core.frames import FeatureFrame
from spectrascope.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)


class RealtimeAnalyzer:
    """
    Feeds arbitrarily sized audio chunks into an :class:`AnalysisPipeline`.

    Parameters
    ----------
    config:
        Analysis configuration (default: ``AnalysisConfig()``).
    max_backlog_frames:
        Upper bound on frames produced by one call.  When a caller falls
        further behind, the oldest pending samples are dropped so the
        analysis catches up with live input (default: 8).
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        max_backlog_frames: int = 8,
    ):
        self.pipeline = AnalysisPipeline(config)
        self.max_backlog_frames = max_backlog_frames

        self._lock = threading.Lock()
        self._dropped_samples: int = 0
        self._pending = np.zeros(0, dtype=np.float32)
        self._latest: Optional[FeatureFrame] = None

    @property
    def block_size(self) -> int:
        return self.pipeline.block_size

    @property
    def latest(self) -> Optional[FeatureFrame]:
        """Most recent frame, or None before the first full block."""
        with self._lock:
            return self._latest

    @property
    def dropped_samples(self) -> int:
        """Samples discarded so far because the backlog was full."""
        with self._lock:
            return self._dropped_samples

    def process_chunk(self, chunk: np.ndarray) -> Optional[FeatureFrame]:
        """
        Append one audio chunk and analyze every complete block.

        Parameters
        ----------
        chunk:
            1-D float samples of any length.

        Returns
        -------
        FeatureFrame | None
            The newest frame produced by this call, or None when the
            accumulated samples do not yet fill a block.
        """
        chunk = np.asarray(chunk, dtype=np.float32).ravel()
        with self._lock:
            self._pending = np.concatenate([self._pending, chunk])

            block = self.block_size
            limit = block * self.max_backlog_frames
            if len(self._pending) > limit:
                overflow = len(self._pending) - limit
                self._dropped_samples += overflow
                self._pending = self._pending[overflow:]
                logger.warning("Analysis backlog: dropped %d samples", overflow)

            produced = None
            while len(self._pending) >= block:
                produced = self.pipeline.process(self._pending[:block])
                self._pending = self._pending[block:]

            if produced is not None:
                self._latest = produced
            return produced

    def flush(self) -> List[FeatureFrame]:
        """Analyze any buffered remainder (zero-filled) and return the frames."""
        with self._lock:
            frames = []
            if len(self._pending):
                frames.append(self.pipeline.process(self._pending))
                logger.debug("Flushed %d buffered samples", len(self._pending))
                self._pending = np.zeros(0, dtype=np.float32)
                self._latest = frames[-1]
            return frames

    def reconfigure(self, config: AnalysisConfig) -> None:
        with self._lock:
            self.pipeline.reconfigure(config)
            self._pending = np.zeros(0, dtype=np.float32)
            self._latest = None

    def reset(self) -> None:
        with self._lock:
            self.pipeline.reset()
            self._pending = np.zeros(0, dtype=np.float32)
            self._latest = None
            self._dropped_samples = 0
