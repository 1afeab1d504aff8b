"""
Spectrascope per-frame benchmark.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default  — fft 4096 (x2 padding), 10 warm-up + 200 timed frames
    --quick  — fft 2048 (x2 padding), 5 warm-up + 50 timed frames (CI-friendly)

Output: per-stage timing table and the real-time budget check.  A frame is
within budget when a full cycle finishes before the next block of samples
arrives (``frame_advance / sample_rate`` seconds).
"""

import argparse
import sys
import time
from typing import Dict, List

import numpy as np

from spectrascope.core.config import AnalysisConfig
from spectrascope.features.base import ExtractionContext
from spectrascope.pipeline import AnalysisPipeline

_SEP = "─" * 72


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.2f} ms  p95={np.percentile(arr, 95)*1000:.2f} ms  max={arr.max()*1000:.2f} ms"


def _test_signal(config: AnalysisConfig, n_blocks: int) -> np.ndarray:
    """Chord plus noise, long enough for ``n_blocks`` frames."""
    n = config.frame_advance * n_blocks
    t = np.arange(n) / config.sample_rate
    rng = np.random.RandomState(0)
    y = sum(0.2 * np.sin(2 * np.pi * f * t) for f in (261.63, 329.63, 392.00))
    return (y + 0.01 * rng.randn(n)).astype(np.float32)


def _stage_times(pipeline: AnalysisPipeline, blocks: List[np.ndarray]) -> Dict[str, List[float]]:
    """Time framing+FFT and every extractor separately, one block at a time."""
    times: Dict[str, List[float]] = {"framing+fft": []}
    for extractor in pipeline.extractors:
        times[extractor.name] = []

    for block in blocks:
        t0 = time.perf_counter()
        spectrum = pipeline._fft.spectrum(pipeline._framer.build(block))
        times["framing+fft"].append(time.perf_counter() - t0)

        context = ExtractionContext(
            config=pipeline.config, banks=pipeline.filter_banks, history=pipeline.history,
        )
        for extractor in pipeline.extractors:
            t0 = time.perf_counter()
            context.results.update(extractor.extract(spectrum, context))
            times[extractor.name].append(time.perf_counter() - t0)
    return times


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Spectrascope per-frame benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Use fft 2048 and fewer frames for fast CI runs",
    )
    args = parser.parse_args()

    if args.quick:
        config = AnalysisConfig(fft_size=2048, hop_size=512)
        WARMUP, RUNS = 5, 50
        label = "fft 2048 (quick mode)"
    else:
        config = AnalysisConfig()
        WARMUP, RUNS = 10, 200
        label = "fft 4096 (full mode)"

    budget = config.frame_advance / config.sample_rate
    print(f"\nSpectrascope Benchmark  —  {label}")
    print(f"Bins: {config.n_bins}  |  Frame advance: {config.frame_advance} samples")
    print(f"Real-time budget per frame: {budget*1000:.2f} ms")

    signal = _test_signal(config, WARMUP + RUNS)
    blocks = [
        signal[i * config.frame_advance:(i + 1) * config.frame_advance]
        for i in range(WARMUP + RUNS)
    ]

    # ------------------------------------------------------------------
    # 1. Pipeline construction (filter banks + templates)
    # ------------------------------------------------------------------
    _hdr("1. Pipeline construction")
    t0 = time.perf_counter()
    pipeline = AnalysisPipeline(config)
    print(f"  {(time.perf_counter() - t0)*1000:.1f} ms")

    # ------------------------------------------------------------------
    # 2. Full cycle
    # ------------------------------------------------------------------
    _hdr("2. AnalysisPipeline.process")
    for block in blocks[:WARMUP]:
        pipeline.process(block)
    cycle = []
    for block in blocks[WARMUP:]:
        t0 = time.perf_counter()
        pipeline.process(block)
        cycle.append(time.perf_counter() - t0)
    print(f"  {_stats(cycle)}")

    # ------------------------------------------------------------------
    # 3. Per-stage breakdown
    # ------------------------------------------------------------------
    _hdr("3. Per-stage breakdown")
    pipeline.reset()
    stages = _stage_times(pipeline, blocks[WARMUP:])
    name_w = max(len(name) for name in stages) + 2
    print(f"  {'Stage':<{name_w}} Time (ms, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, times in stages.items():
        print(f"  {name:<{name_w}} {np.mean(times)*1000:.3f}")

    # ------------------------------------------------------------------
    # Budget check
    # ------------------------------------------------------------------
    _hdr("Real-time budget")
    p95 = float(np.percentile(cycle, 95))
    if p95 <= budget:
        print(f"  p95 {p95*1000:.2f} ms <= {budget*1000:.2f} ms  [PASS]")
        print(f"\n{_SEP}\n")
    else:
        print(f"  p95 {p95*1000:.2f} ms > {budget*1000:.2f} ms  [FAIL]")
        print(f"\n{_SEP}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
