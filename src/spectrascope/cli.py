"""Command-line analysis of an audio file."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from spectrascope.core.config import WINDOW_TYPES, AnalysisConfig, ConfigurationError
from spectrascope.io.exporter import FeatureExporter
from spectrascope.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract per-frame spectral features from an audio file"
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, flac, ogg)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output JSON file (default: <audio>_features.json)",
    )

    parser.add_argument(
        "--npz",
        type=Path,
        default=None,
        help="Also write a compressed NumPy archive",
    )

    parser.add_argument(
        "--sample-rate",
        type=int,
        default=44100,
        help="Analysis sample rate; input is resampled (default: 44100)",
    )

    parser.add_argument(
        "--fft-size",
        type=int,
        default=4096,
        help="FFT frame size, power of two (default: 4096)",
    )

    parser.add_argument(
        "--hop-size",
        type=int,
        default=None,
        help="Hop size in samples; overrides --overlap (default: derived from --overlap)",
    )

    parser.add_argument(
        "--overlap",
        type=float,
        default=0.75,
        help="Fraction of each frame carried into the next (default: 0.75)",
    )

    parser.add_argument(
        "--window",
        choices=WINDOW_TYPES,
        default="hann",
        help="Window function (default: hann)",
    )

    parser.add_argument(
        "--max-duration",
        type=float,
        default=None,
        help="Only analyze the first N seconds",
    )

    parser.add_argument(
        "--precision",
        type=int,
        default=4,
        help="Decimal places in the JSON output (default: 4)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        return 1

    try:
        config = AnalysisConfig(
            sample_rate=args.sample_rate,
            fft_size=args.fft_size,
            hop_size=args.hop_size,
            overlap_ratio=args.overlap,
            window_function=args.window,
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    pipeline = AnalysisPipeline(config)
    try:
        frames = pipeline.analyze_file(args.audio, max_duration=args.max_duration)
    except Exception as exc:  # decoder errors come in many types
        logger.error("Could not analyze %s: %s", args.audio, exc)
        return 1

    output = args.output
    if output is None:
        output = args.audio.with_name(f"{args.audio.stem}_features.json")

    exporter = FeatureExporter(precision=args.precision)
    exporter.export_json(frames, config, output, source=args.audio.name)
    print(f"Wrote {len(frames)} frames to {output}")

    if args.npz is not None and frames:
        exporter.export_numpy(frames, args.npz)
        print(f"Wrote arrays to {args.npz}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
