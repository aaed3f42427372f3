"""Command-line interface for GC trace peak detection."""
import argparse
import csv
import dataclasses
import logging
from pathlib import Path
from typing import List, Optional

from .analysis import analyze_trace
from .composition import classify, normalize_name, parse_reading
from .config import analysis_config_from_dict, load_config, mixtures_from_dict
from .io_utils import TraceFormatError, load_trace_json
from .plotting import PEAK_FIELDS, build_peak_table, plot_analysis


def write_csv(peaks, path: Path):
    """Write detected peaks to CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=PEAK_FIELDS)
        writer.writeheader()
        for row in build_peak_table(peaks):
            writer.writerow(row)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Detect peaks in a GC detector trace.")
    parser.add_argument("input", help="Trace JSON with a single detector's 'values' array")
    parser.add_argument("-c", "--config", type=Path, help="YAML/JSON configuration file")
    parser.add_argument(
        "--scales",
        type=float,
        nargs="+",
        default=None,
        help="Kernel scales in samples (default: 5 10 20 40 80)",
    )
    parser.add_argument(
        "--sigma-multiplier",
        type=float,
        default=None,
        help="Noise threshold as a multiple of the baseline std (negative)",
    )
    parser.add_argument(
        "--grouping-constant",
        type=float,
        default=None,
        help="Merge radius as a multiple of the mean scale",
    )
    parser.add_argument(
        "--min-group-radius",
        type=float,
        default=None,
        help="Minimum merge radius (samples)",
    )
    parser.add_argument(
        "--baseline-samples",
        type=int,
        default=None,
        help="Leading samples used to estimate the noise threshold",
    )
    parser.add_argument(
        "--smoothing-window",
        type=int,
        default=None,
        help="Moving average window (points). 0 disables.",
    )
    parser.add_argument("--reading", help="Component concentrations, e.g. 'R32 0.5, R125 0.5'")
    parser.add_argument("--origin", help="Reference mixture to classify the reading against")
    parser.add_argument("--plot", type=Path, help="Save plot to PNG")
    parser.add_argument("--csv", type=Path, help="Save peaks table to CSV")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    args = parser.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = load_config(args.config)
    config = analysis_config_from_dict(settings.get("detector"))
    overrides = {
        "scales": tuple(args.scales) if args.scales else None,
        "sigma_multiplier": args.sigma_multiplier,
        "grouping_constant": args.grouping_constant,
        "min_group_radius": args.min_group_radius,
        "baseline_samples": args.baseline_samples,
        "smoothing_window": args.smoothing_window,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    try:
        values = load_trace_json(args.input)
    except TraceFormatError as exc:
        parser.error(f"{args.input}: {exc}")

    result = analyze_trace(values, config)

    print(f"Detected {len(result.peaks)} peaks | threshold ~ {result.threshold:.3g}")
    for p in result.sorted_peaks():
        print(
            f"{p.position:10.1f}  height={p.height:10.4g}  "
            f"width={p.width:8.3f}  prominence={p.prominence:10.4g}"
        )

    if args.reading:
        if not args.origin:
            parser.error("--reading requires --origin")
        library = mixtures_from_dict(settings.get("mixtures"))
        origin = normalize_name(args.origin)
        if origin not in library:
            parser.error(f"Unknown mixture '{args.origin}'")
        print(classify(parse_reading(args.reading), library[origin], library))

    if args.csv:
        write_csv(result.peaks, args.csv)
        print(f"Saved peaks to {args.csv}")

    if args.plot:
        fig = plot_analysis(result, show_smoothed=config.smoothing_window > 1)
        args.plot.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(args.plot, dpi=150)
        print(f"Saved plot to {args.plot}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
