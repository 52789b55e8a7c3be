#!/usr/bin/env python

"""Main entry point for running change point detection on a CSV file."""

import argparse
import copy
import logging
import sys
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

from seriesshift.changepoint import Algorithm, ChangePointEngine, DetectionResult
from seriesshift.configs import build_analysis, load_config
from seriesshift.utils import series_from_frame

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging with the specified log level."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def apply_cli_overrides(
    config: Dict[str, Any], args: argparse.Namespace
) -> Dict[str, Any]:
    """Apply command-line overrides to the configuration.

    Args:
        config: Original configuration dictionary
        args: Command-line arguments

    Returns:
        Updated configuration dictionary
    """
    updated_config = copy.deepcopy(config)

    if args.algorithm is not None:
        updated_config["algorithm"] = args.algorithm
        logger.info(f"Overriding algorithm: {args.algorithm}")

    if args.option:
        algorithm = updated_config.get("algorithm", Algorithm.MOVING_AVERAGE.value)
        options = updated_config.get("options") or {}
        updated_config["options"] = options
        if options and not set(options) <= {a.value for a in Algorithm}:
            target = options
        else:
            target = options.get(algorithm) or {}
            options[algorithm] = target
        for key, value in (parse_option(item) for item in args.option):
            target[key] = value
            logger.info(f"Overriding {algorithm} option {key}: {value}")

    if args.max_points is not None:
        updated_config["sampling"] = updated_config.get("sampling") or {}
        updated_config["sampling"]["max_points"] = args.max_points
        logger.info(f"Overriding max points: {args.max_points}")

    if args.sampling_method is not None:
        updated_config["sampling"] = updated_config.get("sampling") or {}
        updated_config["sampling"]["method"] = args.sampling_method
        logger.info(f"Overriding sampling method: {args.sampling_method}")

    if args.seed is not None:
        updated_config["sampling"] = updated_config.get("sampling") or {}
        updated_config["sampling"]["seed"] = args.seed
        logger.info(f"Overriding sampling seed: {args.seed}")

    if args.auto_sampling:
        updated_config.pop("sampling", None)
        logger.info("Using the sampling preset for the series length")

    return updated_config


def parse_option(item: str):
    """Parse a ``key=value`` override, reading the value as YAML."""
    key, sep, raw = item.partition("=")
    if not sep or not key:
        raise ValueError(f"Option override must look like key=value, got '{item}'")
    return key.strip(), yaml.safe_load(raw)


def print_analysis_report(result: DetectionResult) -> None:
    """Print a readable report of a detection run."""
    summary = result.summary
    series = result.series

    print("\n" + "=" * 60)
    print(f"Change point analysis ({summary.algorithm.value})")
    print("=" * 60)
    print(
        f"Points analysed: {series.sampled_size} of {series.original_size} "
        f"(sampling: {series.method.value}, ratio {series.sampling_ratio:.3f})"
    )
    print(f"Change points:   {summary.total_change_points}")
    print(f"Avg confidence:  {summary.average_confidence:.3f}")
    print("-" * 60)

    if not result.events:
        print("No change points detected.")
    else:
        print(f"{'index':>8} {'position':>16} {'value':>12} {'conf':>6}  type")
        for event in result.events:
            print(
                f"{event.original_index:>8} {event.position:>16.6g} "
                f"{event.value:>12.6g} {event.confidence:>6.3f}  "
                f"{event.change_type.value}"
            )

    print("-" * 60)
    print("Options:")
    for key, value in summary.algorithm_options.items():
        print(f"  {key}: {value}")
    print("=" * 60 + "\n")


def events_frame(result: DetectionResult) -> pd.DataFrame:
    """Flatten the events of a result into a table."""
    rows = []
    for event in result.events:
        row = event.to_dict()
        for side in ("before_stat", "after_stat"):
            for key, value in row.pop(side).items():
                row[f"{side.split('_')[0]}_{key}"] = value
        rows.append(row)
    return pd.DataFrame(rows)


def run_detection(
    input_file: str,
    value_column: str,
    position_column: Optional[str] = None,
    config_file: Optional[str] = None,
    cli_args: Optional[argparse.Namespace] = None,
) -> DetectionResult:
    """Run change point detection on one column of a CSV file.

    Args:
        input_file: Path to the CSV file
        value_column: Column holding the values
        position_column: Optional column to order by
        config_file: Path to the configuration file (default: packaged config)
        cli_args: Command-line arguments for overriding config values

    Returns:
        The detection result
    """
    logger.info(f"Using configuration file: {config_file or 'default'}")

    try:
        config = load_config(config_file)
        if cli_args:
            config = apply_cli_overrides(config, cli_args)
        analysis = build_analysis(config)

        frame = pd.read_csv(input_file)
        series = series_from_frame(frame, value_column, position_column)
        result = ChangePointEngine().analyze(
            series,
            algorithm=analysis.algorithm,
            options=analysis.options,
            sampling=analysis.sampling,
        )

        print_analysis_report(result)
        return result

    except Exception as e:
        logger.error(f"Error running detection: {str(e)}")
        raise


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect change points in one column of a CSV file."
    )
    parser.add_argument("input", type=str, help="Path to the CSV file")
    parser.add_argument(
        "-v",
        "--value-column",
        type=str,
        required=True,
        help="Column holding the values",
    )
    parser.add_argument(
        "-x",
        "--position-column",
        type=str,
        help="Column to order by (numbers or datetimes)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        help="Path to the configuration file",
    )
    parser.add_argument(
        "-ll",
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level",
    )
    parser.add_argument(
        "-a",
        "--algorithm",
        type=str,
        choices=[a.value for a in Algorithm],
        help="Detection algorithm",
    )
    parser.add_argument(
        "-o",
        "--option",
        action="append",
        metavar="KEY=VALUE",
        help="Override an option of the selected algorithm (repeatable)",
    )
    parser.add_argument(
        "--max-points",
        type=int,
        help="Maximum number of points kept by sampling",
    )
    parser.add_argument(
        "--sampling-method",
        type=str,
        choices=["uniform", "systematic", "stratified", "peak-preserving"],
        help="Sampling method",
    )
    parser.add_argument(
        "--auto-sampling",
        action="store_true",
        help="Choose the sampling preset from the series length",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for systematic sampling",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Write the detected events to this CSV file",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line interface."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        result = run_detection(
            args.input,
            args.value_column,
            position_column=args.position_column,
            config_file=args.config,
            cli_args=args,
        )
    except (OSError, ValueError) as e:
        logger.error(f"Detection failed: {e}")
        return 1

    if args.output:
        events_frame(result).to_csv(args.output, index=False)
        logger.info(f"Wrote {len(result.events)} events to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
