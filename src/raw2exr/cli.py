from __future__ import annotations

import argparse
from dataclasses import replace
import logging
import math
from pathlib import Path
import sys

from raw2exr.batch import BatchEnvironmentError, BatchSummary, normalize_dir_argument, run
from raw2exr.config import AppConfig, load_config
from raw2exr.utils.logging_utils import configure_logging


logger = logging.getLogger(__name__)


class UsageError(RuntimeError):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def _exposure_value(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid exposure multiplier: {text!r}") from None
    if not (math.isfinite(value) and value >= 0.0):
        raise argparse.ArgumentTypeError(f"exposure multiplier must be a finite non-negative number, got {text}")
    return value


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input_dir", help="Directory containing RAW files")
    parser.add_argument("--config", default=None, help="Optional YAML config")
    parser.add_argument("--out-dir", default=None, help="Output directory (default: <input_dir>/EXR)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Optional log file")


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="raw2exr",
        description="Batch convert RAW files in a directory to linear OpenEXR",
    )
    _add_common_arguments(parser)
    parser.add_argument(
        "--linear",
        action="store_true",
        help="Keep the decoder's gamma-encoded output (no conversion to linear)",
    )
    parser.add_argument(
        "--exposure",
        type=_exposure_value,
        default=None,
        help="Exposure multiplier; values other than 1.0 apply x/(1+x) tone compression (default: 1.0)",
    )
    parser.add_argument(
        "--gamma",
        choices=("srgb", "linear"),
        default=None,
        help="Decoder output curve (default: srgb)",
    )
    parser.add_argument(
        "--visible-area",
        action="store_true",
        help="Keep the decoder's default crop instead of the full sensor area",
    )
    return parser


def _build_full_sensor_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="raw2exr-full-sensor",
        description="Batch convert RAW files to full-sensor linear OpenEXR, margins included",
    )
    _add_common_arguments(parser)
    return parser


def _base_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config) if args.config else AppConfig()
    if args.out_dir:
        config.batch = replace(config.batch, output_dir=Path(args.out_dir).expanduser().resolve())
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = Path(args.log_file).expanduser().resolve()
    return config


def _general_config(args: argparse.Namespace) -> AppConfig:
    config = _base_config(args)
    conv = config.conversion
    if args.linear:
        conv = replace(conv, linearize=False)
    if args.exposure is not None:
        conv = replace(conv, exposure=args.exposure)
    if args.gamma is not None:
        conv = replace(conv, output_gamma=args.gamma)
    if args.visible_area:
        conv = replace(conv, full_sensor=False)
    config.conversion = conv
    return config


def _full_sensor_config(args: argparse.Namespace) -> AppConfig:
    config = _base_config(args)
    config.conversion = replace(
        config.conversion,
        full_sensor=True,
        output_gamma="linear",
        linearize=False,
        exposure=1.0,
        bright=1.0,
    )
    return config


def _print_summary(input_dir: str, summary: BatchSummary) -> None:
    if not summary.results:
        print(f"No RAW files found in directory: {normalize_dir_argument(input_dir)}")
        return

    print("Batch conversion completed!")
    print(f"Successfully converted: {summary.success_count} files")
    print(f"Failed conversions: {summary.fail_count} files")
    print(f"Output directory: {summary.output_dir}")
    for result in summary.results:
        if not result.ok:
            print(f"  failed: {result.input_path.name}: {result.message}")


def _execute(args: argparse.Namespace, config: AppConfig, require_rgb: bool) -> int:
    configure_logging(config.log_level, config.log_file)
    options = config.conversion_options(require_rgb=require_rgb)

    try:
        summary = run(
            args.input_dir,
            options,
            output_dir=config.batch.output_dir,
            extensions=config.batch.extensions,
            sort=config.batch.sort_inputs,
        )
    except BatchEnvironmentError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    _print_summary(args.input_dir, summary)
    return summary.exit_code


def _main(parser: argparse.ArgumentParser, argv: list[str] | None, full_sensor: bool) -> int:
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return 1

    try:
        config = _full_sensor_config(args) if full_sensor else _general_config(args)
        return _execute(args, config, require_rgb=full_sensor)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("fatal error")
        print(f"error: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    return _main(_build_parser(), argv, full_sensor=False)


def main_full_sensor(argv: list[str] | None = None) -> int:
    return _main(_build_full_sensor_parser(), argv, full_sensor=True)


if __name__ == "__main__":
    raise SystemExit(main())
