"""CLI main module with subcommands for apply, inspect, and validate.

Usage:
    python -m geoxform.cli apply --config chain.yaml --input in.csv --output out.csv
    python -m geoxform.cli inspect --config chain.yaml
    python -m geoxform.cli validate --config chain.yaml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np

from ..core.config import Settings, load_config, set_settings
from ..core.errors import GeoxformError
from ..core.logging import get_logger, setup_logging
from ..transform.base import MathTransform
from ..transform.factory import TransformFactory

logger = get_logger(__name__)

# Round-trip tolerance of the validate command, in target units
DEFAULT_TOLERANCE = 1e-6


def _build(config: Path) -> MathTransform:
    chain = load_config(config)
    return TransformFactory().from_config(chain)


def _read_points(path: Path, dimension: int) -> np.ndarray:
    points = np.loadtxt(path, delimiter=",", ndmin=2, comments="#")
    if points.shape[1] != dimension:
        raise GeoxformError(f"{path} has {points.shape[1]} columns, expected {dimension}")
    return points


def cmd_apply(args: argparse.Namespace) -> int:
    """Transform the CSV points of the input file and write them as CSV."""
    try:
        transform = _build(args.config)
        points = _read_points(args.input, transform.dim_source)
        out = np.empty((points.shape[0], transform.dim_target))
        failed = None
        try:
            transform.apply_points(points, out=out)
        except GeoxformError as e:
            failed = e

        if args.output is None:
            np.savetxt(sys.stdout, out, delimiter=",", fmt="%.10f")
        else:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            np.savetxt(args.output, out, delimiter=",", fmt="%.10f")
            print("Wrote", args.output, file=sys.stderr)

        if failed is not None:
            bad = int(np.isnan(out).any(axis=1).sum())
            print(f"Warning: {bad} point(s) failed, first error: {failed}", file=sys.stderr)
            return 3
        return 0
    except (GeoxformError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the dimensions and text form of a chain."""
    try:
        chain = load_config(args.config)
        transform = TransformFactory().from_config(chain)

        print("Chain Summary:")
        print("-" * 40)
        print("  Name:       ", chain.name or "(unnamed)")
        print("  Steps:      ", len(chain.steps))
        print("  Source dim: ", transform.dim_source)
        print("  Target dim: ", transform.dim_target)
        print("  Identity:   ", transform.is_identity())
        print()

        print("Transform:")
        print("-" * 40)
        print(" ", transform)
        return 0
    except (GeoxformError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _sample_points(transform: MathTransform, count: int) -> np.ndarray:
    """Sample points, geographic-looking when the source is 2-D or 3-D."""
    rng = np.random.default_rng(0)
    dim = transform.dim_source
    points = rng.uniform(-1.0, 1.0, size=(count, dim))
    if dim in (2, 3):
        points[:, 0] *= 2.0
        points[:, 1] = points[:, 1] * 2.0 + 45.0
    return points


def cmd_validate(args: argparse.Namespace) -> int:
    """Check that a chain round-trips through its inverse."""
    print("Validating chain:", args.config)
    try:
        transform = _build(args.config)
    except (GeoxformError, OSError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 2

    points = _sample_points(transform, args.samples)
    cases: list[tuple[str, str]] = []
    try:
        inverse = transform.invert()
        forward = transform.apply_points(points)
        back = inverse.apply_points(forward)
        error = float(np.max(np.abs(back - points)))
        status = "PASS" if error <= args.tolerance else "FAIL"
        cases.append((f"Round trip (max error {error:.3g})", status))
    except GeoxformError as e:
        logger.warning("Round trip failed", {"error": str(e)})
        cases.append((f"Round trip ({type(e).__name__})", "FAIL"))

    print("\nValidation Results:")
    print("-" * 40)
    for name, status in cases:
        print(f"  {name:30} {status}")
    print("-" * 40)

    if all(status == "PASS" for _, status in cases):
        print("\nAll validation cases passed")
        return 0
    print("\nSome validation cases failed")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geoxform",
        description="Coordinate transform CLI",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: GEOXFORM_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional JSON lines log file",
    )
    parser.add_argument(
        "--self-check",
        action="store_true",
        help="Verify projected points by running the inverse",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # Apply subcommand
    parser_apply = subparsers.add_parser(
        "apply",
        help="Transform points from a CSV file",
    )
    parser_apply.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON chain file",
    )
    parser_apply.add_argument(
        "--input",
        "-i",
        type=Path,
        required=True,
        help="CSV file with one point per line",
    )
    parser_apply.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output CSV file (default: stdout)",
    )
    parser_apply.set_defaults(func=cmd_apply)

    # Inspect subcommand
    parser_inspect = subparsers.add_parser(
        "inspect",
        help="Print dimensions and text form of a chain",
    )
    parser_inspect.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON chain file",
    )
    parser_inspect.set_defaults(func=cmd_inspect)

    # Validate subcommand
    parser_validate = subparsers.add_parser(
        "validate",
        help="Round-trip sample points through a chain and its inverse",
    )
    parser_validate.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON chain file",
    )
    parser_validate.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of sample points (default: 100)",
    )
    parser_validate.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help=f"Maximum round-trip error (default: {DEFAULT_TOLERANCE})",
    )
    parser_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    updates: dict[str, object] = {}
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.self_check:
        updates["self_check"] = True
    settings = Settings.model_validate({**settings.model_dump(), **updates})
    set_settings(settings)
    setup_logging(args.log_file, settings.log_level)

    return int(args.func(args) or 0)


if __name__ == "__main__":
    sys.exit(main())
