"""Command-line entry point for the abalone OLS/WLS comparison."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Sequence, TypeVar

from wls_analysis import pipeline
from wls_analysis.weights import WeightStrategy

T = TypeVar("T")

STRATEGY_CHOICES = [strategy.label for strategy in WeightStrategy]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fit OLS and weighted least squares refits of rings on length.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--data-path",
        type=Path,
        default=None,
        help="Path to the headerless abalone.data file (defaults to data/abalone.data).",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        default=None,
        help="Root directory for run outputs (defaults to outputs/).",
    )
    parser.add_argument(
        "--strategies",
        nargs="+",
        choices=STRATEGY_CHOICES,
        default=STRATEGY_CHOICES,
        help="Weighting strategies to refit with.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser.parse_args(argv)


def run_with_guard(label: str, func: Callable[..., T], *args, **kwargs) -> T:
    """Execute a callable and re-wrap analysis errors with actionable messages."""

    try:
        return func(*args, **kwargs)
    except FileNotFoundError as exc:
        missing = getattr(exc, "filename", None) or str(exc)
        raise SystemExit(f"[{label}] Missing file: {missing}") from exc
    except ValueError as exc:
        raise SystemExit(f"[{label}] Failed with {type(exc).__name__}: {exc}") from exc


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    out_dir = run_with_guard(
        "wls",
        pipeline.run,
        output_root=args.output_root,
        data_path=args.data_path,
        strategies=args.strategies,
    )
    print(f"Outputs written to {out_dir}")


if __name__ == "__main__":
    main()
