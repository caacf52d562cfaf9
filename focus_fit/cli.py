"""Command-line interface entry points for focus_fit."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

import numpy as np

from .errors import FocusFitError
from .fit import FitResult, fit_scan
from .functions import FunctionType, Gaussian
from .io import read_scan

__all__ = ["main"]

LOGGER = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(levelname)s:%(name)s:%(message)s")

    if args.command == "fit":
        return _cmd_fit(args)
    parser.error("Unknown command")
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="focus_fit",
        description="Fit a polynomial or Gaussian to a scan and locate its maximum.",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        help="Set logging level (debug, info, warning, error, critical).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    fit = subparsers.add_parser(
        "fit",
        help="Fit a scan export and report the position of the maximum",
    )
    fit.add_argument("--input", type=Path, required=True, help="Path to scan JSON/CSV")
    fit.add_argument(
        "--function",
        choices=[member.value for member in FunctionType],
        default=FunctionType.GAUSSIAN.value,
        help="Function to fit (default: gaussian)",
    )
    fit.add_argument(
        "--guess",
        type=float,
        nargs=3,
        metavar=("NORM", "MEAN", "SIGMA"),
        help="Initial Gaussian parameters",
    )
    fit.add_argument("--json", action="store_true", help="Print the result as JSON")
    fit.add_argument("--export-json", type=Path, help="Write the result to a JSON file")

    return parser


def _param_names(result: FitResult) -> list[str]:
    if isinstance(result.function, Gaussian):
        return ["norm", "mean", "sigma"]
    return [f"c{power}" for power in range(result.function.arity)]


def _result_to_json_ready(result: FitResult) -> dict[str, object]:
    return {
        "function": result.function.name,
        "params": dict(zip(_param_names(result), np.asarray(result.params, dtype=float).tolist())),
        "max_x": float(result.max_x),
        "rms_error": float(result.rms_error),
        "fitted": result.fitted.to_dict(),
    }


def _format_report(result: FitResult, source: str) -> str:
    header = f"{'Parameter':<20}{'Value':>14}"
    divider = "-" * len(header)
    lines = [
        f"Source: {source}",
        f"Function: {result.function.name}",
        header,
        divider,
    ]
    for name, value in zip(_param_names(result), result.params):
        lines.append(f"{name:<20}{value:>14.6e}")
    lines.extend(
        [
            divider,
            f"{'Maximum at x':<20}{result.max_x:>14.6e}",
            f"{'RMS error':<20}{result.rms_error:>14.6e}",
        ]
    )
    return "\n".join(lines)


def _cmd_fit(args: argparse.Namespace) -> int:
    try:
        series = read_scan(args.input)
        result = fit_scan(series, FunctionType(args.function), args.guess)
    except FocusFitError as exc:
        LOGGER.error("Fit of %s failed: %s", args.input, exc)
        return 1

    payload = _result_to_json_ready(result)
    payload["metadata"] = series.metadata

    if args.json:
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        print(_format_report(result, str(args.input)))

    if args.export_json:
        args.export_json.parent.mkdir(parents=True, exist_ok=True)
        args.export_json.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return 0
