#!/usr/bin/env python3
"""
Ladle addition calculator CLI.

Reads a composition CSV (columns whose headers contain 'element', 'initial'
and 'final'), runs the addition loop and prints the additions per iteration.
Summary and per-iteration CSVs are written to --out unless --no-write.

    python -m ladle.cli.additions_cli --input steel_composition.csv --weight 1000

Solver settings come from defaults, then --config (YAML), then the explicit
flags (--tolerance, --buffer, --max-iterations, --balance).

Exit codes: 0 ok (also when not converged, unless --strict), 1 not converged
with --strict, 2 invalid input, 3 input file not found.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Iterable, Optional

from ladle.api import (
    DEFAULT_BASE_NAME,
    DEFAULT_OUT_DIR,
    DEFAULT_TOTAL_WEIGHT,
    RunRequest,
    run_from_csv,
    run_log_payload,
    write_run_log,
)
from ladle.core.errors import InvalidInput
from ladle.core.io import load_solver_config
from ladle.core.report import additions_frame, composition_lines
from ladle.core.runner import RunOutputs

DEFAULT_INPUT = "steel_composition.csv"
LOG_LEVEL_ENV = "LADLE_LOG_LEVEL"


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _print_report(out: RunOutputs, stream=None) -> None:
    stream = stream or sys.stdout
    first, last = out.snapshots[0], out.final

    print("\nInitial composition before additions:", file=stream)
    for line in composition_lines(first.elements):
        print(line, file=stream)

    print(f"\nCalculating additions for {out.initial_weight:.2f} kg batch:", file=stream)
    if len(out.snapshots) == 1:
        print("No additions needed.", file=stream)
    for snap in out.snapshots[1:]:
        print(f"Iteration {snap.iteration}:", file=stream)
        if not snap.additions:
            print("  (no additions)", file=stream)
        for name, amount in snap.additions:
            print(f"  Add {amount:.2f} kg of {name}", file=stream)

    print("\nFinal composition after additions:", file=stream)
    for line in composition_lines(last.elements):
        print(line, file=stream)

    totals = additions_frame(out.snapshots)
    if not totals.empty:
        print("\nTotal added per element:", file=stream)
        for name, row in totals.iterrows():
            print(f"  {name:20s} {float(row['Addition (kg)']):,.2f} kg", file=stream)

    print(f"\nTotal weight added: {out.total_added:.2f} kg", file=stream)
    print(f"Final batch weight: {out.final_weight:.2f} kg", file=stream)
    verdict = "within tolerance" if out.converged else f"NOT within tolerance after {out.iterations} iteration(s)"
    print(f"Composition {verdict}.", file=stream)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Compute raw-material additions to bring a melt to its target composition")
    p.add_argument("--input", "-i", default=DEFAULT_INPUT, help=f"Composition CSV (default: {DEFAULT_INPUT}).")
    p.add_argument("--weight", "-w", type=float, default=DEFAULT_TOTAL_WEIGHT, help="Melt weight in kg (default: 1000).")
    p.add_argument("--config", default=None, help="YAML file with solver settings.")
    p.add_argument("--tolerance", type=float, default=None, help="Accepted deviation in percentage points (default: 0.01).")
    p.add_argument("--buffer", dest="dilution_buffer_factor", type=float, default=None, help="Top-up multiplier (default: 1.05).")
    p.add_argument("--max-iterations", type=int, default=None, help="Iteration cap (default: 10).")
    p.add_argument("--balance", dest="balance_element", default=None, help="Balance element name (default: Iron).")
    p.add_argument("--out", default=DEFAULT_OUT_DIR, help=f"Output directory for CSVs (default: {DEFAULT_OUT_DIR}).")
    p.add_argument("--base-name", default=DEFAULT_BASE_NAME, help=f"Output file prefix (default: {DEFAULT_BASE_NAME}).")
    p.add_argument("--no-write", action="store_true", help="Do not write CSV reports.")
    p.add_argument("--log-dir", default=None, help="Directory to store a JSON log of the run.")
    p.add_argument("--strict", action="store_true", help="Exit with status 1 when not converged.")
    p.add_argument("--log-level", default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
                   help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING).")
    return p


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        config = load_solver_config(
            args.config,
            overrides={
                "tolerance": args.tolerance,
                "dilution_buffer_factor": args.dilution_buffer_factor,
                "max_iterations": args.max_iterations,
                "balance_element": args.balance_element,
            },
        )
        req = RunRequest(
            input_path=args.input,
            total_weight=args.weight,
            config=config,
            out_dir=None if args.no_write else args.out,
            base_name=args.base_name,
        )
        out = run_from_csv(req)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 3
    except InvalidInput as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    _print_report(out)

    if out.meta.get("report_files"):
        print(f"\nDetailed results have been written to the '{args.out}' directory.")
    if args.log_dir:
        path = write_run_log(args.log_dir, run_log_payload(req, out))
        print(f"Run log: {path}")

    if args.strict and not out.converged:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
