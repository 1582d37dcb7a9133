"""Reporting helpers: pandas tables and CSV files built from the iteration trace."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Sequence

import pandas as pd

from .models import Element, IterationSnapshot

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "Iteration",
    "Element",
    "Current %",
    "Target %",
    "Addition (kg)",
    "New Total Weight (kg)",
]
ITERATION_COLUMNS = [
    "Element",
    "Current %",
    "Target %",
    "Current Weight (kg)",
    "Addition (kg)",
]
FLOAT_FORMAT = "%.2f"


def summary_frame(snapshots: Sequence[IterationSnapshot]) -> pd.DataFrame:
    """One row per element per iteration; elements without an addition show 0.0."""
    rows = []
    for snap in snapshots:
        for el in snap.elements:
            rows.append([
                snap.iteration,
                el.name,
                el.current_percentage,
                el.target_percentage,
                snap.addition_for(el.name),
                snap.total_weight,
            ])
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def iteration_frame(snapshot: IterationSnapshot) -> pd.DataFrame:
    rows = [
        [el.name, el.current_percentage, el.target_percentage, el.current_weight, snapshot.addition_for(el.name)]
        for el in snapshot.elements
    ]
    return pd.DataFrame(rows, columns=ITERATION_COLUMNS)


def additions_frame(snapshots: Sequence[IterationSnapshot]) -> pd.DataFrame:
    """Total added per element over the whole run (only elements that received material)."""
    totals = {}
    for snap in snapshots:
        for name, amount in snap.additions:
            totals[name] = totals.get(name, 0.0) + amount
    s = pd.Series(totals, dtype=float, name="Addition (kg)")
    s.index.name = "Element"
    return s.to_frame()


def write_iteration_data(
    snapshots: Sequence[IterationSnapshot],
    out_dir: str | Path = "output",
    base_name: str = "steel_additions",
) -> List[Path]:
    """Write <base>_summary.csv and one <base>_iteration_<n>.csv per snapshot."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []

    summary_path = out / f"{base_name}_summary.csv"
    summary_frame(snapshots).to_csv(summary_path, index=False, float_format=FLOAT_FORMAT)
    written.append(summary_path)

    for snap in snapshots:
        path = out / f"{base_name}_iteration_{snap.iteration}.csv"
        iteration_frame(snap).to_csv(path, index=False, float_format=FLOAT_FORMAT)
        with path.open("a", encoding="utf-8", newline="") as fh:
            fh.write(f"\nTotal Weight:,{snap.total_weight:.2f} kg\n")
        written.append(path)

    logger.info("Wrote %d report file(s) to %s", len(written), out)
    return written


def composition_lines(elements: Iterable[Element]) -> List[str]:
    """'Chromium: 14.79% (Target: 17.00%)' lines for console output."""
    return [
        f"{el.name}: {el.current_percentage:.2f}% (Target: {el.target_percentage:.2f}%)"
        for el in elements
    ]


__all__ = [
    "SUMMARY_COLUMNS",
    "ITERATION_COLUMNS",
    "summary_frame",
    "iteration_frame",
    "additions_frame",
    "write_iteration_data",
    "composition_lines",
]
