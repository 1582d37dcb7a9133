# -*- coding: utf-8 -*-
"""
api.py
Central API between the command line and the core model.

- RunRequest dataclass describing one file-based run
- run_from_csv(...) reads the composition table, surfaces row warnings,
  runs the addition loop and optionally writes the CSV reports
- write_run_log(...) helper for simple JSON logs
"""

from __future__ import annotations
import os
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ladle.core.engine import SolverConfig
from ladle.core.io import parse_tabular_input, read_table
from ladle.core.report import write_iteration_data
from ladle.core.runner import RunOutputs, run_additions

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_WEIGHT = 1000.0
DEFAULT_OUT_DIR = "output"
DEFAULT_BASE_NAME = "steel_additions"


# ==============================
# Dataclasses
# ==============================
@dataclass
class RunRequest:
    """One file-based run.

    Args:
        input_path: CSV with element / initial % / final % columns
        total_weight: melt weight the initial percentages refer to (kg)
        config: solver settings; defaults when None
        out_dir: where to write report CSVs; nothing is written when None
        base_name: file prefix for the report CSVs
    """
    input_path: str
    total_weight: float = DEFAULT_TOTAL_WEIGHT
    config: Optional[SolverConfig] = None
    out_dir: Optional[str] = None
    base_name: str = DEFAULT_BASE_NAME


# ==============================
# Helpers
# ==============================
def write_run_log(log_dir: str, payload: Dict[str, Any]) -> str:
    """
    Write a compact JSON log (config + outcome). Returns the file path.

    Note:
        Log files are named with UTC timestamp: run_YYYYMMDDTHHMMSSZ.json
    """
    os.makedirs(log_dir, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    fname = f"run_{ts}.json"
    fpath = os.path.join(log_dir, fname)
    with open(fpath, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return fpath


def run_log_payload(req: RunRequest, out: RunOutputs) -> Dict[str, Any]:
    """Config, verdict and per-iteration additions, JSON-serializable."""
    return {
        "input": str(Path(req.input_path).resolve()),
        "total_weight": req.total_weight,
        "config": {k: v for k, v in out.meta.items() if k != "report_files"},
        "converged": out.converged,
        "iterations": out.iterations,
        "initial_weight_kg": out.initial_weight,
        "final_weight_kg": out.final_weight,
        "total_added_kg": out.total_added,
        "additions": [
            {"iteration": s.iteration, "additions": [[n, a] for n, a in s.additions]}
            for s in out.snapshots[1:]
        ],
        "warnings": [str(w) for w in out.warnings],
        "report_files": list(out.meta.get("report_files", [])),
    }


# ==============================
# Main API
# ==============================
def run_from_csv(req: RunRequest) -> RunOutputs:
    """
    Execute the addition loop for a composition CSV.
    Steps:
      1) Read the table and parse rows (bad rows are skipped with a warning)
      2) Build the composition and run the solver
      3) Write summary / per-iteration CSVs when an output directory is set

    Raises:
        FileNotFoundError: input file missing
        InvalidInput: unusable header, bad inputs or config
    """
    rows = read_table(req.input_path)
    parsed = parse_tabular_input(rows)
    for w in parsed.warnings:
        logger.warning("%s", w)
    logger.info("Successfully loaded %d elements from %s", len(parsed.specs), req.input_path)

    out = run_additions(parsed.specs, req.total_weight, req.config, warnings=parsed.warnings)

    if req.out_dir:
        paths = write_iteration_data(out.snapshots, req.out_dir, req.base_name)
        out.meta["report_files"] = [str(p) for p in paths]
    return out


__all__ = ["RunRequest", "run_from_csv", "run_log_payload", "write_run_log"]
