"""Core runner: deterministic compute given parsed element specs.

This module provides a single entrypoint that accepts already-parsed inputs
(no file I/O), builds the composition, runs the addition loop and returns
structured results. The API layer is responsible for reading files, surfacing
parse warnings and writing reports.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .engine import AdditionSolver, SolverConfig
from .io import ParseWarning
from .models import Composition, ElementSpec, IterationSnapshot

logger = logging.getLogger(__name__)


@dataclass
class RunOutputs:
    """Results of one addition run.

    Attributes:
        snapshots: iteration trace, iteration 0 first
        converged: every non-balance element within tolerance at the end
        initial_weight: melt weight before any addition (after mass closure)
        final_weight: melt weight after the last pass
        warnings: row-level parse warnings carried from the loader
        meta: config and bookkeeping for logs
    """
    snapshots: List[IterationSnapshot]
    converged: bool
    initial_weight: float
    final_weight: float
    warnings: List[ParseWarning] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_added(self) -> float:
        return self.final_weight - self.initial_weight

    @property
    def iterations(self) -> int:
        return len(self.snapshots) - 1

    @property
    def final(self) -> IterationSnapshot:
        return self.snapshots[-1]


def run_additions(
    specs: Iterable[ElementSpec],
    total_weight: float,
    config: Optional[SolverConfig] = None,
    warnings: Optional[List[ParseWarning]] = None,
) -> RunOutputs:
    """Build the composition, run the solver and package the outcome.

    Raises:
        InvalidInput: bad weight/percentages/names, bad config, missing balance element
    """
    config = (config or SolverConfig()).validate()
    comp = Composition.from_specs(specs, total_weight)
    solver = AdditionSolver(comp, config)
    snapshots = solver.run()
    converged = solver.verify()

    out = RunOutputs(
        snapshots=snapshots,
        converged=converged,
        initial_weight=snapshots[0].total_weight,
        final_weight=snapshots[-1].total_weight,
        warnings=list(warnings or []),
        meta={
            "tolerance": config.tolerance,
            "dilution_buffer_factor": config.dilution_buffer_factor,
            "max_iterations": config.max_iterations,
            "balance_element": config.balance_element,
            "significance_floor": config.significance_floor,
            "elements": comp.names(),
        },
    )
    logger.debug("run_additions: %d iteration(s), converged=%s, added %.4f kg",
                 out.iterations, converged, out.total_added)
    return out


__all__ = ["RunOutputs", "run_additions"]
