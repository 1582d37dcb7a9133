"""
Core computation engine for the ladle addition calculator. The main class is 'AdditionSolver', which drives a melt from its measured composition toward the target composition by simulating additions of pure material, one element at a time, and records every pass.
Each pass first dilutes with the balance element (Iron by default) when some element overshoots its target, then tops up every element that is still short, then checks convergence. The balance element is never topped up directly; it only moves through dilution.
The solver is a pure calculation machine: no file I/O, no printing. Loading and reporting live in io/report.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import ElementNotFound, InvalidInput
from .models import Composition, IterationSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Tuning knobs for the addition loop.

    Args:
        tolerance: accepted |current % - target %| in percentage points; also the dilution trigger
        dilution_buffer_factor: multiplier on every top-up so later dilution does not pull the element back under target
        max_iterations: hard cap on passes; reaching it is reported as non-convergence, not raised
        balance_element: element used for dilution and never topped up directly
        significance_floor: top-ups at or below this amount (kg) are ignored
    """
    tolerance: float = 0.01
    dilution_buffer_factor: float = 1.05
    max_iterations: int = 10
    balance_element: str = "Iron"
    significance_floor: float = 0.01

    def validate(self) -> "SolverConfig":
        if not math.isfinite(self.tolerance) or self.tolerance < 0:
            raise InvalidInput(f"tolerance must be >= 0, got {self.tolerance}")
        if not math.isfinite(self.dilution_buffer_factor) or self.dilution_buffer_factor <= 0:
            raise InvalidInput(f"dilution_buffer_factor must be > 0, got {self.dilution_buffer_factor}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 0:
            raise InvalidInput(f"max_iterations must be a non-negative integer, got {self.max_iterations}")
        if not math.isfinite(self.significance_floor) or self.significance_floor < 0:
            raise InvalidInput(f"significance_floor must be >= 0, got {self.significance_floor}")
        if not (self.balance_element or "").strip():
            raise InvalidInput("balance_element cannot be empty")
        return self


class AdditionSolver:
    """Iterative addition loop over a Composition it owns for the run."""

    def __init__(self, composition: Composition, config: Optional[SolverConfig] = None):
        self.composition = composition
        self.config = (config or SolverConfig()).validate()
        self._snapshots: List[IterationSnapshot] = []
        self._initial_weight: Optional[float] = None

    @property
    def snapshots(self) -> Tuple[IterationSnapshot, ...]:
        return tuple(self._snapshots)

    def _adjustable(self):
        balance = self.config.balance_element
        return [e for e in self.composition if e.name != balance]

    def _outside_tolerance(self) -> List[str]:
        tol = self.config.tolerance
        return [
            e.name for e in self._adjustable()
            if abs(e.current_percentage - e.target_percentage) > tol
        ]

    def _check_ready(self) -> None:
        if len(self.composition) == 0:
            raise InvalidInput("Composition has no elements")
        if self.config.balance_element not in self.composition:
            raise ElementNotFound(
                f"Balance element '{self.config.balance_element}' not found in composition "
                f"(elements: {self.composition.names()})"
            )

    def _snapshot(self, iteration: int, additions: List[Tuple[str, float]]) -> IterationSnapshot:
        return IterationSnapshot(
            iteration=iteration,
            elements=self.composition.elements,
            additions=tuple(additions),
            total_weight=self.composition.total_weight,
        )

    def _dilution_needed(self) -> float:
        """Largest balance-element addition that brings every overshooting element down to target."""
        comp, tol = self.composition, self.config.tolerance
        needed = 0.0
        for el in self._adjustable():
            if el.current_percentage - el.target_percentage <= tol:
                continue
            if el.target_percentage <= 0.0:
                # no finite amount of dilution reaches a zero target
                logger.warning("%s is at %.4f%% with a 0%% target; cannot dilute to zero, skipping",
                               el.name, el.current_percentage)
                continue
            required_total = el.current_weight / (el.target_percentage / 100.0)
            needed = max(needed, required_total - comp.total_weight)
        return needed

    def step(self, iteration: int) -> Tuple[IterationSnapshot, bool]:
        """Run one pass on the current state.

        Returns the snapshot for this pass and whether another pass is needed
        (something was added or some element is still outside tolerance).
        """
        comp, cfg = self.composition, self.config
        additions: List[Tuple[str, float]] = []
        changed = False

        # 1-2) dilution with the balance element first; top-ups must see the diluted percentages
        dilution = self._dilution_needed()
        if dilution > cfg.tolerance:
            logger.info("Add %.2f kg of %s for dilution", dilution, cfg.balance_element)
            comp.add_weight(cfg.balance_element, dilution)
            additions.append((cfg.balance_element, dilution))
            changed = True
            comp.recompute_percentages()

        # 3) top-up, each against the running total weight
        for el in self._adjustable():
            live_pct = el.current_weight / comp.total_weight * 100.0
            if abs(live_pct - el.target_percentage) <= cfg.tolerance:
                continue
            target_weight = el.target_percentage / 100.0 * comp.total_weight
            if el.current_weight >= target_weight:
                continue
            addition = (target_weight - el.current_weight) * cfg.dilution_buffer_factor
            if addition > cfg.significance_floor:
                logger.info("Add %.2f kg of %s", addition, el.name)
                comp.add_weight(el.name, addition)
                additions.append((el.name, addition))
                changed = True

        # 4) one recompute after the whole top-up pass
        comp.recompute_percentages()

        # 5) dilution may have moved an element out of tolerance without any top-up
        outside = self._outside_tolerance()
        snap = self._snapshot(iteration, additions)
        logger.debug("Iteration %d: total %.4f kg, additions=%s, outside tolerance=%s",
                     iteration, comp.total_weight, additions, outside)
        return snap, bool(changed or outside)

    def run(self) -> List[IterationSnapshot]:
        """Iterate until converged or ``max_iterations`` passes; returns all snapshots.

        Raises:
            InvalidInput: empty composition or missing balance element
        """
        self._check_ready()
        comp, cfg = self.composition, self.config

        residual = comp.mass_residual()
        if abs(residual) > 1e-9 * max(1.0, comp.total_weight):
            comp.absorb_residual(cfg.balance_element)
            logger.warning("Element percentages do not sum to 100%%; %s absorbed %.4f kg to close the mass balance",
                           cfg.balance_element, residual)
        comp.recompute_percentages()

        self._initial_weight = comp.total_weight
        self._snapshots = [self._snapshot(0, [])]

        if self.verify():
            logger.info("Composition already within tolerance; no additions needed")
            return list(self._snapshots)

        iteration = 0
        needs_pass = True
        while needs_pass and iteration < cfg.max_iterations:
            iteration += 1
            snap, needs_pass = self.step(iteration)
            self._snapshots.append(snap)

        if self.verify():
            logger.info("Converged after %d iteration(s); total added %.2f kg", iteration, self.total_added())
        else:
            logger.warning("Not converged after %d iteration(s); outside tolerance: %s",
                           iteration, ", ".join(self._outside_tolerance()))
        return list(self._snapshots)

    def verify(self) -> bool:
        """True when every non-balance element is within tolerance of its target."""
        return not self._outside_tolerance()

    def total_added(self) -> float:
        if self._initial_weight is None:
            return 0.0
        return self.composition.total_weight - self._initial_weight


__all__ = ["SolverConfig", "AdditionSolver"]
