"""
Core package façade.

Submodules:
  - models: data structures (Element, Composition, IterationSnapshot)
  - engine: the addition loop (SolverConfig, AdditionSolver)
  - io: table parsing and YAML config loaders
  - report: pandas tables and CSV writers for the iteration trace
  - runner: single entrypoint from parsed specs to RunOutputs

Downstream code imports from `ladle.core.*` or from the re-exports below.
"""

from . import errors, models, engine, io, report, runner

from .errors import InvalidInput, ElementNotFound
from .models import Element, ElementSpec, Composition, IterationSnapshot
from .engine import SolverConfig, AdditionSolver
from .runner import RunOutputs, run_additions

__all__ = [
    "errors",
    "models",
    "engine",
    "io",
    "report",
    "runner",
    "InvalidInput",
    "ElementNotFound",
    "Element",
    "ElementSpec",
    "Composition",
    "IterationSnapshot",
    "SolverConfig",
    "AdditionSolver",
    "RunOutputs",
    "run_additions",
]
