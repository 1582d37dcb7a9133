"""I/O utilities: composition tables and YAML config loaders.

Parsing is kept pure: ``parse_tabular_input`` returns the parsed element
specs together with per-row warnings and never logs or prints. Callers
(``ladle.api``) decide how to surface the warnings.
"""
from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .engine import SolverConfig
from .errors import InvalidInput
from .models import ElementSpec

logger = logging.getLogger(__name__)

# header tokens, matched case-insensitively by substring
NAME_TOKEN = "element"
CURRENT_TOKEN = "initial"
TARGET_TOKEN = "final"


@dataclass(frozen=True)
class ParseWarning:
    row: int        # 1-based data row number (header is row 0)
    message: str

    def __str__(self) -> str:
        return f"Skipping invalid row {self.row}: {self.message}"


@dataclass
class ParseResult:
    specs: List[ElementSpec] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)


def clean_cell(value: Any) -> str:
    """Drop double quotes and surrounding spaces/tabs."""
    if value is None:
        return ""
    return str(value).replace('"', "").strip(" \t")


def parse_percentage(text: str) -> float:
    """'14.79%' -> 14.79; raises ValueError on anything non-numeric."""
    cleaned = clean_cell(text).replace("%", "")
    if not cleaned:
        raise ValueError("empty value")
    value = float(cleaned)
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {text!r}")
    return value


def find_columns(header: Sequence[Any]) -> Dict[str, int]:
    """Locate name/current/target columns in a header row.

    A cell containing 'element' wins over 'initial', which wins over 'final';
    when several cells match the same token the last one is used.
    """
    cols: Dict[str, int] = {}
    for i, cell in enumerate(header):
        h = clean_cell(cell).lower()
        if NAME_TOKEN in h:
            cols["name"] = i
        elif CURRENT_TOKEN in h:
            cols["current"] = i
        elif TARGET_TOKEN in h:
            cols["target"] = i
    missing = [k for k in ("name", "current", "target") if k not in cols]
    if missing:
        raise InvalidInput(
            f"Required columns not found in header {list(header)}: missing {', '.join(missing)} "
            f"(expected headers containing '{NAME_TOKEN}', '{CURRENT_TOKEN}', '{TARGET_TOKEN}')"
        )
    return cols


def parse_tabular_input(rows: Sequence[Sequence[Any]]) -> ParseResult:
    """Turn raw table rows (header first) into element specs plus row warnings.

    Raises:
        InvalidInput: fewer than two rows, or a required column is missing
    """
    rows = list(rows or [])
    if len(rows) < 2:
        raise InvalidInput("Table must contain at least a header row and one data row")

    cols = find_columns(rows[0])
    result = ParseResult()
    for i, row in enumerate(rows[1:], start=1):
        cells = [clean_cell(c) for c in (row or [])]
        if not any(cells):
            continue
        try:
            name = cells[cols["name"]]
            current = parse_percentage(cells[cols["current"]])
            target = parse_percentage(cells[cols["target"]])
        except IndexError:
            result.warnings.append(ParseWarning(i, f"expected at least {max(cols.values()) + 1} cells, got {len(cells)}"))
            continue
        except ValueError as e:
            result.warnings.append(ParseWarning(i, str(e)))
            continue
        if not name:
            result.warnings.append(ParseWarning(i, "empty element name"))
            continue
        result.specs.append(ElementSpec(name, current, target))
    return result


def read_table(filepath: str | Path) -> List[List[str]]:
    """Read a comma-separated file into rows of raw strings.

    Ragged rows are kept as-is so the parser can report them row by row.
    Undecodable bytes become U+FFFD, so a bad cell fails in the parser as a
    row warning instead of aborting the whole read.
    """
    p = Path(filepath)
    if not p.exists():
        raise FileNotFoundError(f"Unable to open file: {filepath}")
    with p.open("r", encoding="utf-8-sig", errors="replace", newline="") as fh:
        return [list(row) for row in csv.reader(fh)]


def safe_yaml_load(filepath: str | Path, default=None):
    """Safe YAML loader: returns default when file missing or invalid."""
    try:
        p = Path(filepath)
        with p.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or default
    except FileNotFoundError:
        logger.warning("YAML file not found: %s, returning default", filepath)
        return default
    except Exception as e:
        logger.error("Error reading YAML %s: %s", filepath, e)
        return default


def _coerce(key: str, value: Any, kind: type) -> Any:
    if kind is str:
        return str(value).strip()
    try:
        if kind is int:
            f = float(value)
            if f != int(f):
                raise ValueError
            return int(f)
        return float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInput(f"Config '{key}' must be {kind.__name__}, got {value!r}") from None


def load_solver_config(
    filepath: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SolverConfig:
    """Defaults <- YAML file (top level or under 'solver:') <- overrides (None ignored)."""
    defaults = SolverConfig()
    kinds = {f.name: type(getattr(defaults, f.name)) for f in fields(SolverConfig)}
    merged: Dict[str, Any] = {}

    if filepath:
        raw = safe_yaml_load(filepath, default={}) or {}
        if isinstance(raw, dict) and isinstance(raw.get("solver"), dict):
            raw = raw["solver"]
        if not isinstance(raw, dict):
            raise InvalidInput(f"Config {filepath} must contain a mapping, got {type(raw).__name__}")
        merged.update(raw)
        logger.debug("Loaded solver config from %s: %s", filepath, raw)

    for k, v in (overrides or {}).items():
        if v is not None:
            merged[k] = v

    unknown = sorted(set(merged) - set(kinds))
    if unknown:
        raise InvalidInput(f"Unknown solver config keys: {unknown}; expected {sorted(kinds)}")

    values = {k: _coerce(k, v, kinds[k]) for k, v in merged.items()}
    return SolverConfig(**values).validate()


__all__ = [
    "ParseWarning",
    "ParseResult",
    "clean_cell",
    "parse_percentage",
    "find_columns",
    "parse_tabular_input",
    "read_table",
    "safe_yaml_load",
    "load_solver_config",
]
