"""Models and core data structures.

Composition is the live melt state the solver mutates. Elements are frozen so
that every IterationSnapshot holds its own copy of the state; the composition
swaps in a new Element whenever a weight or a percentage changes.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from .errors import ElementNotFound, InvalidInput


@dataclass(frozen=True)
class ElementSpec:
    """One parsed input row: name, initial % and final (target) %."""
    name: str
    current_percentage: float
    target_percentage: float


@dataclass(frozen=True)
class Element:
    name: str
    current_percentage: float   # derived from weight / total weight
    target_percentage: float
    current_weight: float       # mass units (kg)


@dataclass(frozen=True)
class IterationSnapshot:
    """State of the melt after one pass (iteration 0 is the loaded state).

    Attributes:
        iteration: 0 for the initial state, then 1..N
        elements: element states at the end of the pass
        additions: (element name, amount) pairs applied during the pass, in order
        total_weight: melt weight after the pass
    """
    iteration: int
    elements: Tuple[Element, ...]
    additions: Tuple[Tuple[str, float], ...] = ()
    total_weight: float = 0.0

    def addition_for(self, name: str) -> float:
        """Total amount added to ``name`` in this pass (0.0 when none)."""
        return math.fsum(amount for n, amount in self.additions if n == name)

    def element(self, name: str) -> Element:
        for el in self.elements:
            if el.name == name:
                return el
        raise ElementNotFound(f"Element '{name}' not found in iteration {self.iteration}")


def _check_percentage(name: str, label: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{label} percentage for '{name}' is not a number: {value!r}") from None
    if not math.isfinite(value):
        raise InvalidInput(f"{label} percentage for '{name}' is not finite: {value}")
    if value < 0.0:
        raise InvalidInput(f"{label} percentage for '{name}' is negative: {value}")
    if value > 100.0:
        raise InvalidInput(f"{label} percentage for '{name}' is above 100: {value}")
    return value


@dataclass
class Composition:
    """Melt state: total weight and ordered, uniquely named elements.

    Mass balance (sum of element weights == total weight) is kept by routing
    every change through ``add_weight``; percentages only become valid through
    ``recompute_percentages``.
    """
    total_weight: float
    _elements: List[Element] = field(default_factory=list, repr=False)
    _index: Dict[str, int] = field(default_factory=dict, repr=False)

    @classmethod
    def from_specs(cls, specs: Iterable[ElementSpec | Sequence], total_weight: float) -> "Composition":
        """Build a composition from (name, current %, target %) triples.

        Raises:
            InvalidInput: total weight <= 0, malformed triple, empty, non-string
                or duplicated name, percentage negative / above 100 / not a number
        """
        try:
            total_weight = float(total_weight)
        except (TypeError, ValueError):
            raise InvalidInput(f"Total weight is not a number: {total_weight!r}") from None
        if not math.isfinite(total_weight) or total_weight <= 0.0:
            raise InvalidInput(f"Total weight must be positive, got {total_weight}")

        comp = cls(total_weight=total_weight)
        for spec in specs:
            if isinstance(spec, ElementSpec):
                name, current, target = spec.name, spec.current_percentage, spec.target_percentage
            else:
                try:
                    name, current, target = spec
                except (TypeError, ValueError):
                    raise InvalidInput(f"Expected (name, initial %, target %), got {spec!r}") from None
            if name is not None and not isinstance(name, str):
                raise InvalidInput(f"Element name must be a string, got {name!r}")
            name = (name or "").strip()
            if not name:
                raise InvalidInput("Element name cannot be empty")
            if name in comp._index:
                raise InvalidInput(f"Duplicate element '{name}'")
            current = _check_percentage(name, "Initial", current)
            target = _check_percentage(name, "Target", target)
            comp._index[name] = len(comp._elements)
            comp._elements.append(Element(
                name=name,
                current_percentage=current,
                target_percentage=target,
                current_weight=current / 100.0 * total_weight,
            ))
        return comp

    # ---- read access ----
    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(tuple(self._elements))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    @property
    def elements(self) -> Tuple[Element, ...]:
        return tuple(self._elements)

    def names(self) -> List[str]:
        return [e.name for e in self._elements]

    def get(self, name: str) -> Element:
        try:
            return self._elements[self._index[name]]
        except KeyError:
            raise ElementNotFound(f"Element '{name}' not found in composition") from None

    def mass_residual(self) -> float:
        """Stated total weight minus the sum of element weights."""
        return self.total_weight - math.fsum(e.current_weight for e in self._elements)

    # ---- mutation ----
    def add_weight(self, name: str, amount: float) -> None:
        """Add ``amount`` of pure ``name`` to the melt (element and total weight).

        Percentages are stale until ``recompute_percentages`` is called.
        """
        el = self.get(name)
        self._elements[self._index[name]] = replace(el, current_weight=el.current_weight + amount)
        self.total_weight += amount

    def absorb_residual(self, name: str) -> float:
        """Move the mass residual into ``name`` so weights sum to the total.

        Returns the absorbed amount. Raises InvalidInput when the element
        would end up with a negative weight.
        """
        residual = self.mass_residual()
        el = self.get(name)
        new_weight = el.current_weight + residual
        if new_weight < 0.0:
            raise InvalidInput(
                f"Element percentages exceed 100% by {-residual / self.total_weight * 100.0:.4f} points; "
                f"'{name}' cannot absorb the difference"
            )
        self._elements[self._index[name]] = replace(el, current_weight=new_weight)
        return residual

    def recompute_percentages(self) -> None:
        total = self.total_weight
        self._elements = [
            replace(e, current_percentage=e.current_weight / total * 100.0)
            for e in self._elements
        ]


__all__ = ["ElementSpec", "Element", "IterationSnapshot", "Composition"]
