"""Error types raised by the core."""
from __future__ import annotations


class InvalidInput(ValueError):
    """Fatal input problem; the run cannot start."""


class ElementNotFound(InvalidInput, KeyError):
    """Requested element name is not part of the composition."""

    def __str__(self) -> str:
        # KeyError.__str__ quotes the message
        return str(self.args[0]) if self.args else ""


__all__ = ["InvalidInput", "ElementNotFound"]
