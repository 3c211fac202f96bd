"""Exceptions raised by the path preparation helpers."""

from __future__ import annotations


class InvalidInput(ValueError):
    """Raised for shape mismatches, missing parameters or degenerate geometry.

    Subclasses :class:`ValueError` so callers that already guard against bad
    input with ``except ValueError`` keep working.
    """


__all__ = ["InvalidInput"]
