"""Angle and direction vector helpers.

Headings follow the convention used throughout :mod:`racepath`: ``psi = 0``
points along the positive ``y`` axis and angles increase counter-clockwise,
so that ``psi = atan2(dy, dx) - pi / 2`` for a direction ``(dx, dy)``.
Normal vectors point to the left of the direction of travel.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .exceptions import InvalidInput


def normalize_psi(psi: Iterable[float] | float) -> np.ndarray | float:
    """Wrap heading angles into the half-open interval ``(-pi, pi]``.

    Values already inside the interval are returned unchanged so applying the
    function twice gives the same result.  Scalars in, scalar out.
    """
    psi_arr = np.asarray(psi, dtype=float)
    wrapped = np.remainder(psi_arr + np.pi, 2.0 * np.pi) - np.pi
    wrapped = np.where(wrapped <= -np.pi, np.pi, np.minimum(wrapped, np.pi))
    inside = (psi_arr > -np.pi) & (psi_arr <= np.pi)
    out = np.where(inside, psi_arr, wrapped)
    if out.ndim == 0:
        return float(out)
    return out


def wrap_index(index: int | np.ndarray, length: int) -> int | np.ndarray:
    """Map ``index`` on to ``[0, length)`` treating the sequence as circular."""
    if length <= 0:
        raise InvalidInput("length must be positive")
    return np.mod(index, length)


def angle3pt(points: Iterable[Iterable[float]], closed: bool = True) -> np.ndarray:
    """Signed angle at every point between the vectors to its two neighbours.

    Only circular neighbour indexing is supported: the first point uses the
    last one as its predecessor and vice versa.  ``closed=False`` raises
    :class:`InvalidInput`.  For a straight run the angle has
    magnitude ``pi``; left-hand bends give negative values.
    """
    if not closed:
        raise InvalidInput("angle3pt only supports closed point sequences")
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise InvalidInput("points must have shape (N, 2)")
    if pts.shape[0] < 3:
        raise InvalidInput("angle3pt requires at least three points")

    v1 = np.roll(pts, 1, axis=0) - pts
    v2 = np.roll(pts, -1, axis=0) - pts
    cross = v1[:, 0] * v2[:, 1] - v1[:, 1] * v2[:, 0]
    dot = np.sum(v1 * v2, axis=1)
    return np.arctan2(cross, dot)


def calc_tangent_vectors(psi: Iterable[float]) -> np.ndarray:
    """Unit tangent vectors ``(N, 2)`` for the headings ``psi``."""
    psi_arr = np.atleast_1d(np.asarray(psi, dtype=float))
    return np.column_stack((np.cos(psi_arr + np.pi / 2.0), np.sin(psi_arr + np.pi / 2.0)))


def calc_normal_vectors(psi: Iterable[float]) -> np.ndarray:
    """Unit normal vectors ``(N, 2)``: tangents rotated by +90 degrees."""
    tangents = calc_tangent_vectors(psi)
    return np.column_stack((-tangents[:, 1], tangents[:, 0]))


__all__ = [
    "normalize_psi",
    "wrap_index",
    "angle3pt",
    "calc_tangent_vectors",
    "calc_normal_vectors",
]
