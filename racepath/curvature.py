"""Numerical heading and curvature estimation along a sampled path.

Headings are estimated from the chord spanning a window of samples around
each point and curvature from the heading change across a (separately sized)
window divided by the arc length that window covers.  The window sizes are
given as preview/review distances and converted to index steps using the mean
element length.

For closed paths the windows wrap around the loop.  Instead of copying the
path into extended arrays the wrapped neighbours are addressed with
:func:`racepath.angles.wrap_index`, and the arc length of a wrapped index
``k`` is ``s[k mod n] + floor(k / n) * L`` with ``L`` the loop length.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .angles import normalize_psi, wrap_index
from .exceptions import InvalidInput

_WINDOW_EPS = 1e-9


def calc_head_curv_num(
    path: Iterable[Iterable[float]],
    el_lengths: Iterable[float],
    is_closed: bool,
    stepsize_psi_preview: float = 1.0,
    stepsize_psi_review: float = 1.0,
    stepsize_curv_preview: float = 2.0,
    stepsize_curv_review: float = 2.0,
    calc_curv: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """Estimate heading ``psi`` and curvature ``kappa`` at every path point.

    Parameters
    ----------
    path:
        ``(N, 2)`` array of points.  Closed paths must not repeat the first
        point at the end.
    el_lengths:
        Segment lengths.  ``N`` values for a closed path (the last one closes
        the loop), ``N - 1`` for an open path.
    is_closed:
        Whether the path is a loop.
    stepsize_psi_preview, stepsize_psi_review:
        Forward and backward distances used for the heading window.  Closed
        paths only.
    stepsize_curv_preview, stepsize_curv_review:
        Forward and backward distances used for the curvature window.  Closed
        paths only.
    calc_curv:
        If ``False`` curvature is not estimated and zeros are returned.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Heading in ``(-pi, pi]`` (``0`` pointing along ``+y``) and signed
        curvature, positive for left-hand bends.
    """
    path = np.asarray(path, dtype=float)
    el_lengths = np.asarray(el_lengths, dtype=float)
    if path.ndim != 2 or path.shape[1] != 2:
        raise InvalidInput("path must have shape (N, 2)")
    if el_lengths.ndim != 1:
        raise InvalidInput("el_lengths must be one-dimensional")
    n_points = path.shape[0]
    if n_points < 2:
        raise InvalidInput("path must contain at least two points")

    if is_closed and n_points != el_lengths.size:
        raise InvalidInput("path and el_lengths must have the same length for a closed path")
    if not is_closed and n_points != el_lengths.size + 1:
        raise InvalidInput("path must have the length of el_lengths + 1 for an open path")

    if is_closed:
        return _closed(
            path,
            el_lengths,
            stepsize_psi_preview,
            stepsize_psi_review,
            stepsize_curv_preview,
            stepsize_curv_review,
            calc_curv,
        )
    return _open(path, el_lengths, calc_curv)


def _index_steps(distance: float, avg_el_length: float) -> int:
    return max(1, int(np.round(distance / avg_el_length)))


def _closed(
    path: np.ndarray,
    el_lengths: np.ndarray,
    psi_preview: float,
    psi_review: float,
    curv_preview: float,
    curv_review: float,
    calc_curv: bool,
) -> Tuple[np.ndarray, np.ndarray]:
    n_points = path.shape[0]
    avg_el_length = float(np.mean(el_lengths))
    if avg_el_length <= _WINDOW_EPS:
        raise InvalidInput("mean element length must be positive")

    idx = np.arange(n_points)

    ahead = wrap_index(idx + _index_steps(psi_preview, avg_el_length), n_points)
    behind = wrap_index(idx - _index_steps(psi_review, avg_el_length), n_points)
    tangvecs = path[ahead] - path[behind]
    psi = normalize_psi(np.arctan2(tangvecs[:, 1], tangvecs[:, 0]) - np.pi / 2.0)

    if not calc_curv:
        return psi, np.zeros(n_points)

    k_ahead = idx + _index_steps(curv_preview, avg_el_length)
    k_behind = idx - _index_steps(curv_review, avg_el_length)

    delta_psi = normalize_psi(psi[wrap_index(k_ahead, n_points)] - psi[wrap_index(k_behind, n_points)])

    s_points = np.concatenate(([0.0], np.cumsum(el_lengths)[:-1]))
    total_length = float(np.sum(el_lengths))

    def s_ext(k: np.ndarray) -> np.ndarray:
        return s_points[wrap_index(k, n_points)] + np.floor_divide(k, n_points) * total_length

    ds = s_ext(k_ahead) - s_ext(k_behind)
    if np.any(ds <= _WINDOW_EPS):
        raise InvalidInput("curvature window has zero length; check for duplicate points")

    return psi, delta_psi / ds


def _open(
    path: np.ndarray, el_lengths: np.ndarray, calc_curv: bool
) -> Tuple[np.ndarray, np.ndarray]:
    n_points = path.shape[0]

    tangvecs = np.empty_like(path)
    tangvecs[0] = path[1] - path[0]
    tangvecs[1:-1] = path[2:] - path[:-2]
    tangvecs[-1] = path[-1] - path[-2]
    psi = normalize_psi(np.arctan2(tangvecs[:, 1], tangvecs[:, 0]) - np.pi / 2.0)

    if not calc_curv:
        return psi, np.zeros(n_points)

    delta_psi = np.empty(n_points)
    delta_psi[0] = psi[1] - psi[0]
    delta_psi[1:-1] = psi[2:] - psi[:-2]
    delta_psi[-1] = psi[-1] - psi[-2]
    delta_psi = normalize_psi(delta_psi)

    ds = np.empty(n_points)
    ds[0] = el_lengths[0]
    ds[1:-1] = el_lengths[1:] + el_lengths[:-1]
    ds[-1] = el_lengths[-1]
    if np.any(ds <= _WINDOW_EPS):
        raise InvalidInput("curvature window has zero length; check for duplicate points")

    return psi, delta_psi / ds


__all__ = ["calc_head_curv_num"]
