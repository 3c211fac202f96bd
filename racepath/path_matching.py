"""Projection of positions on to a reference path.

``path_matching_global`` compares every query point against every reference
point and is meant for batch use.  ``path_matching_local`` only searches a
small index window around a caller supplied guess, the usual situation when
tracking a vehicle that moves a few samples between two calls.  The caller
keeps the returned index and passes it back as the next guess.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .exceptions import InvalidInput

_SEGMENT_EPS = 1e-10


def _reference_s(reftrack: np.ndarray, el_lengths: np.ndarray | None) -> np.ndarray:
    """Cumulative arc length of ``reftrack``.

    Supplied element lengths are used as far as they reach; any remaining
    segments fall back to the straight-line distance between the points.
    """
    steps = np.hypot(np.diff(reftrack[:, 0]), np.diff(reftrack[:, 1]))
    if el_lengths is not None:
        n_known = min(el_lengths.size, steps.size)
        steps[:n_known] = el_lengths[:n_known]
    return np.concatenate(([0.0], np.cumsum(steps)))


def _as_points(points: Iterable[Iterable[float]], name: str) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidInput(f"{name} must have shape (N, 2)")
    if arr.shape[0] == 0:
        raise InvalidInput(f"{name} must not be empty")
    return arr


def path_matching_global(
    path: Iterable[Iterable[float]],
    reftrack: Iterable[Iterable[float]],
    el_lengths_reftrack: Iterable[float] | None = None,
) -> np.ndarray:
    """Arc length of the nearest reference point for every point of ``path``.

    Parameters
    ----------
    path:
        ``(N, 2)`` query points.
    reftrack:
        ``(M, 2)`` reference points.
    el_lengths_reftrack:
        Optional element lengths of the reference track.

    Returns
    -------
    numpy.ndarray
        ``N`` arc-length values measured along the reference track.
    """
    path = _as_points(path, "path")
    reftrack = _as_points(reftrack, "reftrack")
    el = None if el_lengths_reftrack is None else np.asarray(el_lengths_reftrack, dtype=float)
    s_reftrack = _reference_s(reftrack, el)

    dists = np.hypot(
        path[:, None, 0] - reftrack[None, :, 0],
        path[:, None, 1] - reftrack[None, :, 1],
    )
    closest = np.argmin(dists, axis=1)
    return s_reftrack[closest]


def path_matching_local(
    pos_est: Iterable[float],
    reftrack: Iterable[Iterable[float]],
    s_ind_last_guess: int,
    el_lengths: Iterable[float] | None = None,
    search_window: int = 10,
) -> Tuple[int, float]:
    """Find the reference point closest to ``pos_est`` near a previous guess.

    Parameters
    ----------
    pos_est:
        Estimated ``(x, y)`` position.
    reftrack:
        ``(M, 2)`` reference points.
    s_ind_last_guess:
        Index returned by the previous call.  Guesses outside the track are
        clamped to the nearest valid index.
    el_lengths:
        Accepted for symmetry with :func:`path_matching_global`; only the
        point coordinates are needed for the local search.
    search_window:
        Number of indices searched on either side of the guess.  The window is
        clipped at the ends of the track, it does not wrap around.

    Returns
    -------
    Tuple[int, float]
        Index of the closest reference point and the position ``t`` in
        ``[0, 1]`` of the projection of ``pos_est`` on the segment that starts
        at that index (``0`` at the last point).
    """
    pos = np.asarray(pos_est, dtype=float).reshape(-1)
    if pos.size != 2:
        raise InvalidInput("pos_est must hold two coordinates")
    reftrack = _as_points(reftrack, "reftrack")
    if el_lengths is not None and np.asarray(el_lengths).size < reftrack.shape[0] - 1:
        raise InvalidInput("el_lengths is shorter than the reference track")
    if search_window < 0:
        raise InvalidInput("search_window must be non-negative")

    n_points = reftrack.shape[0]
    guess = int(np.clip(s_ind_last_guess, 0, n_points - 1))
    start = max(0, guess - search_window)
    end = min(n_points - 1, guess + search_window)

    window = reftrack[start : end + 1]
    dists = np.hypot(window[:, 0] - pos[0], window[:, 1] - pos[1])
    closest = start + int(np.argmin(dists))

    t = 0.0
    if closest < n_points - 1:
        segment = reftrack[closest + 1] - reftrack[closest]
        seg_len_sq = float(np.dot(segment, segment))
        if seg_len_sq > _SEGMENT_EPS:
            t = float(np.clip(np.dot(pos - reftrack[closest], segment) / seg_len_sq, 0.0, 1.0))

    return closest, t


__all__ = ["path_matching_global", "path_matching_local"]
