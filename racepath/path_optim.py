"""Minimum curvature raceline optimisation.

The raceline is described by a lateral shift ``alpha`` of every reference
point along its normal vector.  :func:`opt_min_curv` keeps the established
interface of the optimiser: by default it returns the reference line itself
(``alpha = 0``).  With ``solve=True`` it solves a quadratic program in
``alpha`` using :func:`scipy.optimize.minimize`: the sum of squared
linearised curvatures of the shifted points is minimised while the shift stays
inside the track (less half the vehicle width) and every curvature stays
within ``kappa_bound``.
"""
from __future__ import annotations

import time
from typing import Iterable, Tuple

import numpy as np
from scipy.optimize import minimize

from .exceptions import InvalidInput


def _arc_length(points: np.ndarray) -> np.ndarray:
    steps = np.hypot(np.diff(points[:, 0]), np.diff(points[:, 1]))
    return np.concatenate(([0.0], np.cumsum(steps)))


def _second_difference(n_points: int, closed: bool) -> np.ndarray:
    """Matrix mapping point coordinates to ``p[i-1] - 2 p[i] + p[i+1]``.

    Closed paths give one row per point, open paths one row per interior point.
    """
    if closed:
        eye = np.eye(n_points)
        return np.roll(eye, 1, axis=1) - 2.0 * eye + np.roll(eye, -1, axis=1)
    D = np.zeros((n_points - 2, n_points))
    rows = np.arange(n_points - 2)
    D[rows, rows] = 1.0
    D[rows, rows + 1] = -2.0
    D[rows, rows + 2] = 1.0
    return D


def opt_min_curv(
    reftrack: np.ndarray,
    normvectors: np.ndarray,
    A: np.ndarray,
    kappa_bound: float,
    w_veh: float,
    closed: bool = True,
    fix_s: bool = False,
    fix_e: bool = False,
    solve: bool = False,
    max_iterations: int | None = None,
    tol: float = 1e-6,
) -> Tuple[np.ndarray, np.ndarray, float]:
    """Optimise the lateral shift of a reference line.

    Parameters
    ----------
    reftrack:
        ``(N, 4)`` array ``[x, y, w_tr_right, w_tr_left]``.  Closed tracks do
        not repeat their first point.
    normvectors:
        ``(N, 2)`` unit normal vectors pointing to the left of the reference
        line.
    A:
        Square system matrix returned by :func:`racepath.splines.calc_splines`.
        Only its shape is checked; the quadratic program works on the
        reference points directly and does not use the spline system.
    kappa_bound:
        Maximum absolute curvature of the raceline in ``rad/m``.
    w_veh:
        Vehicle width in metres.  Half of it is kept clear of each track edge.
    closed:
        Whether the track is a loop.
    fix_s, fix_e:
        Keep the first/last point of an open track on the reference line.
    solve:
        Run the optimisation.  If ``False`` a zero shift is returned.
    max_iterations:
        Passed as ``maxiter`` to :func:`scipy.optimize.minimize`.
    tol:
        Convergence tolerance passed to :func:`scipy.optimize.minimize`.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, float]
        Lateral shift ``alpha`` per point, the arc length of the reference
        points and the time spent in the solver in seconds.
    """
    reftrack = np.asarray(reftrack, dtype=float)
    normvectors = np.asarray(normvectors, dtype=float)
    A = np.asarray(A, dtype=float)

    if reftrack.ndim != 2 or reftrack.shape[1] != 4:
        raise InvalidInput("reftrack must have shape (N, 4)")
    n_points = reftrack.shape[0]
    if normvectors.shape != (n_points, 2):
        raise InvalidInput("normvectors must have shape (N, 2) matching reftrack")
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise InvalidInput("A must be a square matrix")
    if kappa_bound <= 0:
        raise InvalidInput("kappa_bound must be positive")
    if w_veh < 0:
        raise InvalidInput("w_veh must be non-negative")
    if n_points < 3:
        raise InvalidInput("reftrack must contain at least three points")

    s_opt = _arc_length(reftrack[:, :2])
    if not solve:
        return np.zeros(n_points), s_opt, 0.0

    start_time = time.perf_counter()

    upper = reftrack[:, 3] - 0.5 * w_veh
    lower = -(reftrack[:, 2] - 0.5 * w_veh)
    if np.any(lower > upper):
        raise InvalidInput("vehicle is wider than the track")
    bounds = list(zip(lower, upper))
    if not closed:
        for idx, fixed in ((0, fix_s), (n_points - 1, fix_e)):
            if fixed:
                if not lower[idx] <= 0.0 <= upper[idx]:
                    raise InvalidInput("fixed end point lies outside the usable track width")
                bounds[idx] = (0.0, 0.0)

    x_ref, y_ref = reftrack[:, 0], reftrack[:, 1]
    nx, ny = normvectors[:, 0], normvectors[:, 1]
    D = _second_difference(n_points, closed)

    # Curvature ~ second difference along the reference normal over the
    # squared spacing, linear in alpha with the spacing held fixed.
    el = np.hypot(np.diff(x_ref), np.diff(y_ref))
    if closed:
        el = np.append(el, np.hypot(x_ref[0] - x_ref[-1], y_ref[0] - y_ref[-1]))
        spacing = 0.5 * (np.roll(el, 1) + el)
        n_row, n_col = nx, ny
    else:
        spacing = 0.5 * (el[:-1] + el[1:])
        n_row, n_col = nx[1:-1], ny[1:-1]
    if np.any(spacing <= 0):
        raise InvalidInput("reftrack contains duplicate points")
    ds_sq = spacing**2
    K = ((D * nx[None, :]) * n_row[:, None] + (D * ny[None, :]) * n_col[:, None]) / ds_sq[:, None]
    k0 = ((D @ x_ref) * n_row + (D @ y_ref) * n_col) / ds_sq

    def objective(alpha: np.ndarray) -> float:
        kappa = k0 + K @ alpha
        return float(kappa @ kappa)

    def gradient(alpha: np.ndarray) -> np.ndarray:
        return 2.0 * K.T @ (k0 + K @ alpha)

    constraints = {
        "type": "ineq",
        "fun": lambda alpha: np.concatenate((kappa_bound - (k0 + K @ alpha), kappa_bound + (k0 + K @ alpha))),
        "jac": lambda alpha: np.vstack((-K, K)),
    }

    options = {}
    if max_iterations is not None:
        options["maxiter"] = max_iterations
    if not options:
        options = None

    alpha_init = np.clip(np.zeros(n_points), lower, upper)

    result = minimize(
        objective,
        alpha_init,
        jac=gradient,
        method="SLSQP",
        bounds=bounds,
        constraints=constraints,
        options=options,
        tol=tol,
    )

    if not result.success:
        raise RuntimeError("Optimisation failed: " + result.message)

    return np.asarray(result.x, dtype=float), s_opt, time.perf_counter() - start_time


def calc_raceline(
    reftrack: np.ndarray, normvectors: np.ndarray, alpha: Iterable[float]
) -> np.ndarray:
    """Shift the reference points along their normals by ``alpha``."""
    reftrack = np.asarray(reftrack, dtype=float)
    normvectors = np.asarray(normvectors, dtype=float)
    alpha = np.asarray(alpha, dtype=float)
    if reftrack.ndim != 2 or reftrack.shape[1] < 2:
        raise InvalidInput("reftrack must have at least two columns")
    n_points = reftrack.shape[0]
    if normvectors.shape != (n_points, 2) or alpha.shape != (n_points,):
        raise InvalidInput("dimension mismatch in raceline calculation")
    return reftrack[:, :2] + alpha[:, None] * normvectors


__all__ = ["opt_min_curv", "calc_raceline"]
