r"""Piecewise polynomial fitting and resampling of 2-D paths.

Every segment between two consecutive path points is described by one
polynomial per axis

.. math::

    x_i(t) = a_{i,0} + a_{i,1} t + a_{i,2} t^2 + a_{i,3} t^3, \qquad t \in [0, 1]

and the coefficients are collected row-wise into ``(M, 4)`` tables.  Two fit
modes are available:

``"linear"``
    Straight segments (``a2 = a3 = 0``).  Cheap, but curvature is zero inside
    the segments and undefined at the nodes.
``"cubic"``
    Solves the classic ``4M x 4M`` linear system that matches positions and
    keeps first and second derivatives continuous at interior nodes.  Open
    paths additionally take the start and end headings as boundary
    conditions, closed paths wrap the continuity conditions around the loop.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .exceptions import InvalidInput

FIT_MODES = ("linear", "cubic")

_CLOSED_TOL = 1e-6
_NORM_EPS = 1e-10
_LENGTH_SAMPLES = 100


def calc_splines(
    path: Iterable[Iterable[float]],
    el_lengths: Iterable[float] | None = None,
    psi_s: float | None = None,
    psi_e: float | None = None,
    use_dist_scaling: bool = True,
    closed: bool | None = None,
    fit_mode: str = "cubic",
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Fit one polynomial per path segment.

    Parameters
    ----------
    path:
        ``(N, 2)`` array of points.  A closed path repeats its first point at
        the end.
    el_lengths:
        Optional ``N - 1`` segment lengths.  Derived from the point distances
        when omitted.
    psi_s, psi_e:
        Headings at the first and last point.  Required for open paths.
    use_dist_scaling:
        Scale the derivative continuity conditions by the ratio of adjacent
        segment lengths so that derivatives match with respect to arc length
        rather than the spline parameter.
    closed:
        Treat the path as a loop.  If ``None`` the path is considered closed
        when its end points coincide and the start heading is unset or zero.
    fit_mode:
        ``"cubic"`` (default) or ``"linear"``.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]
        Coefficient tables ``coeffs_x`` and ``coeffs_y`` of shape ``(M, 4)``,
        the system matrix of the fit (``(4M, 4M)`` for cubic splines, an
        ``(M, M)`` identity for linear ones) and the ``(M, 2)`` unit normal
        vectors at the start of every segment.
    """
    path = np.asarray(path, dtype=float)
    if path.ndim != 2 or path.shape[1] != 2:
        raise InvalidInput("path must have shape (N, 2)")
    n_points = path.shape[0]
    if n_points < 2:
        raise InvalidInput("path must contain at least two points")
    if fit_mode not in FIT_MODES:
        raise InvalidInput(f"unknown fit_mode '{fit_mode}'")

    ends_coincide = bool(np.hypot(*(path[0] - path[-1])) < _CLOSED_TOL)
    if closed is None:
        closed = ends_coincide and (psi_s is None or psi_s == 0.0)
    elif closed and not ends_coincide:
        raise InvalidInput("closed path must end at its first point")
    if closed and n_points < 3:
        raise InvalidInput("closed path must contain at least three points")
    if not closed and (psi_s is None or psi_e is None):
        raise InvalidInput("headings must be provided for unclosed spline calculation")

    if el_lengths is None:
        el_lengths = np.hypot(np.diff(path[:, 0]), np.diff(path[:, 1]))
    else:
        el_lengths = np.asarray(el_lengths, dtype=float)
        if el_lengths.shape != (n_points - 1,):
            raise InvalidInput("el_lengths must be one element shorter than path")

    no_splines = n_points - 1
    if fit_mode == "linear":
        coeffs_x = np.zeros((no_splines, 4))
        coeffs_y = np.zeros((no_splines, 4))
        coeffs_x[:, 0] = path[:-1, 0]
        coeffs_x[:, 1] = np.diff(path[:, 0])
        coeffs_y[:, 0] = path[:-1, 1]
        coeffs_y[:, 1] = np.diff(path[:, 1])
        M = np.eye(no_splines)
    else:
        if use_dist_scaling and np.any(el_lengths <= _NORM_EPS):
            raise InvalidInput("el_lengths must be positive for distance scaling")
        coeffs_x, coeffs_y, M = _solve_cubic(
            path, el_lengths, psi_s, psi_e, use_dist_scaling, closed
        )

    normvec = np.column_stack((-coeffs_y[:, 1], coeffs_x[:, 1]))
    norms = np.hypot(normvec[:, 0], normvec[:, 1])
    degenerate = norms <= _NORM_EPS
    normvec_normalized = np.empty_like(normvec)
    normvec_normalized[~degenerate] = normvec[~degenerate] / norms[~degenerate, None]
    normvec_normalized[degenerate] = (1.0, 0.0)

    return coeffs_x, coeffs_y, M, normvec_normalized


def _solve_cubic(
    path: np.ndarray,
    el_lengths: np.ndarray,
    psi_s: float | None,
    psi_e: float | None,
    use_dist_scaling: bool,
    closed: bool,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    no_splines = path.shape[0] - 1

    # Closing condition couples the last segment to the first one.
    el_ext = np.append(el_lengths, el_lengths[0]) if closed else el_lengths
    if use_dist_scaling:
        scaling = el_ext[:-1] / el_ext[1:]
    else:
        scaling = np.ones(el_ext.size - 1)

    M = np.zeros((no_splines * 4, no_splines * 4))
    b_x = np.zeros(no_splines * 4)
    b_y = np.zeros(no_splines * 4)

    # Rows per segment: position at t=0, position at t=1, first and second
    # derivative continuity with the next segment.
    template_M = np.array(
        [
            [1, 0, 0, 0, 0, 0, 0, 0],
            [1, 1, 1, 1, 0, 0, 0, 0],
            [0, 1, 2, 3, 0, -1, 0, 0],
            [0, 0, 2, 6, 0, 0, -2, 0],
        ],
        dtype=float,
    )

    for i in range(no_splines):
        j = i * 4
        if i < no_splines - 1:
            M[j : j + 4, j : j + 8] = template_M
            M[j + 2, j + 5] *= scaling[i]
            M[j + 3, j + 6] *= scaling[i] ** 2
        else:
            M[j : j + 2, j : j + 4] = [[1, 0, 0, 0], [1, 1, 1, 1]]
        b_x[j : j + 2] = [path[i, 0], path[i + 1, 0]]
        b_y[j : j + 2] = [path[i, 1], path[i + 1, 1]]

    if closed:
        M[-2, 1] = scaling[-1]
        M[-2, -3:] = [-1, -2, -3]
        M[-1, 2] = 2 * scaling[-1] ** 2
        M[-1, -2:] = [-2, -6]
    else:
        M[-2, 1] = 1
        b_x[-2] = np.cos(psi_s + np.pi / 2.0) * el_lengths[0]
        b_y[-2] = np.sin(psi_s + np.pi / 2.0) * el_lengths[0]
        M[-1, -4:] = [0, 1, 2, 3]
        b_x[-1] = np.cos(psi_e + np.pi / 2.0) * el_lengths[-1]
        b_y[-1] = np.sin(psi_e + np.pi / 2.0) * el_lengths[-1]

    try:
        x_les = np.linalg.solve(M, b_x)
        y_les = np.linalg.solve(M, b_y)
    except np.linalg.LinAlgError as exc:
        raise InvalidInput(f"spline system is singular: {exc}") from exc

    return x_les.reshape(no_splines, 4), y_les.reshape(no_splines, 4), M


def interp_splines(
    coeffs_x: np.ndarray,
    coeffs_y: np.ndarray,
    incl_last_point: bool = False,
    stepsize_approx: float = 1.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Sample fitted splines at roughly ``stepsize_approx`` spacing.

    The length of every segment is estimated from its derivative at 100
    sub-steps (trapezoidal rule) and the segment receives
    ``max(1, ceil(length / stepsize_approx))`` points equally spaced in ``t``.
    The returned arc length is the running sum of distances between the
    emitted points, not the exact polynomial length.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]
        ``(N, 2)`` points, the segment index and ``t`` of every point and the
        cumulative arc length ``s``.
    """
    coeffs_x = np.asarray(coeffs_x, dtype=float)
    coeffs_y = np.asarray(coeffs_y, dtype=float)
    if coeffs_x.ndim != 2 or coeffs_y.ndim != 2:
        raise InvalidInput("coefficient tables must be two-dimensional")
    if coeffs_x.shape[0] != coeffs_y.shape[0]:
        raise InvalidInput("coeffs_x and coeffs_y must have the same number of rows")
    if coeffs_x.shape[1] != 4 or coeffs_y.shape[1] != 4:
        raise InvalidInput("coefficient tables must have four columns")
    if coeffs_x.shape[0] == 0:
        raise InvalidInput("at least one spline is required")
    if stepsize_approx <= 0:
        raise InvalidInput("stepsize_approx must be positive")

    no_splines = coeffs_x.shape[0]

    t_fine = np.linspace(0.0, 1.0, _LENGTH_SAMPLES + 1)
    dx = coeffs_x[:, [1]] + 2.0 * coeffs_x[:, [2]] * t_fine + 3.0 * coeffs_x[:, [3]] * t_fine**2
    dy = coeffs_y[:, [1]] + 2.0 * coeffs_y[:, [2]] * t_fine + 3.0 * coeffs_y[:, [3]] * t_fine**2
    speed = np.hypot(dx, dy)
    lengths = np.sum(0.5 * (speed[:, :-1] + speed[:, 1:]), axis=1) / _LENGTH_SAMPLES

    no_interp_points = np.maximum(1, np.ceil(lengths / stepsize_approx)).astype(int)
    total = int(no_interp_points.sum())

    spline_inds = np.repeat(np.arange(no_splines), no_interp_points)
    starts = np.cumsum(no_interp_points) - no_interp_points
    local_idx = np.arange(total) - np.repeat(starts, no_interp_points)
    t_values = local_idx / np.repeat(no_interp_points, no_interp_points)

    if incl_last_point:
        spline_inds = np.append(spline_inds, no_splines - 1)
        t_values = np.append(t_values, 1.0)

    path_interp = np.column_stack(
        (
            _evaluate(coeffs_x[spline_inds], t_values),
            _evaluate(coeffs_y[spline_inds], t_values),
        )
    )

    steps = np.hypot(np.diff(path_interp[:, 0]), np.diff(path_interp[:, 1]))
    s_values = np.concatenate(([0.0], np.cumsum(steps)))

    return path_interp, spline_inds, t_values, s_values


def _evaluate(coeffs: np.ndarray, t: np.ndarray) -> np.ndarray:
    return coeffs[:, 0] + coeffs[:, 1] * t + coeffs[:, 2] * t**2 + coeffs[:, 3] * t**3


__all__ = ["FIT_MODES", "calc_splines", "interp_splines"]
