"""Track geometry utilities.

This module turns raw track descriptions into the reference line used by the
rest of the pipeline:

``load_track``
    Reads a centreline CSV with optional track widths into an ``(N, 4)``
    array ``[x, y, w_tr_right, w_tr_left]``.
``check_track`` and ``set_new_start_point``
    Sanity checks and start/finish placement on a loaded track.
``prepare_track``
    Regularises the centreline, fits splines through it and collects the
    normal vectors along which the raceline is later shifted.

The :func:`prepare_track` function returns a :class:`TrackGeometry`
dataclass bundling the reference line, its normals and the spline fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .angles import calc_normal_vectors
from .config import PipelineOptions
from .curvature import calc_head_curv_num
from .exceptions import InvalidInput
from .io_utils import read_track_csv
from .smoothing import spline_approximation
from .splines import calc_splines

DEFAULT_HALF_WIDTH = 3.0

_CLOSED_TOL = 1e-6


@dataclass
class TrackGeometry:
    """Prepared reference line of a race track.

    ``reftrack`` holds ``[x, y, w_tr_right, w_tr_left]`` per point.  The widths
    are measured from the reference line relative to the direction of travel,
    and ``normvectors`` point to the left.  Closed tracks do not repeat their
    first point; their ``el_lengths`` include the closing segment.
    """

    reftrack: np.ndarray
    normvectors: np.ndarray
    coeffs_x: np.ndarray
    coeffs_y: np.ndarray
    A: np.ndarray
    el_lengths: np.ndarray
    closed: bool = True


def load_track(file_path: str | Path, flip: bool = False) -> np.ndarray:
    """Load a track centreline and its widths.

    Parameters
    ----------
    file_path:
        Path to the CSV file describing the track.  The file must contain
        ``x_m`` and ``y_m`` columns.  ``w_tr_right_m`` and ``w_tr_left_m``
        give the distance to the right/left track edge and default to
        ``3.0`` m when absent.
    flip:
        Reverse the driving direction.  The point order is reversed and the
        two widths are swapped.

    Returns
    -------
    numpy.ndarray
        ``(N, 4)`` array ``[x, y, w_tr_right, w_tr_left]``.
    """
    df = read_track_csv(file_path)
    required = {"x_m", "y_m"}
    missing = required.difference(df.columns)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise InvalidInput(f"track file missing required columns: {missing_str}")

    x = df["x_m"].to_numpy(float)
    y = df["y_m"].to_numpy(float)
    w_right = df["w_tr_right_m"].to_numpy(float) if "w_tr_right_m" in df else np.full(x.size, DEFAULT_HALF_WIDTH)
    w_left = df["w_tr_left_m"].to_numpy(float) if "w_tr_left_m" in df else np.full(x.size, DEFAULT_HALF_WIDTH)

    track = np.column_stack((x, y, w_right, w_left))
    if flip:
        track = track[::-1][:, [0, 1, 3, 2]]
    return track


def check_track(track: np.ndarray) -> np.ndarray:
    """Validate a ``[x, y, w_tr_right, w_tr_left]`` track and return it as floats."""
    track = np.asarray(track, dtype=float)
    if track.ndim != 2 or track.shape[1] < 4:
        raise InvalidInput("track must have at least four columns [x, y, w_tr_right, w_tr_left]")
    if track.shape[0] < 3:
        raise InvalidInput("track must contain at least three points")
    if not np.all(np.isfinite(track[:, :4])):
        raise InvalidInput("track contains non-finite values")
    if np.any(track[:, 2:4] <= 0):
        raise InvalidInput("track widths must be positive")
    return track


def set_new_start_point(track: np.ndarray, new_start: np.ndarray) -> np.ndarray:
    """Rotate a closed track so that the point closest to ``new_start`` comes first.

    The track must not repeat its first point at the end.
    """
    track = np.asarray(track, dtype=float)
    new_start = np.asarray(new_start, dtype=float).reshape(-1)
    if track.ndim != 2 or track.shape[1] < 2 or track.shape[0] == 0:
        raise InvalidInput("track must have shape (N, >=2)")
    if new_start.size != 2:
        raise InvalidInput("new_start must hold two coordinates")

    dists = np.hypot(track[:, 0] - new_start[0], track[:, 1] - new_start[1])
    return np.roll(track, -int(np.argmin(dists)), axis=0)


def _arc_length(points: np.ndarray) -> np.ndarray:
    steps = np.hypot(np.diff(points[:, 0]), np.diff(points[:, 1]))
    return np.concatenate(([0.0], np.cumsum(steps)))


def prepare_track(
    track: np.ndarray,
    options: PipelineOptions | None = None,
    closed: bool = True,
) -> TrackGeometry:
    """Regularise a raw track and fit the reference line splines.

    Parameters
    ----------
    track:
        ``(N, 4)`` array ``[x, y, w_tr_right, w_tr_left]``.  A closed track may
        or may not repeat its first point at the end.
    options:
        Pipeline options.  The smoothing options and ``stepsize_prep`` /
        ``stepsize_reg`` control the regularisation, ``fit_mode`` the spline
        fit.  Defaults are used when ``None``.
    closed:
        Whether the track is a loop.

    Returns
    -------
    TrackGeometry
        The regularised reference line with one normal vector per point.
    """
    options = options if options is not None else PipelineOptions()
    track = check_track(track)

    ends_coincide = bool(np.hypot(*(track[0, :2] - track[-1, :2])) < _CLOSED_TOL)
    if closed and not ends_coincide:
        track = np.vstack((track, track[0]))
    s_raw = _arc_length(track[:, :2])

    smoothed, _ = spline_approximation(
        track[:, :2],
        k_reg=options.reg_smooth.k_reg,
        s_reg=options.reg_smooth.s_reg,
        stepsize_prep=options.stepsizes.stepsize_prep,
        stepsize_reg=options.stepsizes.stepsize_reg,
        mode=options.reg_smooth.mode,
        closed=closed,
    )
    if closed:
        smoothed = smoothed[:-1]

    # Widths follow the relative arc-length position along the raw track.
    path = np.vstack((smoothed, smoothed[0])) if closed else smoothed
    s_path = _arc_length(path)
    s_rel = s_path[: smoothed.shape[0]] / s_path[-1] * s_raw[-1]
    w_right = np.interp(s_rel, s_raw, track[:, 2])
    w_left = np.interp(s_rel, s_raw, track[:, 3])
    reftrack = np.column_stack((smoothed, w_right, w_left))

    el_lengths = np.diff(s_path)
    if closed:
        coeffs_x, coeffs_y, A, normvectors = calc_splines(
            path, el_lengths, closed=True, fit_mode=options.fit_mode
        )
    else:
        psi, _ = calc_head_curv_num(path, el_lengths, False, calc_curv=False)
        coeffs_x, coeffs_y, A, normvectors = calc_splines(
            path,
            el_lengths,
            psi_s=psi[0],
            psi_e=psi[-1],
            closed=False,
            fit_mode=options.fit_mode,
        )
        normvectors = np.vstack((normvectors, calc_normal_vectors([psi[-1]])))

    return TrackGeometry(reftrack, normvectors, coeffs_x, coeffs_y, A, el_lengths, closed)
