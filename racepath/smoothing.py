"""Regularisation of raw waypoint sequences.

Raw track data is often unevenly spaced and noisy.  :func:`spline_approximation`
resamples it on to a near-uniform arc-length grid before spline fitting.  Two
modes are provided:

``"linear"``
    Fast path.  Points are interpolated linearly along the input polyline, so
    the output reproduces the input geometry exactly, corners included.
``"smooth"``
    Fits a smoothing B-spline (:func:`scipy.interpolate.splprep`) through a
    linearly pre-interpolated copy of the track and samples it uniformly.
    Noise and sharp corners are rounded off, which gives continuous curvature
    at the price of no longer passing through the original waypoints.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from scipy.interpolate import splev, splprep

from .exceptions import InvalidInput

SMOOTHING_MODES = ("linear", "smooth")

_MIN_POINTS_OUT = 10
_SEGMENT_EPS = 1e-10


def spline_approximation(
    track: Iterable[Iterable[float]],
    k_reg: int = 3,
    s_reg: float = 10.0,
    stepsize_prep: float = 1.0,
    stepsize_reg: float = 1.5,
    mode: str = "linear",
    closed: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """Resample ``track`` to near-uniform spacing.

    Parameters
    ----------
    track:
        ``(N, 2)`` array of waypoints.
    k_reg:
        Degree of the smoothing spline (``"smooth"`` mode only).
    s_reg:
        Smoothing factor passed as ``s`` to :func:`scipy.interpolate.splprep`
        (``"smooth"`` mode only).
    stepsize_prep:
        Spacing of the linear pre-interpolation (``"smooth"`` mode only).
    stepsize_reg:
        Target spacing of the output points.  At least ten points are
        returned.
    mode:
        ``"linear"`` or ``"smooth"``.
    closed:
        Treat the track as a loop.  The first point is appended when the
        ends differ, the smooth mode fits a periodic spline and in both modes
        the output repeats its first point at the end.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        The ``(M, 2)`` resampled track and its ``M - 1`` element lengths.
        For a closed track the last element is the closing segment.
    """
    track = np.asarray(track, dtype=float)
    if track.ndim != 2 or track.shape[1] != 2:
        raise InvalidInput("track must have shape (N, 2)")
    if track.shape[0] < 2:
        raise InvalidInput("track must contain at least two points")
    if stepsize_reg <= 0 or stepsize_prep <= 0:
        raise InvalidInput("step sizes must be positive")
    if mode not in SMOOTHING_MODES:
        raise InvalidInput(f"unknown smoothing mode '{mode}'")

    if closed and np.hypot(*(track[0] - track[-1])) > _SEGMENT_EPS:
        track = np.vstack((track, track[0]))

    if mode == "linear":
        track_out = _resample_linear(track, stepsize_reg)
    else:
        track_out = _resample_smooth(track, k_reg, s_reg, stepsize_prep, stepsize_reg, closed)
    if closed:
        track_out[-1] = track_out[0]

    el_lengths_out = np.hypot(np.diff(track_out[:, 0]), np.diff(track_out[:, 1]))
    return track_out, el_lengths_out


def _cumulative_length(track: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    el_lengths = np.hypot(np.diff(track[:, 0]), np.diff(track[:, 1]))
    s_orig = np.concatenate(([0.0], np.cumsum(el_lengths)))
    if s_orig[-1] <= _SEGMENT_EPS:
        raise InvalidInput("track has zero length")
    return el_lengths, s_orig


def _interp_at(track: np.ndarray, s_target: np.ndarray) -> np.ndarray:
    """Linearly interpolate ``track`` at the arc-length positions ``s_target``."""
    el_lengths, s_orig = _cumulative_length(track)
    n_points = track.shape[0]

    # First node strictly beyond the target marks the end of its segment.
    seg_idx = np.searchsorted(s_orig, s_target, side="right") - 1
    seg_idx = np.clip(seg_idx, 0, n_points - 2)

    seg_length = el_lengths[seg_idx]
    local_s = s_target - s_orig[seg_idx]
    valid = seg_length > _SEGMENT_EPS
    t = np.zeros_like(s_target)
    t[valid] = local_s[valid] / seg_length[valid]
    t = np.clip(t, 0.0, 1.0)

    return (1.0 - t)[:, None] * track[seg_idx] + t[:, None] * track[seg_idx + 1]


def _resample_linear(track: np.ndarray, stepsize: float) -> np.ndarray:
    _, s_orig = _cumulative_length(track)
    total_length = s_orig[-1]
    n_out = max(_MIN_POINTS_OUT, int(np.ceil(total_length / stepsize)))
    s_uniform = np.linspace(0.0, total_length, n_out)
    return _interp_at(track, s_uniform)


def _resample_smooth(
    track: np.ndarray,
    k_reg: int,
    s_reg: float,
    stepsize_prep: float,
    stepsize_reg: float,
    closed: bool,
) -> np.ndarray:
    if not 1 <= k_reg <= 5:
        raise InvalidInput("k_reg must be between 1 and 5")
    if s_reg < 0:
        raise InvalidInput("s_reg must be non-negative")

    _, s_orig = _cumulative_length(track)
    total_length = s_orig[-1]
    n_prep = max(k_reg + 2, int(np.ceil(total_length / stepsize_prep)) + 1)
    track_prep = _interp_at(track, np.linspace(0.0, total_length, n_prep))

    # Periodic fit ignores the last point but expects it to repeat the first.
    if closed:
        track_prep[-1] = track_prep[0]

    try:
        tck, _ = splprep([track_prep[:, 0], track_prep[:, 1]], k=k_reg, s=s_reg, per=int(closed))
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"smoothing spline fit failed: {exc}") from exc

    n_dense = max(1000, 4 * n_prep)
    dense = np.array(splev(np.linspace(0.0, 1.0, n_dense), tck)).T
    length_smoothed = float(np.sum(np.hypot(np.diff(dense[:, 0]), np.diff(dense[:, 1]))))

    n_out = max(_MIN_POINTS_OUT, int(np.ceil(length_smoothed / stepsize_reg)))
    return np.array(splev(np.linspace(0.0, 1.0, n_out + int(closed)), tck)).T


__all__ = ["SMOOTHING_MODES", "spline_approximation"]
