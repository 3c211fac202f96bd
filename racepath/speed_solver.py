r"""Velocity profile solver for a predefined path.

This module computes a feasible speed profile along a path described by its
curvature :math:`\kappa` and element lengths.  The lateral acceleration limit
caps the speed at every sample, then a backward pass (open paths only)
enforces the braking limit and a forward pass the driving limit.  Aerodynamic
drag helps braking and opposes acceleration:

.. math::

    a_{drag} = \frac{c_{drag} v^2}{m}

The longitudinal acceleration is recovered from :math:`v_{i+1}^2 - v_i^2 = 2 a
\Delta s` and has the drag deceleration subtracted.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .exceptions import InvalidInput
from .vehicle import GGVLimits

_KAPPA_EPS = 1e-6
_SPEED_EPS = 1e-6


def calc_vel_profile(
    kappa: Iterable[float],
    el_lengths: Iterable[float],
    closed: bool,
    drag_coeff: float,
    m_veh: float,
    ggv: GGVLimits | Iterable[float] | None = None,
    mu: float = 1.0,
    v_start: float | None = None,
    v_end: float | None = None,
) -> Tuple[np.ndarray, np.ndarray]:
    r"""Solve for the velocity and acceleration profile along a path.

    Parameters
    ----------
    kappa:
        Curvature at every sample.
    el_lengths:
        Distances between samples.  Same length as ``kappa`` for a closed
        path (the last element closes the loop), one shorter for an open path.
    closed:
        Whether the path is a loop.  Closed paths skip the backward pass and
        ignore ``v_start``/``v_end``.
    drag_coeff:
        Lumped drag coefficient so that the drag force is
        ``drag_coeff * v**2``.
    m_veh:
        Vehicle mass in ``kg``.
    ggv:
        Speed and acceleration limits as :class:`GGVLimits`, a
        ``[v_max, ax_max, ay_max]`` vector or a GGV table (see
        :meth:`GGVLimits.from_array`).
    mu:
        Friction scaling applied to the lateral acceleration limit.
    v_start, v_end:
        Optional speeds pinned at the first and last sample of an open path.
        Values above the lateral speed cap of that sample are clipped to it.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Speed ``vx`` and longitudinal acceleration ``ax`` at every sample.
    """
    kappa = np.asarray(kappa, dtype=float)
    el_lengths = np.asarray(el_lengths, dtype=float)
    if kappa.ndim != 1 or el_lengths.ndim != 1:
        raise InvalidInput("kappa and el_lengths must be one-dimensional")
    n_points = kappa.size
    if n_points == 0:
        raise InvalidInput("kappa must not be empty")

    if closed and n_points != el_lengths.size:
        raise InvalidInput("kappa and el_lengths must have the same length for a closed path")
    if not closed and n_points != el_lengths.size + 1:
        raise InvalidInput("kappa must have length el_lengths + 1 for an open path")
    if np.any(el_lengths <= 0):
        raise InvalidInput("el_lengths must be positive")
    if m_veh <= 0:
        raise InvalidInput("m_veh must be positive")
    if drag_coeff < 0:
        raise InvalidInput("drag_coeff must be non-negative")
    if mu < 0:
        raise InvalidInput("mu must be non-negative")
    if (v_start is not None and v_start < 0) or (v_end is not None and v_end < 0):
        raise InvalidInput("boundary speeds must be non-negative")

    limits = ggv if isinstance(ggv, GGVLimits) else GGVLimits.from_array(ggv)

    # Lateral acceleration cap.
    kappa_abs = np.abs(kappa)
    v_lat = np.full(n_points, limits.v_max)
    curved = kappa_abs > _KAPPA_EPS
    v_lat[curved] = np.sqrt(limits.ay_max * mu / kappa_abs[curved])
    vx = np.minimum(limits.v_max, v_lat)

    if not closed:
        if v_start is not None:
            vx[0] = min(float(v_start), vx[0])
        if v_end is not None:
            vx[-1] = min(float(v_end), vx[-1])

    # Backward pass: braking limit, drag assists.
    if not closed:
        for i in range(n_points - 2, -1, -1):
            v_next = vx[i + 1]
            decel = limits.ax_max + drag_coeff * v_next**2 / m_veh
            vx[i] = min(vx[i], np.sqrt(v_next**2 + 2.0 * decel * el_lengths[i]))

    # Forward pass: driving limit, drag resists.
    for i in range(1, n_points):
        v_prev = vx[i - 1]
        ds = el_lengths[i - 1]
        net = limits.ax_max - drag_coeff * v_prev**2 / m_veh
        if net > 0.0:
            v_reach = np.sqrt(v_prev**2 + 2.0 * net * ds)
        else:
            v_reach = np.sqrt(max(0.0, v_prev**2 - 2.0 * abs(net) * ds))
        vx[i] = min(vx[i], v_reach)

    if n_points == 1:
        return vx, np.zeros(1)

    v_sq = vx**2
    ax_seg = (v_sq[1:] - v_sq[:-1]) / (2.0 * el_lengths[: n_points - 1])
    ax = np.empty(n_points)
    ax[0] = ax_seg[0]
    ax[-1] = ax_seg[-1]
    ax[1:-1] = 0.5 * (ax_seg[:-1] + ax_seg[1:])
    ax -= drag_coeff * v_sq / m_veh

    return vx, ax


def calc_lap_time(vx_profile: Iterable[float], el_lengths: Iterable[float]) -> float:
    """Integrate ``ds / v`` over the path.

    The mean of the two bounding speeds is used for every segment.  When
    ``el_lengths`` has as many entries as ``vx_profile`` the last one is the
    closing segment of a loop and runs from the last sample back to the first.
    Segments with a mean speed of (almost) zero are skipped.
    """
    v = np.asarray(vx_profile, dtype=float)
    el_lengths = np.asarray(el_lengths, dtype=float)
    if el_lengths.size == v.size:
        v_next = np.roll(v, -1)
    elif el_lengths.size == v.size - 1:
        v_next = v[1:]
        v = v[:-1]
    else:
        raise InvalidInput("el_lengths must match the velocity profile length or be one shorter")

    v_avg = 0.5 * (v + v_next)
    moving = v_avg > _SPEED_EPS
    return float(np.sum(el_lengths[moving] / v_avg[moving]))


__all__ = ["calc_vel_profile", "calc_lap_time"]
