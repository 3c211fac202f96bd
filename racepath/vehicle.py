"""Vehicle parameters and acceleration limits.

:class:`VehicleParams` bundles the handful of scalar vehicle properties the
pipeline needs and can be loaded from a simple ``key,value`` CSV file.
:class:`GGVLimits` holds the speed and acceleration caps consumed by
:func:`racepath.speed_solver.calc_vel_profile`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Iterable

import numpy as np

from .exceptions import InvalidInput
from .io_utils import read_vehicle_params_csv


@dataclass(frozen=True)
class GGVLimits:
    """Maximum speed and longitudinal/lateral acceleration.

    Parameters
    ----------
    v_max:
        Top speed in ``m/s``.
    ax_max:
        Longitudinal acceleration limit in ``m/s^2``.  Used both for driving
        and braking.
    ay_max:
        Lateral acceleration limit in ``m/s^2``.
    """

    v_max: float = 50.0
    ax_max: float = 8.0
    ay_max: float = 8.0

    def __post_init__(self) -> None:
        if self.v_max <= 0:
            raise InvalidInput("v_max must be positive")
        if self.ax_max <= 0 or self.ay_max <= 0:
            raise InvalidInput("acceleration limits must be positive")

    @classmethod
    def from_array(cls, ggv: Iterable[float] | np.ndarray | None) -> "GGVLimits":
        """Build limits from ``[v_max, ax_max, ay_max]`` or a GGV table.

        A two-dimensional ``(K, 3)`` table with rows ``[v, ax_max(v),
        ay_max(v)]`` is reduced to a conservative envelope: the highest
        tabulated speed and the smallest acceleration limits.  ``None`` or an
        empty input gives the defaults.
        """
        if ggv is None:
            return cls()
        arr = np.asarray(ggv, dtype=float)
        if arr.size == 0:
            return cls()
        if arr.ndim == 1:
            if arr.size < 3:
                raise InvalidInput("ggv vector must hold v_max, ax_max and ay_max")
            return cls(float(arr[0]), float(arr[1]), float(arr[2]))
        if arr.ndim == 2 and arr.shape[1] == 3:
            return cls(float(arr[:, 0].max()), float(arr[:, 1].min()), float(arr[:, 2].min()))
        raise InvalidInput("ggv table must have three columns")


@dataclass
class VehicleParams:
    """Scalar vehicle properties used by the pipeline.

    ``dragcoeff`` is the lumped ``0.5 * rho * c_d * A`` term so that the drag
    force is ``dragcoeff * v**2``.  ``curvlim`` bounds the path curvature the
    vehicle can follow and ``width`` is used to keep the raceline inside the
    track.
    """

    v_max: float = 70.0
    length: float = 4.7
    width: float = 2.0
    mass: float = 1200.0
    dragcoeff: float = 0.75
    curvlim: float = 0.12
    g: float = 9.81
    ax_max: float = 8.0
    ay_max: float = 8.0
    mu: float = 1.0

    def __post_init__(self) -> None:
        if self.mass <= 0:
            raise InvalidInput("mass must be positive")
        if self.v_max <= 0 or self.width <= 0:
            raise InvalidInput("v_max and width must be positive")
        if self.dragcoeff < 0:
            raise InvalidInput("dragcoeff must be non-negative")
        if self.mu < 0:
            raise InvalidInput("mu must be non-negative")

    @classmethod
    def from_csv(cls, path: str | Path) -> "VehicleParams":
        """Load parameters from a ``name,value`` CSV file.

        Every name must be a field of this class; missing fields keep their
        defaults.  Unknown names and non-numeric values raise
        :class:`InvalidInput`.
        """
        values = read_vehicle_params_csv(path, allowed_keys={f.name for f in fields(cls)})
        return cls(**values)

    def ggv(self) -> GGVLimits:
        """Acceleration limits for the speed profile solver."""
        return GGVLimits(self.v_max, self.ax_max, self.ay_max)
