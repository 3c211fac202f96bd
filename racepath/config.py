"""Option groups controlling the path preparation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import InvalidInput
from .smoothing import SMOOTHING_MODES
from .splines import FIT_MODES


@dataclass
class StepsizeOptions:
    """Point spacings in metres.

    ``stepsize_prep`` is the pre-interpolation spacing of the smoothing
    spline, ``stepsize_reg`` the spacing of the regularised reference line and
    ``stepsize_interp_after_opt`` the spacing the final raceline is resampled
    at.
    """

    stepsize_prep: float = 1.0
    stepsize_reg: float = 3.0
    stepsize_interp_after_opt: float = 2.0

    def __post_init__(self) -> None:
        if min(self.stepsize_prep, self.stepsize_reg, self.stepsize_interp_after_opt) <= 0:
            raise InvalidInput("step sizes must be positive")


@dataclass
class RegSmoothOptions:
    k_reg: int = 3
    s_reg: float = 10.0
    mode: str = "linear"

    def __post_init__(self) -> None:
        if self.mode not in SMOOTHING_MODES:
            raise InvalidInput(f"unknown smoothing mode '{self.mode}'")


@dataclass
class CurvCalcOptions:
    """Preview/review distances in metres for heading and curvature."""

    d_preview_curv: float = 2.0
    d_review_curv: float = 2.0
    d_preview_head: float = 1.0
    d_review_head: float = 1.0

    def __post_init__(self) -> None:
        if min(self.d_preview_curv, self.d_review_curv, self.d_preview_head, self.d_review_head) < 0:
            raise InvalidInput("preview/review distances must be non-negative")


@dataclass
class PipelineOptions:
    stepsizes: StepsizeOptions = field(default_factory=StepsizeOptions)
    reg_smooth: RegSmoothOptions = field(default_factory=RegSmoothOptions)
    curv_calc: CurvCalcOptions = field(default_factory=CurvCalcOptions)
    fit_mode: str = "cubic"
    width_opt: float = 3.4  # vehicle width incl. safety margin used by the optimiser

    def __post_init__(self) -> None:
        if self.fit_mode not in FIT_MODES:
            raise InvalidInput(f"unknown fit_mode '{self.fit_mode}'")
        if self.width_opt <= 0:
            raise InvalidInput("width_opt must be positive")
