from __future__ import annotations

"""Command line runner for the raceline pipeline.

Running ``python -m racepath.run_demo --track track.csv`` executes the full
workflow: the track is loaded and regularised, the reference line is
optionally replaced by a minimum curvature raceline, the result is resampled
and a feasible speed profile and lap time are computed.  Results are written
to ``--out-dir`` or to a time-stamped directory under ``outputs``.

Two files are produced for each run:

``raceline.csv``
    Resampled raceline with arc length, heading, curvature, speed,
    longitudinal acceleration and lateral shift from the reference line.
``summary.json``
    Lap time and a few scalar figures of the run.
"""

from pathlib import Path
from datetime import datetime
import argparse
import json
import time

import numpy as np
import pandas as pd

from .config import PipelineOptions, RegSmoothOptions, StepsizeOptions
from .curvature import calc_head_curv_num
from .geometry import check_track, load_track, prepare_track
from .io_utils import write_csv
from .path_optim import calc_raceline, opt_min_curv
from .smoothing import SMOOTHING_MODES
from .speed_solver import calc_lap_time, calc_vel_profile
from .splines import FIT_MODES, calc_splines, interp_splines
from .vehicle import VehicleParams

OPT_TYPES = ("none", "mincurv")


def run(
    track_file: str,
    vehicle_file: str | None = None,
    opt_type: str = "none",
    fit_mode: str = "cubic",
    smoothing: str = "linear",
    stepsize_reg: float = 3.0,
    out_dir: str | Path | None = None,
    flip: bool = False,
    closed: bool = True,
    v_start: float | None = None,
    v_end: float | None = None,
    max_iter: int | None = None,
) -> tuple[float, Path]:
    """Execute the pipeline and return lap time and output directory.

    Parameters
    ----------
    opt_type:
        ``"none"`` keeps the regularised reference line, ``"mincurv"`` shifts
        it to the minimum curvature raceline.
    fit_mode, smoothing, stepsize_reg:
        Override the corresponding :class:`~racepath.config.PipelineOptions`
        defaults.
    closed:
        Treat the track as a loop.  Open tracks keep both end points on the
        reference line and may pin ``v_start``/``v_end``.
    max_iter:
        Iteration limit of the minimum curvature optimisation.
    """
    if opt_type not in OPT_TYPES:
        raise ValueError(f"unknown opt_type '{opt_type}'")
    start_time = time.perf_counter()

    # Load input data
    vehicle = VehicleParams.from_csv(vehicle_file) if vehicle_file else VehicleParams()
    options = PipelineOptions(
        stepsizes=StepsizeOptions(stepsize_reg=stepsize_reg),
        reg_smooth=RegSmoothOptions(mode=smoothing),
        fit_mode=fit_mode,
    )
    track = check_track(load_track(track_file, flip=flip))
    geom = prepare_track(track, options, closed=closed)

    # Raceline
    alpha, _, t_opt = opt_min_curv(
        geom.reftrack,
        geom.normvectors,
        geom.A,
        vehicle.curvlim,
        options.width_opt,
        closed=closed,
        fix_s=not closed,
        fix_e=not closed,
        solve=opt_type == "mincurv",
        max_iterations=max_iter,
    )
    raceline = calc_raceline(geom.reftrack, geom.normvectors, alpha)

    # Resample the raceline
    if closed:
        path = np.vstack((raceline, raceline[0]))
        coeffs_x, coeffs_y, _, _ = calc_splines(path, closed=True, fit_mode=fit_mode)
    else:
        el_race = np.hypot(np.diff(raceline[:, 0]), np.diff(raceline[:, 1]))
        psi_race, _ = calc_head_curv_num(raceline, el_race, False, calc_curv=False)
        coeffs_x, coeffs_y, _, _ = calc_splines(
            raceline, el_race, psi_s=psi_race[0], psi_e=psi_race[-1], closed=False, fit_mode=fit_mode
        )
    points, spline_inds, t_values, s = interp_splines(
        coeffs_x,
        coeffs_y,
        incl_last_point=not closed,
        stepsize_approx=options.stepsizes.stepsize_interp_after_opt,
    )
    if closed:
        closing = np.hypot(*(points[0] - points[-1]))
        el_lengths = np.append(np.diff(s), closing)
    else:
        el_lengths = np.diff(s)

    curv = options.curv_calc
    psi, kappa = calc_head_curv_num(
        points,
        el_lengths,
        closed,
        stepsize_psi_preview=curv.d_preview_head,
        stepsize_psi_review=curv.d_review_head,
        stepsize_curv_preview=curv.d_preview_curv,
        stepsize_curv_review=curv.d_review_curv,
    )

    # Lateral shift between the resampled points' neighbouring reference points
    alpha_next = alpha[(spline_inds + 1) % alpha.size]
    alpha_interp = (1.0 - t_values) * alpha[spline_inds] + t_values * alpha_next

    # Speed solver
    vx, ax = calc_vel_profile(
        kappa,
        el_lengths,
        closed,
        vehicle.dragcoeff,
        vehicle.mass,
        vehicle.ggv(),
        mu=vehicle.mu,
        v_start=v_start,
        v_end=v_end,
    )
    lap_time = calc_lap_time(vx, el_lengths)

    # Write outputs
    if out_dir is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_dir = Path("outputs") / timestamp
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    results_df = pd.DataFrame(
        {
            "s_m": s,
            "x_m": points[:, 0],
            "y_m": points[:, 1],
            "psi_rad": psi,
            "kappa_radpm": kappa,
            "vx_mps": vx,
            "ax_mps2": ax,
            "alpha_m": alpha_interp,
        }
    )
    write_csv(results_df, out_dir / "raceline.csv")

    # Store a simple summary so tests and consumers can easily access the
    # overall lap time without parsing the full CSV results.
    summary = {
        "lap_time_s": lap_time,
        "n_points": int(points.shape[0]),
        "v_max_mps": float(vx.max()),
        "opt_type": opt_type,
        "closed": closed,
    }
    with (out_dir / "summary.json").open("w") as f:
        json.dump(summary, f)

    total_runtime = time.perf_counter() - start_time
    print(
        f"Raceline: {points.shape[0]} points, "
        f"max speed {vx.max():.1f} m/s, "
        f"optimisation: {t_opt:.3f} s, "
        f"total runtime: {total_runtime:.3f} s"
    )

    return lap_time, out_dir


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Compute a raceline and its speed profile")
    parser.add_argument("--track", required=True, help="Track centreline CSV")
    parser.add_argument("--vehicle", default=None, help="Vehicle parameter CSV")
    parser.add_argument(
        "--opt-type",
        choices=OPT_TYPES,
        default="none",
        help="Keep the reference line or optimise for minimum curvature",
    )
    parser.add_argument("--fit-mode", choices=FIT_MODES, default="cubic", help="Spline fit")
    parser.add_argument(
        "--smoothing", choices=SMOOTHING_MODES, default="linear", help="Track regularisation"
    )
    parser.add_argument(
        "--stepsize-reg", type=float, default=3.0, help="Point spacing of the reference line"
    )
    parser.add_argument("--out-dir", default=None, help="Output directory")
    parser.add_argument("--flip", action="store_true", help="Reverse the driving direction")
    parser.add_argument(
        "--open",
        dest="closed",
        action="store_false",
        help="Treat the track as open instead of closed",
    )
    parser.add_argument("--v-start", type=float, default=None, help="Start speed of an open track")
    parser.add_argument("--v-end", type=float, default=None, help="End speed of an open track")
    parser.add_argument(
        "--max-iter",
        type=int,
        default=None,
        help="Maximum iterations for the minimum curvature optimisation",
    )
    parser.add_argument(
        "--quiet-lap-time",
        action="store_true",
        help="Suppress lap time output",
    )
    args = parser.parse_args(argv)

    lap_time, out_dir = run(
        args.track,
        args.vehicle,
        opt_type=args.opt_type,
        fit_mode=args.fit_mode,
        smoothing=args.smoothing,
        stepsize_reg=args.stepsize_reg,
        out_dir=args.out_dir,
        flip=args.flip,
        closed=args.closed,
        v_start=args.v_start,
        v_end=args.v_end,
        max_iter=args.max_iter,
    )
    if not args.quiet_lap_time:
        print(f"Lap time: {lap_time:.2f} s")
    print(f"Outputs written to {out_dir}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
