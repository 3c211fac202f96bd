import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Ensure the package is on the path for test discovery when pytest runs directly
sys.path.append(str(Path(__file__).resolve().parents[1]))

from racepath.config import PipelineOptions
from racepath.exceptions import InvalidInput
from racepath.geometry import check_track, load_track, prepare_track, set_new_start_point


def _circle_track(R: float = 50.0, n: int = 100) -> np.ndarray:
    theta = np.linspace(0.0, 2 * np.pi, n, endpoint=False)
    return np.column_stack(
        (R * np.cos(theta), R * np.sin(theta), np.full(n, 3.0), np.full(n, 4.0))
    )


def test_load_track_default_widths_and_flip(tmp_path: Path) -> None:
    track_file = tmp_path / "track.csv"
    pd.DataFrame({"x_m": [0.0, 10.0, 10.0], "y_m": [0.0, 0.0, 10.0]}).to_csv(track_file, index=False)
    track = load_track(track_file)
    assert track.shape == (3, 4)
    assert np.allclose(track[:, 2:], 3.0)

    pd.DataFrame(
        {
            "x_m": [0.0, 10.0, 10.0],
            "y_m": [0.0, 0.0, 10.0],
            "w_tr_right_m": [1.0, 1.5, 2.0],
            "w_tr_left_m": [4.0, 4.5, 5.0],
        }
    ).to_csv(track_file, index=False)
    flipped = load_track(track_file, flip=True)
    assert np.allclose(flipped[0], [10.0, 10.0, 5.0, 2.0])
    assert np.allclose(flipped[-1], [0.0, 0.0, 4.0, 1.0])


def test_load_track_missing_columns(tmp_path: Path) -> None:
    track_file = tmp_path / "track.csv"
    pd.DataFrame({"x_m": [0.0, 1.0]}).to_csv(track_file, index=False)
    with pytest.raises(InvalidInput, match="missing required columns: y_m"):
        load_track(track_file)


def test_check_track() -> None:
    track = _circle_track()
    assert check_track(track).shape == track.shape
    with pytest.raises(InvalidInput):
        check_track(track[:2])
    with pytest.raises(InvalidInput):
        check_track(track[:, :3])
    bad = track.copy()
    bad[5, 2] = 0.0
    with pytest.raises(InvalidInput):
        check_track(bad)
    bad = track.copy()
    bad[5, 0] = np.nan
    with pytest.raises(InvalidInput):
        check_track(bad)


def test_set_new_start_point() -> None:
    track = _circle_track(n=8)
    rotated = set_new_start_point(track, [0.0, 49.0])
    assert np.allclose(rotated[0, :2], [0.0, 50.0], atol=1e-9)
    assert np.allclose(rotated[-1], track[1])


def test_prepare_closed_circle() -> None:
    geom = prepare_track(_circle_track())
    n = geom.reftrack.shape[0]

    assert geom.closed
    assert geom.normvectors.shape == (n, 2)
    assert geom.el_lengths.shape == (n,)
    assert geom.A.shape == (4 * n, 4 * n)
    radius = np.hypot(geom.reftrack[:, 0], geom.reftrack[:, 1])
    assert np.allclose(radius, 50.0, atol=0.1)
    assert np.allclose(geom.reftrack[:, 2], 3.0)
    assert np.allclose(geom.reftrack[:, 3], 4.0)
    # Counter-clockwise loop: left normals point to the centre.
    inward = -geom.reftrack[:, :2] / radius[:, None]
    assert np.all(np.sum(geom.normvectors * inward, axis=1) > 0.99)
    assert np.allclose(geom.el_lengths, 3.0, atol=0.2)


def test_prepare_linear_fit_mode() -> None:
    geom = prepare_track(_circle_track(), PipelineOptions(fit_mode="linear"))
    n = geom.reftrack.shape[0]
    assert np.array_equal(geom.A, np.eye(n))


def test_prepare_open_straight() -> None:
    x = np.arange(0.0, 101.0, 5.0)
    track = np.column_stack((x, np.zeros_like(x), np.full(x.size, 2.0), np.full(x.size, 2.5)))
    geom = prepare_track(track, closed=False)

    n = geom.reftrack.shape[0]
    assert not geom.closed
    assert n == 34
    assert geom.el_lengths.shape == (n - 1,)
    assert geom.normvectors.shape == (n, 2)
    assert np.allclose(geom.normvectors, [0.0, 1.0], atol=1e-9)
    assert np.allclose(geom.reftrack[[0, -1], 0], [0.0, 100.0])
