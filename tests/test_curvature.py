import sys
from pathlib import Path

import numpy as np
import pytest

# Add the repository root to the import path for test execution.
sys.path.append(str(Path(__file__).resolve().parents[1]))

from racepath.curvature import calc_head_curv_num
from racepath.exceptions import InvalidInput
from racepath.smoothing import spline_approximation


def _circle(R: float, n: int) -> tuple[np.ndarray, np.ndarray]:
    theta = np.linspace(0.0, 2 * np.pi, n, endpoint=False)
    path = np.column_stack((R * np.cos(theta), R * np.sin(theta)))
    closed = np.vstack((path, path[0]))
    el_lengths = np.hypot(np.diff(closed[:, 0]), np.diff(closed[:, 1]))
    return path, el_lengths


def test_closed_circle_heading_and_curvature() -> None:
    path, el_lengths = _circle(20.0, 100)
    psi, kappa = calc_head_curv_num(path, el_lengths, True)

    # Counter-clockwise travel starts northwards at (R, 0).
    assert np.isclose(psi[0], 0.0, atol=1e-9)
    assert np.allclose(kappa, 1.0 / 20.0, rtol=1e-2)
    assert np.all(psi > -np.pi) and np.all(psi <= np.pi)


def test_clockwise_circle_has_negative_curvature() -> None:
    path, el_lengths = _circle(20.0, 100)
    path = path[::-1]
    _, kappa = calc_head_curv_num(path, el_lengths[::-1], True)
    assert np.allclose(kappa, -1.0 / 20.0, rtol=1e-2)


def test_open_straight_line() -> None:
    path = np.column_stack((np.zeros(11), np.arange(11.0)))
    el_lengths = np.ones(10)
    psi, kappa = calc_head_curv_num(path, el_lengths, False)
    assert np.allclose(psi, 0.0)
    assert np.allclose(kappa, 0.0)


def test_open_arc_curvature() -> None:
    R = 30.0
    theta = np.linspace(0.0, 0.5 * np.pi, 40)
    path = np.column_stack((R * np.cos(theta), R * np.sin(theta)))
    el_lengths = np.hypot(np.diff(path[:, 0]), np.diff(path[:, 1]))
    _, kappa = calc_head_curv_num(path, el_lengths, False)
    # One-sided end headings bias the neighbouring estimates.
    assert np.allclose(kappa[2:-2], 1.0 / R, rtol=1e-2)


def test_closed_square_corner_curvature() -> None:
    square = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
    _, kappa = calc_head_curv_num(square, np.full(4, 10.0), True)
    # Quarter turn at every corner spread over two edges.
    assert np.allclose(kappa, np.pi / 20.0)


def test_dense_square_is_straight_between_corners() -> None:
    square = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0], [0.0, 0.0]])
    dense, _ = spline_approximation(square, stepsize_reg=0.5, mode="linear")
    dense = dense[:-1]
    el_lengths = np.hypot(*np.diff(np.vstack((dense, dense[0])), axis=0).T)

    _, kappa = calc_head_curv_num(dense, el_lengths, True)

    mid_bottom = (np.abs(dense[:, 1]) < 1e-9) & (np.abs(dense[:, 0] - 5.0) < 1.5)
    assert mid_bottom.sum() > 3
    assert np.allclose(kappa[mid_bottom], 0.0, atol=1e-9)
    assert kappa.max() > 0.0
    assert kappa.min() >= -1e-9


def test_calc_curv_false_returns_zeros() -> None:
    path, el_lengths = _circle(20.0, 50)
    psi, kappa = calc_head_curv_num(path, el_lengths, True, calc_curv=False)
    assert psi.shape == (50,)
    assert np.array_equal(kappa, np.zeros(50))


def test_invalid_lengths_and_duplicates() -> None:
    path, el_lengths = _circle(20.0, 50)
    with pytest.raises(InvalidInput):
        calc_head_curv_num(path, el_lengths[:-1], True)
    with pytest.raises(InvalidInput):
        calc_head_curv_num(path, el_lengths, False)
    with pytest.raises(InvalidInput):
        calc_head_curv_num(np.zeros((5, 2)), np.zeros(5), True)
