import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Add the repository root to the import path for test execution.
sys.path.append(str(Path(__file__).resolve().parents[1]))

from racepath import path_optim
from racepath.exceptions import InvalidInput
from racepath.path_optim import calc_raceline, opt_min_curv


def _zigzag(n: int = 11, width: float = 2.0) -> tuple[np.ndarray, np.ndarray]:
    x = np.arange(float(n))
    y = 0.5 * (-1.0) ** np.arange(n)
    reftrack = np.column_stack((x, y, np.full(n, width), np.full(n, width)))
    normvectors = np.tile([0.0, 1.0], (n, 1))
    return reftrack, normvectors


def test_without_solve_returns_reference_line() -> None:
    reftrack, normvectors = _zigzag()
    alpha, s_opt, t_opt = opt_min_curv(reftrack, normvectors, np.eye(10), 0.5, 1.0, closed=False)
    assert np.array_equal(alpha, np.zeros(11))
    assert s_opt[0] == 0.0
    assert np.allclose(np.diff(s_opt), np.sqrt(2.0))
    assert t_opt == 0.0


def test_solve_straightens_zigzag() -> None:
    reftrack, normvectors = _zigzag()
    alpha, _, t_opt = opt_min_curv(
        reftrack, normvectors, np.eye(10), 5.0, 1.0, closed=False, solve=True
    )
    y = reftrack[:, 1] + alpha
    assert np.max(np.abs(y[:-2] - 2 * y[1:-1] + y[2:])) < 1e-2
    assert np.all(np.abs(alpha) <= 1.5 + 1e-6)
    assert t_opt >= 0.0


def test_fixed_end_points_stay_on_reference() -> None:
    reftrack, normvectors = _zigzag()
    alpha, _, _ = opt_min_curv(
        reftrack, normvectors, np.eye(10), 5.0, 1.0, closed=False, fix_s=True, fix_e=True, solve=True
    )
    assert alpha[0] == pytest.approx(0.0, abs=1e-9)
    assert alpha[-1] == pytest.approx(0.0, abs=1e-9)
    y = reftrack[:, 1] + alpha
    assert np.allclose(y, 0.5, atol=5e-2)


def test_system_matrix_only_shape_checked() -> None:
    reftrack, normvectors = _zigzag()
    alpha_eye, _, _ = opt_min_curv(
        reftrack, normvectors, np.eye(10), 5.0, 1.0, closed=False, solve=True
    )
    alpha_zero, _, _ = opt_min_curv(
        reftrack, normvectors, np.zeros((3, 3)), 5.0, 1.0, closed=False, solve=True
    )
    assert np.array_equal(alpha_eye, alpha_zero)


def test_invalid_inputs() -> None:
    reftrack, normvectors = _zigzag()
    with pytest.raises(InvalidInput):
        opt_min_curv(reftrack[:, :3], normvectors, np.eye(10), 0.5, 1.0)
    with pytest.raises(InvalidInput):
        opt_min_curv(reftrack, normvectors[:-1], np.eye(10), 0.5, 1.0)
    with pytest.raises(InvalidInput):
        opt_min_curv(reftrack, normvectors, np.ones((2, 3)), 0.5, 1.0)
    with pytest.raises(InvalidInput):
        opt_min_curv(reftrack, normvectors, np.eye(10), 5.0, 5.0, closed=False, solve=True)


def test_solver_failure_raises(monkeypatch) -> None:
    reftrack, normvectors = _zigzag()

    def fake_minimize(*args, **kwargs):
        return SimpleNamespace(success=False, message="Iteration limit reached", x=np.zeros(11))

    monkeypatch.setattr(path_optim, "minimize", fake_minimize)
    with pytest.raises(RuntimeError, match="Optimisation failed"):
        opt_min_curv(reftrack, normvectors, np.eye(10), 5.0, 1.0, closed=False, solve=True)


def test_calc_raceline() -> None:
    reftrack, normvectors = _zigzag()
    alpha = np.linspace(-1.0, 1.0, 11)
    raceline = calc_raceline(reftrack, normvectors, alpha)
    assert np.allclose(raceline[:, 0], reftrack[:, 0])
    assert np.allclose(raceline[:, 1], reftrack[:, 1] + alpha)
    with pytest.raises(InvalidInput):
        calc_raceline(reftrack, normvectors, alpha[:-1])
