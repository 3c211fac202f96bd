import sys
from pathlib import Path

import numpy as np
import pytest

# Add the repository root to the import path for test execution.
sys.path.append(str(Path(__file__).resolve().parents[1]))

from racepath.exceptions import InvalidInput
from racepath.path_matching import path_matching_global, path_matching_local


REFTRACK = np.column_stack((np.arange(11.0), np.zeros(11)))


def test_global_matching_returns_reference_arc_length() -> None:
    s = path_matching_global([[2.2, 0.5], [7.9, -1.0]], REFTRACK)
    assert np.allclose(s, [2.0, 8.0])

    s = path_matching_global([[2.2, 0.5], [7.9, -1.0]], REFTRACK, np.full(10, 2.0))
    assert np.allclose(s, [4.0, 16.0])


def test_local_matching_near_guess() -> None:
    idx, t = path_matching_local([5.4, 0.3], REFTRACK, 5)
    assert idx == 5
    assert t == pytest.approx(0.4)
    assert isinstance(idx, int)


def test_local_matching_clamps_far_guess() -> None:
    idx, t = path_matching_local([5.4, 0.3], REFTRACK, 100)
    assert idx == 5
    assert t == pytest.approx(0.4)

    idx, t = path_matching_local([5.4, 0.3], REFTRACK, -3)
    assert idx == 5


def test_local_matching_window_and_end_of_track() -> None:
    # Outside the search window the closest point in the window wins.
    idx, _ = path_matching_local([9.2, 0.0], REFTRACK, 0, search_window=3)
    assert idx == 3

    idx, t = path_matching_local([12.0, 0.0], REFTRACK, 10)
    assert idx == 10
    assert t == 0.0

    idx, t = path_matching_local([-2.0, 0.0], REFTRACK, 0)
    assert idx == 0
    assert t == 0.0


def test_invalid_inputs() -> None:
    with pytest.raises(InvalidInput):
        path_matching_local([1.0, 2.0, 3.0], REFTRACK, 0)
    with pytest.raises(InvalidInput):
        path_matching_global(np.zeros((0, 2)), REFTRACK)
    with pytest.raises(InvalidInput):
        path_matching_global([[0.0, 0.0]], np.zeros((3, 3)))
