import sys
from pathlib import Path

import numpy as np
import pytest

# Add the repository root to the import path for test execution.
sys.path.append(str(Path(__file__).resolve().parents[1]))

from racepath.exceptions import InvalidInput
from racepath.vehicle import GGVLimits, VehicleParams


def _create_csv(tmp_path: Path) -> Path:
    content = """
# vehicle parameters
v_max,60
mass,800
dragcoeff,0.5
ay_max,12.5
"""
    file = tmp_path / "vehicle.csv"
    file.write_text(content.strip())
    return file


def test_defaults() -> None:
    vehicle = VehicleParams()
    assert vehicle.v_max == 70.0
    assert vehicle.mass == 1200.0
    assert vehicle.curvlim == 0.12
    assert vehicle.ggv() == GGVLimits(70.0, 8.0, 8.0)


def test_from_csv_overrides_known_keys(tmp_path: Path) -> None:
    vehicle = VehicleParams.from_csv(_create_csv(tmp_path))
    assert vehicle.v_max == 60.0
    assert vehicle.mass == 800.0
    assert vehicle.dragcoeff == 0.5
    assert vehicle.ay_max == 12.5
    # Missing keys keep their defaults.
    assert vehicle.width == 2.0


def test_from_csv_rejects_unknown_and_non_numeric(tmp_path: Path) -> None:
    unknown = tmp_path / "unknown.csv"
    unknown.write_text("mass,800\nrho,1.225\n")
    with pytest.raises(InvalidInput, match="rho"):
        VehicleParams.from_csv(unknown)

    flag = tmp_path / "flag.csv"
    flag.write_text("mass,true\n")
    with pytest.raises(InvalidInput, match="mass"):
        VehicleParams.from_csv(flag)


def test_invalid_vehicle_params() -> None:
    with pytest.raises(InvalidInput):
        VehicleParams(mass=0.0)
    with pytest.raises(InvalidInput):
        VehicleParams(dragcoeff=-1.0)


def test_ggv_from_array() -> None:
    assert GGVLimits.from_array(None) == GGVLimits()
    assert GGVLimits.from_array([]) == GGVLimits()
    assert GGVLimits.from_array([40.0, 6.0, 7.0]) == GGVLimits(40.0, 6.0, 7.0)

    table = np.array([[0.0, 9.0, 10.0], [30.0, 7.0, 9.0], [60.0, 5.0, 11.0]])
    assert GGVLimits.from_array(table) == GGVLimits(60.0, 5.0, 9.0)

    with pytest.raises(InvalidInput):
        GGVLimits.from_array([40.0, 6.0])
    with pytest.raises(InvalidInput):
        GGVLimits.from_array(np.zeros((2, 2)))
    with pytest.raises(InvalidInput):
        GGVLimits(v_max=-1.0)
