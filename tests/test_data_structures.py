import numpy as np
import pytest

from ekf_fusion.data_structures import (
    GroundTruth,
    LaserMeasurement,
    Measurement,
    RadarMeasurement,
    SensorType,
    make_measurement,
)
from ekf_fusion.exceptions import BackwardTimeError, FusionError, MeasurementShapeError, NumericalDegeneracyError


def test_laser_measurement():
    m = LaserMeasurement([1.0, 2.0], 1477010443000000)
    assert m.sensor_type is SensorType.LASER
    assert m.position == (1.0, 2.0)
    assert m.timestamp == 1477010443000000


def test_radar_measurement_fields():
    m = RadarMeasurement([2.0, np.pi / 2, 0.5], 10)
    assert m.rho == 2.0
    assert m.phi == pytest.approx(np.pi / 2)
    assert m.rho_dot == 0.5
    assert m.position[0] == pytest.approx(0.0, abs=1e-12)
    assert m.position[1] == pytest.approx(2.0)


@pytest.mark.parametrize("cls, raw", [
    (LaserMeasurement, [1.0]),
    (LaserMeasurement, [1.0, 2.0, 3.0]),
    (RadarMeasurement, [1.0, 2.0]),
    (RadarMeasurement, [1.0, 2.0, 3.0, 4.0]),
])
def test_wrong_length_fails_fast(cls, raw):
    with pytest.raises(MeasurementShapeError):
        cls(raw, 0)


def test_non_finite_values_rejected():
    with pytest.raises(MeasurementShapeError):
        RadarMeasurement([1.0, np.nan, 0.0], 0)


def test_shape_error_is_value_error():
    assert issubclass(MeasurementShapeError, ValueError)
    assert issubclass(MeasurementShapeError, FusionError)


def test_error_bases():
    assert issubclass(BackwardTimeError, ValueError)
    assert issubclass(NumericalDegeneracyError, ArithmeticError)
    assert not issubclass(NumericalDegeneracyError, ValueError)


def test_base_measurement_cannot_be_built():
    with pytest.raises(TypeError):
        Measurement([1.0, 2.0], 0)


def test_make_measurement_dispatches_on_tag():
    assert isinstance(make_measurement('L', [1.0, 2.0], 0), LaserMeasurement)
    assert isinstance(make_measurement(SensorType.RADAR, [1.0, 0.0, 0.0], 0), RadarMeasurement)
    with pytest.raises(ValueError):
        make_measurement('X', [1.0, 2.0], 0)


def test_ground_truth_requires_four_components():
    with pytest.raises(ValueError):
        GroundTruth([1.0, 2.0, 3.0])
