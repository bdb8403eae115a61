"""
Tests for coordinate transforms, angle normalization and the radar Jacobian.

Run with: python -m pytest tests/test_coordinate_transforms.py -v
"""
import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ekf_fusion.coordinate_transforms import (
    calculate_jacobian,
    cartesian_to_polar,
    normalize_angle,
    polar_to_cartesian,
    radar_measurement_function,
)
from ekf_fusion.exceptions import NumericalDegeneracyError


def numerical_jacobian(f, x, epsilon=1e-6):
    """Central difference Jacobian of f at x."""
    x = np.asarray(x, dtype=float)
    y0 = f(x)
    J = np.zeros((len(y0), len(x)))
    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[i] += epsilon
        x_minus[i] -= epsilon
        J[:, i] = (f(x_plus) - f(x_minus)) / (2 * epsilon)
    return J


def test_polar_to_cartesian_axes():
    assert_allclose(polar_to_cartesian(5.0, 0.0), (5.0, 0.0), atol=1e-12)
    assert_allclose(polar_to_cartesian(2.0, np.pi / 2), (0.0, 2.0), atol=1e-12)


def test_cartesian_to_polar_inverts_polar_to_cartesian():
    rho, phi = cartesian_to_polar(*polar_to_cartesian(7.5, -2.3))
    assert rho == pytest.approx(7.5)
    assert phi == pytest.approx(-2.3)


@pytest.mark.parametrize("eps", [1e-3, 0.1, 0.5])
def test_normalize_angle_wraps_across_pi(eps):
    assert normalize_angle(np.pi + eps) == pytest.approx(-np.pi + eps)
    assert normalize_angle(-np.pi - eps) == pytest.approx(np.pi - eps)


@pytest.mark.parametrize("angle, expected", [
    (0.0, 0.0),
    (np.pi, np.pi),
    (-np.pi, np.pi),
    (2 * np.pi + 0.25, 0.25),
    (-4 * np.pi - 0.25, -0.25),
])
def test_normalize_angle_range(angle, expected):
    assert normalize_angle(angle) == pytest.approx(expected)


def test_radar_measurement_function_values():
    z = radar_measurement_function(np.array([3.0, 4.0, 1.0, 2.0]))
    assert_allclose(z, [5.0, np.arctan2(4.0, 3.0), (3.0 + 8.0) / 5.0])


def test_radar_measurement_function_rejects_zero_range():
    with pytest.raises(NumericalDegeneracyError):
        radar_measurement_function(np.array([0.0, 0.0, 1.0, 1.0]))


@pytest.mark.parametrize("state", [
    [3.0, 4.0, 1.0, -2.0],
    [-1.5, 0.7, 0.3, 0.3],
    [0.2, -8.0, -4.0, 1.0],
])
def test_jacobian_matches_numerical_derivative(state):
    state = np.array(state)
    H_analytical = calculate_jacobian(state)
    H_numerical = numerical_jacobian(radar_measurement_function, state)
    assert H_analytical.shape == (3, 4)
    assert_allclose(H_analytical, H_numerical, rtol=1e-5, atol=1e-7)


@pytest.mark.parametrize("v", [0.0, 1.0, -3.5, 100.0])
def test_jacobian_zero_range_returns_zero_matrix(v, caplog):
    with caplog.at_level(logging.WARNING, logger="ekf_fusion.coordinate_transforms"):
        Hj = calculate_jacobian(np.array([0.0, 0.0, v, v]))

    assert Hj.shape == (3, 4)
    assert np.all(Hj == 0.0)
    assert np.all(np.isfinite(Hj))
    assert "zero Jacobian" in caplog.text


def test_jacobian_just_above_epsilon_is_finite():
    Hj = calculate_jacobian(np.array([2e-4, 0.0, 1.0, 1.0]))
    assert np.all(np.isfinite(Hj))
    assert Hj[0, 0] == pytest.approx(1.0)
