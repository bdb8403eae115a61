"""
Coordinate transformations and radar measurement model linearization.
"""
import logging
import numpy as np
from typing import Tuple

from ekf_fusion.exceptions import NumericalDegeneracyError

logger = logging.getLogger(__name__)

# Below this range the radar measurement function and its Jacobian are undefined
RANGE_EPSILON = 1e-4


def polar_to_cartesian(rho: float, phi: float) -> Tuple[float, float]:
    """
    Convert polar coordinates to Cartesian coordinates.

    Args:
        rho: Range in meters
        phi: Bearing in radians, measured from the x axis towards the y axis

    Returns:
        Tuple of (x, y) coordinates in meters
    """
    x = rho * np.cos(phi)
    y = rho * np.sin(phi)
    return (x, y)


def cartesian_to_polar(x: float, y: float) -> Tuple[float, float]:
    """
    Convert Cartesian coordinates to polar coordinates.

    Args:
        x: x coordinate in meters
        y: y coordinate in meters

    Returns:
        Tuple of (rho, phi)
    """
    rho = np.sqrt(x ** 2 + y ** 2)
    phi = np.arctan2(y, x)
    return (rho, phi)


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle into (-pi, pi].

    Args:
        angle: Angle in radians

    Returns:
        Equivalent angle in (-pi, pi]
    """
    wrapped = np.mod(angle + np.pi, 2.0 * np.pi) - np.pi
    # np.mod maps odd multiples of pi to -pi; the interval is closed at +pi
    if wrapped <= -np.pi:
        wrapped += 2.0 * np.pi
    return float(wrapped)


def radar_measurement_function(state: np.ndarray, epsilon: float = RANGE_EPSILON) -> np.ndarray:
    """
    Map a state [px, py, vx, vy] to the radar measurement space.

    Args:
        state: State vector
        epsilon: Minimum range for which bearing and range rate are defined

    Returns:
        Expected measurement [rho, phi, rho_dot]

    Raises:
        NumericalDegeneracyError: If the range is below epsilon
    """
    px, py, vx, vy = np.asarray(state, dtype=float).reshape(-1)[:4]
    rho = np.sqrt(px ** 2 + py ** 2)
    if rho < epsilon:
        raise NumericalDegeneracyError(
            f"Range {rho:.3g} is below {epsilon:g}; radar measurement function is undefined"
        )
    phi = np.arctan2(py, px)
    rho_dot = (px * vx + py * vy) / rho
    return np.array([rho, phi, rho_dot])


def calculate_jacobian(state: np.ndarray, epsilon: float = RANGE_EPSILON) -> np.ndarray:
    """
    Jacobian of the radar measurement function evaluated at a state.

    Rows are d(rho), d(phi), d(rho_dot); columns are px, py, vx, vy.
    A zero matrix is returned when the range is below epsilon.

    Args:
        state: State vector [px, py, vx, vy]
        epsilon: Minimum range for which the derivatives are computed

    Returns:
        3x4 Jacobian matrix
    """
    px, py, vx, vy = np.asarray(state, dtype=float).reshape(-1)[:4]

    c1 = px ** 2 + py ** 2
    c2 = np.sqrt(c1)
    c3 = c1 * c2

    Hj = np.zeros((3, 4))
    if c2 < epsilon:
        logger.warning("calculate_jacobian: range %.3g below %g, returning zero Jacobian", c2, epsilon)
        return Hj

    Hj[0, 0] = px / c2
    Hj[0, 1] = py / c2
    Hj[1, 0] = -py / c1
    Hj[1, 1] = px / c1
    Hj[2, 0] = py * (vx * py - vy * px) / c3
    Hj[2, 1] = px * (vy * px - vx * py) / c3
    Hj[2, 2] = px / c2
    Hj[2, 3] = py / c2

    return Hj
