# kalman_filter.py

"""
Kalman filter core shared by the laser (linear) and radar (extended) updates.
"""
import numpy as np
from typing import Any, Dict, Optional

from ekf_fusion.coordinate_transforms import RANGE_EPSILON, normalize_angle, radar_measurement_function
from ekf_fusion.exceptions import MeasurementShapeError, NumericalDegeneracyError


class KalmanFilter:
    """
    Kalman filter over a 4-dimensional constant velocity state.

    State vector: [px, py, vx, vy] (position and velocity)

    The model matrices F, Q, H and R are set from outside before each
    predict/update call; the filter only owns the arithmetic.
    """

    def __init__(self,
                 dim_x: int = 4,
                 max_condition_number: float = 1e12,
                 range_epsilon: float = RANGE_EPSILON):
        """
        Initialize filter matrices.

        Args:
            dim_x: State dimension
            max_condition_number: Largest accepted condition number of the innovation covariance
            range_epsilon: Minimum range for evaluating the radar measurement function
        """
        self.dim_x = dim_x
        self.max_condition_number = max_condition_number
        self.range_epsilon = range_epsilon

        self.x = np.ones(dim_x)         # state
        self.P = np.eye(dim_x)          # state covariance
        self.F = np.eye(dim_x)          # state transition
        self.Q = np.zeros((dim_x, dim_x))  # process noise
        self.H = np.zeros((0, dim_x))   # measurement matrix
        self.R = np.zeros((0, 0))       # measurement noise

        # Normalized innovation squared of the most recent update
        self.nis: Optional[float] = None

    def predict(self):
        """
        Propagate state and covariance through the process model.

        x = F * x
        P = F * P * F^T + Q
        """
        self.x = self.F @ self.x
        self.P = self.F @ self.P @ self.F.T + self.Q

    def update(self, z: np.ndarray):
        """
        Linear Kalman update with measurement z.

        Args:
            z: Measurement vector with as many rows as H
        """
        z = self._check_measurement(z)

        # Innovation: y = z - H * x_{k|k-1}
        y = z - self.H @ self.x

        self._update_with_innovation(y)

    def update_ekf(self, z: np.ndarray):
        """
        Extended Kalman update for the radar measurement function.

        The predicted measurement comes from h(x) directly; H must hold the
        Jacobian of h evaluated at the current state.

        Args:
            z: Radar measurement [rho, phi, rho_dot]
        """
        z = self._check_measurement(z)

        y = z - radar_measurement_function(self.x, self.range_epsilon)
        y[1] = normalize_angle(y[1])

        self._update_with_innovation(y)

    def _update_with_innovation(self, y: np.ndarray):
        """Apply the correction for innovation y; state is untouched on failure."""
        H, R, P = self.H, self.R, self.P

        # Innovation covariance: S = H * P_{k|k-1} * H^T + R
        S = H @ P @ H.T + R

        try:
            with np.errstate(divide='ignore', invalid='ignore'):
                cond = np.linalg.cond(S)
            if not np.isfinite(cond) or cond > self.max_condition_number:
                raise NumericalDegeneracyError(
                    f"Innovation covariance is singular or ill-conditioned (cond={cond:.3g})"
                )
            S_inv = np.linalg.inv(S)
        except np.linalg.LinAlgError as e:
            raise NumericalDegeneracyError(f"Cannot invert innovation covariance: {e}") from e

        # Kalman gain: K = P_{k|k-1} * H^T * S^{-1}
        K = P @ H.T @ S_inv

        # x_{k|k} = x_{k|k-1} + K * y
        x_new = self.x + K @ y

        # P_{k|k} = (I - K * H) * P_{k|k-1}
        I_KH = np.eye(self.dim_x) - K @ H
        P_new = I_KH @ P
        P_new = (P_new + P_new.T) / 2.0

        if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(P_new))):
            raise NumericalDegeneracyError("Update produced a non-finite state or covariance")

        self.x = x_new
        self.P = P_new
        self.nis = float(y @ S_inv @ y)

    def _check_measurement(self, z: np.ndarray) -> np.ndarray:
        z = np.asarray(z, dtype=float).reshape(-1)
        if z.shape[0] != self.H.shape[0]:
            raise MeasurementShapeError(
                f"Measurement has {z.shape[0]} components but H has {self.H.shape[0]} rows"
            )
        if self.R.shape != (z.shape[0], z.shape[0]):
            raise MeasurementShapeError(
                f"R has shape {self.R.shape}, expected ({z.shape[0]}, {z.shape[0]})"
            )
        return z

    def snapshot(self) -> Dict[str, Any]:
        """Copy of every mutable filter matrix."""
        return {
            'x': self.x.copy(),
            'P': self.P.copy(),
            'F': self.F.copy(),
            'Q': self.Q.copy(),
            'H': self.H.copy(),
            'R': self.R.copy(),
            'nis': self.nis,
        }

    def restore(self, snapshot: Dict[str, Any]):
        """Restore matrices saved by snapshot()."""
        self.x = snapshot['x'].copy()
        self.P = snapshot['P'].copy()
        self.F = snapshot['F'].copy()
        self.Q = snapshot['Q'].copy()
        self.H = snapshot['H'].copy()
        self.R = snapshot['R'].copy()
        self.nis = snapshot['nis']
