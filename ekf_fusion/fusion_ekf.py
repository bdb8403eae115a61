# fusion_ekf.py
"""
Fusion controller: initializes the filter from the first measurement and runs
predict/update for every following laser or radar measurement.
"""
import logging
import numpy as np
from typing import Iterable, Optional, Tuple

from ekf_fusion.config import FusionConfig
from ekf_fusion.coordinate_transforms import calculate_jacobian, polar_to_cartesian
from ekf_fusion.data_structures import (
    Estimate,
    FusionResult,
    GroundTruth,
    LaserMeasurement,
    Measurement,
    RadarMeasurement,
    SensorType,
)
from ekf_fusion.exceptions import BackwardTimeError, FusionError
from ekf_fusion.kalman_filter import KalmanFilter
from ekf_fusion.metrics import RMSETracker

logger = logging.getLogger(__name__)

US_PER_SECOND = 1000000.0


def transition_matrix(dt: float) -> np.ndarray:
    """Constant velocity state transition matrix for time step dt (seconds)."""
    return np.array([
        [1, 0, dt, 0],
        [0, 1, 0, dt],
        [0, 0, 1, 0],
        [0, 0, 0, 1]
    ], dtype=float)


def process_noise(dt: float, noise_ax: float, noise_ay: float) -> np.ndarray:
    """
    Process noise covariance for a constant velocity model driven by
    white acceleration noise.

    Args:
        dt: Time step in seconds
        noise_ax: Acceleration noise intensity along x
        noise_ay: Acceleration noise intensity along y

    Returns:
        4x4 process noise matrix
    """
    dt_2 = dt ** 2
    dt_3 = dt ** 3
    dt_4 = dt ** 4

    return np.array([
        [dt_4 / 4 * noise_ax, 0, dt_3 / 2 * noise_ax, 0],
        [0, dt_4 / 4 * noise_ay, 0, dt_3 / 2 * noise_ay],
        [dt_3 / 2 * noise_ax, 0, dt_2 * noise_ax, 0],
        [0, dt_3 / 2 * noise_ay, 0, dt_2 * noise_ay]
    ])


class FusionEKF:
    """
    Sequential laser/radar fusion for a single tracked object.

    One instance processes one trajectory; measurements must arrive in
    timestamp order.
    """

    def __init__(self, config: Optional[FusionConfig] = None):
        """
        Initialize the controller.

        Args:
            config: Noise profile and initialization policy (defaults if None)
        """
        self.config = config or FusionConfig()
        self.reset()

    def reset(self):
        """Return to the uninitialized state with the configured defaults."""
        self.is_initialized = False
        self.previous_timestamp = 0

        # Fixed measurement models
        self.R_laser = self.config.R_laser
        self.R_radar = self.config.R_radar
        self.H_laser = self.config.H_laser

        self.ekf = KalmanFilter(
            dim_x=4,
            max_condition_number=self.config.max_condition_number,
            range_epsilon=self.config.epsilon
        )
        self.ekf.x = np.array(self.config.default_state)
        self.ekf.F = transition_matrix(1.0)
        self.ekf.P = self.config.P_init
        self.ekf.Q = np.zeros((4, 4))

    @property
    def state(self) -> np.ndarray:
        return self.ekf.x.copy()

    @property
    def covariance(self) -> np.ndarray:
        return self.ekf.P.copy()

    def process_measurement(self, measurement: Measurement) -> Estimate:
        """
        Process one measurement.

        The first measurement seeds the state; every later one runs a
        prediction over the elapsed time followed by the sensor's update.
        A measurement that raises leaves the estimator unchanged.

        Args:
            measurement: LaserMeasurement or RadarMeasurement

        Returns:
            Estimate after processing the measurement
        """
        if not isinstance(measurement, (LaserMeasurement, RadarMeasurement)):
            raise TypeError(f"Unsupported measurement type: {type(measurement).__name__}")

        if not self.is_initialized:
            self._initialize(measurement)
            return self.get_estimate(measurement)

        dt = self._elapsed_seconds(measurement.timestamp)

        snapshot = self.ekf.snapshot()
        try:
            self.predict(dt)
            if isinstance(measurement, RadarMeasurement):
                self.ekf.H = calculate_jacobian(self.ekf.x, self.config.epsilon)
                self.ekf.R = self.R_radar
                self.ekf.update_ekf(measurement.raw_measurements)
            else:
                self.ekf.H = self.H_laser
                self.ekf.R = self.R_laser
                self.ekf.update(measurement.raw_measurements)
        except FusionError as e:
            self.ekf.restore(snapshot)
            logger.warning("Rejected %s measurement at t=%d: %s",
                           measurement.sensor_type.name, measurement.timestamp, e)
            raise

        self.previous_timestamp = measurement.timestamp
        logger.debug("t=%d dt=%.6f x=%s", measurement.timestamp, dt, self.ekf.x)

        return self.get_estimate(measurement)

    def predict(self, dt: float):
        """Rebuild F and Q for a time step of dt seconds and run the prediction."""
        self.ekf.F[0, 2] = dt
        self.ekf.F[1, 3] = dt
        self.ekf.Q = process_noise(dt, self.config.noise_ax, self.config.noise_ay)
        self.ekf.predict()

    def get_estimate(self, measurement: Optional[Measurement] = None) -> Estimate:
        """Snapshot of the current state and covariance."""
        return Estimate(
            timestamp=measurement.timestamp if measurement is not None else self.previous_timestamp,
            state=self.state,
            covariance=self.covariance,
            sensor_type=measurement.sensor_type if measurement is not None else None
        )

    def _elapsed_seconds(self, timestamp: int) -> float:
        """Time since the previous measurement; rejects timestamps going backward."""
        delta = timestamp - self.previous_timestamp
        if delta < 0 or (delta == 0 and self.config.strict_monotonic):
            logger.warning("Rejected measurement at t=%d: previous timestamp is %d",
                           timestamp, self.previous_timestamp)
            raise BackwardTimeError(timestamp, self.previous_timestamp)
        return delta / US_PER_SECOND

    def _initialize(self, measurement: Measurement):
        """Seed the state vector from the first measurement."""
        config = self.config
        self.ekf.x = np.array(config.default_state)

        if isinstance(measurement, RadarMeasurement):
            # Convert radar from polar to cartesian coordinates
            x, y = polar_to_cartesian(measurement.rho, measurement.phi)
            vx, vy = polar_to_cartesian(measurement.rho_dot, measurement.phi)
            if abs(x) < config.epsilon and abs(y) < config.epsilon:
                logger.warning("First radar measurement at t=%d is at the origin; "
                               "keeping default state %s", measurement.timestamp, config.default_state)
            else:
                self.ekf.x = np.array([x, y, vx, vy])
        else:
            x, y = measurement.raw_measurements
            if x != 0.0 and y != 0.0:
                v = config.laser_velocity_placeholder
                self.ekf.x = np.array([x, y, v, v])
            else:
                logger.warning("First laser measurement at t=%d has a zero coordinate; "
                               "using fallback state %s", measurement.timestamp, config.laser_fallback_state)
                self.ekf.x = np.array(config.laser_fallback_state)

        self.previous_timestamp = measurement.timestamp
        self.is_initialized = True
        logger.info("Initialized from %s measurement at t=%d: x=%s",
                    measurement.sensor_type.name, measurement.timestamp, self.ekf.x)


def run_fusion(records: Iterable[Tuple[Measurement, Optional[GroundTruth]]],
               config: Optional[FusionConfig] = None,
               skip_invalid: bool = False) -> FusionResult:
    """
    Run a fresh controller over a measurement sequence.

    Args:
        records: (measurement, ground_truth or None) pairs in timestamp order
        config: Fusion configuration (defaults if None)
        skip_invalid: Record rejected measurements and continue instead of raising

    Returns:
        FusionResult with estimates, rejections, NIS values and RMSE
    """
    fusion = FusionEKF(config)
    result = FusionResult(nis={SensorType.LASER: [], SensorType.RADAR: []})
    rmse = RMSETracker()

    for measurement, truth in records:
        was_initialized = fusion.is_initialized
        try:
            estimate = fusion.process_measurement(measurement)
        except FusionError as e:
            if not skip_invalid:
                raise
            result.rejected.append((measurement, str(e)))
            continue

        result.estimates.append(estimate)
        result.measurements.append(measurement)
        result.ground_truth.append(truth)
        if was_initialized and fusion.ekf.nis is not None:
            result.nis[measurement.sensor_type].append(fusion.ekf.nis)
        if truth is not None:
            rmse.add(estimate.state, truth.state)

    result.rmse = rmse.rmse
    if result.rejected:
        logger.warning("Rejected %d of %d measurements",
                       len(result.rejected), len(result.rejected) + len(result.estimates))
    return result
