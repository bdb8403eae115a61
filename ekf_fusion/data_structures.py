"""
Data structures for the laser/radar sensor fusion system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import numpy as np

from ekf_fusion.exceptions import MeasurementShapeError


class SensorType(Enum):
    """Sensors that can produce a measurement."""
    LASER = "L"
    RADAR = "R"


@dataclass
class Measurement:
    """
    A single timestamped sensor reading.

    Attributes:
        raw_measurements: Raw measurement vector as reported by the sensor
        timestamp: Measurement timestamp in microseconds
    """
    raw_measurements: np.ndarray
    timestamp: int

    sensor_type = None
    dim_z = 0

    def __post_init__(self):
        """Validate the raw vector against the sensor's measurement dimension."""
        if self.sensor_type is None:
            raise TypeError("Use LaserMeasurement or RadarMeasurement, not Measurement")
        z = np.asarray(self.raw_measurements, dtype=float).reshape(-1)
        if z.shape[0] != self.dim_z:
            raise MeasurementShapeError(
                f"{self.sensor_type.name} measurement must have {self.dim_z} "
                f"components, got {z.shape[0]}"
            )
        if not np.all(np.isfinite(z)):
            raise MeasurementShapeError(
                f"{self.sensor_type.name} measurement contains NaN or infinite values: {z}"
            )
        self.raw_measurements = z
        self.timestamp = int(self.timestamp)


@dataclass
class LaserMeasurement(Measurement):
    """Laser reading: Cartesian position (px, py)."""
    sensor_type = SensorType.LASER
    dim_z = 2

    @property
    def position(self) -> Tuple[float, float]:
        return (self.raw_measurements[0], self.raw_measurements[1])


@dataclass
class RadarMeasurement(Measurement):
    """Radar reading: range (m), bearing (rad) and range rate (m/s)."""
    sensor_type = SensorType.RADAR
    dim_z = 3

    @property
    def rho(self) -> float:
        return self.raw_measurements[0]

    @property
    def phi(self) -> float:
        return self.raw_measurements[1]

    @property
    def rho_dot(self) -> float:
        return self.raw_measurements[2]

    @property
    def position(self) -> Tuple[float, float]:
        """Measured position converted to Cartesian coordinates."""
        from ekf_fusion.coordinate_transforms import polar_to_cartesian
        return polar_to_cartesian(self.rho, self.phi)


def make_measurement(sensor_type: SensorType, raw_measurements, timestamp: int) -> Measurement:
    """
    Build the measurement variant matching a sensor tag.

    Args:
        sensor_type: SensorType or its one-letter tag ('L' / 'R')
        raw_measurements: Raw measurement values
        timestamp: Timestamp in microseconds

    Returns:
        LaserMeasurement or RadarMeasurement
    """
    sensor_type = SensorType(sensor_type)
    if sensor_type is SensorType.LASER:
        return LaserMeasurement(raw_measurements, timestamp)
    return RadarMeasurement(raw_measurements, timestamp)


@dataclass
class GroundTruth:
    """True state [px, py, vx, vy] of the tracked object."""
    state: np.ndarray

    def __post_init__(self):
        self.state = np.asarray(self.state, dtype=float).reshape(-1)
        if self.state.shape[0] != 4:
            raise ValueError(f"Ground truth state must have 4 components, got {self.state.shape[0]}")


@dataclass
class Estimate:
    """
    Snapshot of the estimator after processing one measurement.

    Attributes:
        timestamp: Timestamp of the measurement that produced this estimate
        state: State vector [px, py, vx, vy]
        covariance: 4x4 state covariance matrix
        sensor_type: Sensor of the processed measurement
    """
    timestamp: int
    state: np.ndarray
    covariance: np.ndarray
    sensor_type: Optional[SensorType] = None

    @property
    def position(self) -> Tuple[float, float]:
        """Get current position estimate."""
        return (self.state[0], self.state[1])

    @property
    def velocity(self) -> Tuple[float, float]:
        """Get current velocity estimate."""
        return (self.state[2], self.state[3])


@dataclass
class FusionResult:
    """
    Output of running the controller over a measurement sequence.

    Attributes:
        estimates: One estimate per accepted measurement
        measurements: Accepted measurements, parallel to estimates
        ground_truth: Ground truth parallel to estimates (entries may be None)
        rejected: (measurement, reason) for every rejected measurement
        nis: Normalized innovation squared per sensor type
        rmse: RMSE over the estimates that have ground truth, if any
    """
    estimates: List[Estimate] = field(default_factory=list)
    measurements: List[Measurement] = field(default_factory=list)
    ground_truth: List[Optional['GroundTruth']] = field(default_factory=list)
    rejected: List[Tuple[Measurement, str]] = field(default_factory=list)
    nis: Dict[SensorType, List[float]] = field(default_factory=dict)
    rmse: Optional['RMSEResult'] = None


@dataclass
class RMSEResult:
    """
    Root-mean-square error per state component.

    Attributes:
        rmse: Array [px, py, vx, vy]
        num_samples: Number of estimate/ground truth pairs used
    """
    rmse: np.ndarray
    num_samples: int

    @property
    def px(self) -> float:
        return float(self.rmse[0])

    @property
    def py(self) -> float:
        return float(self.rmse[1])

    @property
    def vx(self) -> float:
        return float(self.rmse[2])

    @property
    def vy(self) -> float:
        return float(self.rmse[3])
