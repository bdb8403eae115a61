"""
Laser/Radar Sensor Fusion

Extended Kalman filter estimating the position and velocity of a single
moving object from intermittent laser (x, y) and radar (range, bearing,
range rate) measurements.

Key Components:
- Measurement and estimate data structures
- Coordinate transformations and radar Jacobian
- Kalman filter with linear and extended updates
- Fusion controller handling initialization and time steps
- RMSE and NIS accuracy metrics

Usage:
    from ekf_fusion import FusionEKF, LaserMeasurement, RadarMeasurement

    fusion = FusionEKF()
    fusion.process_measurement(LaserMeasurement([1.0, 1.0], 0))
    estimate = fusion.process_measurement(RadarMeasurement([1.5, 0.8, 0.1], 100000))
    print(estimate.state, estimate.covariance)
"""

from .exceptions import (
    FusionError,
    MeasurementShapeError,
    NumericalDegeneracyError,
    BackwardTimeError
)
from .data_structures import (
    SensorType,
    Measurement,
    LaserMeasurement,
    RadarMeasurement,
    GroundTruth,
    Estimate,
    FusionResult,
    RMSEResult,
    make_measurement
)
from .coordinate_transforms import (
    polar_to_cartesian,
    cartesian_to_polar,
    normalize_angle,
    radar_measurement_function,
    calculate_jacobian
)
from .config import FusionConfig, load_config, save_config
from .kalman_filter import KalmanFilter
from .fusion_ekf import FusionEKF, process_noise, transition_matrix, run_fusion
from .metrics import calculate_rmse, RMSETracker, nis_consistency
from .data_loader import load_measurements, write_estimates

__version__ = "1.0.0"

__all__ = [
    # Errors
    'FusionError',
    'MeasurementShapeError',
    'NumericalDegeneracyError',
    'BackwardTimeError',

    # Data structures
    'SensorType',
    'Measurement',
    'LaserMeasurement',
    'RadarMeasurement',
    'GroundTruth',
    'Estimate',
    'FusionResult',
    'RMSEResult',
    'make_measurement',

    # Coordinate transforms
    'polar_to_cartesian',
    'cartesian_to_polar',
    'normalize_angle',
    'radar_measurement_function',
    'calculate_jacobian',

    # Core components
    'FusionConfig',
    'load_config',
    'save_config',
    'KalmanFilter',
    'FusionEKF',
    'process_noise',
    'transition_matrix',
    'run_fusion',

    # Evaluation and I/O
    'calculate_rmse',
    'RMSETracker',
    'nis_consistency',
    'load_measurements',
    'write_estimates',
]
