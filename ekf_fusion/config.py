"""
Noise profile and initialization constants for the fusion controller.
"""
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Dict, Tuple, Union
import numpy as np
import yaml


@dataclass
class FusionConfig:
    """
    Static noise models and initialization policy.

    Attributes:
        noise_ax: Acceleration noise intensity along x
        noise_ay: Acceleration noise intensity along y
        laser_std: Laser standard deviations (px, py)
        radar_std: Radar standard deviations (rho, phi, rho_dot)
        initial_position_variance: Initial variance of px and py
        initial_velocity_variance: Initial variance of vx and vy
        default_state: State used before any measurement could seed it
        laser_velocity_placeholder: Velocity assigned when seeding from a laser reading
        laser_fallback_state: State used when a first laser reading has a zero coordinate
        epsilon: Range below which radar quantities are treated as degenerate
        max_condition_number: Largest accepted condition number of the innovation covariance
        strict_monotonic: Reject measurements whose timestamp equals the previous one
    """
    noise_ax: float = 9.0
    noise_ay: float = 9.0
    laser_std: Tuple[float, float] = (0.15, 0.15)
    radar_std: Tuple[float, float, float] = (0.3, 0.03, 0.3)
    initial_position_variance: float = 1.0
    initial_velocity_variance: float = 1000.0
    default_state: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    laser_velocity_placeholder: float = 0.0001
    laser_fallback_state: Tuple[float, float, float, float] = (0.0001, 0.0001, 1.0, 1.0)
    epsilon: float = 1e-4
    max_condition_number: float = 1e12
    strict_monotonic: bool = False

    def __post_init__(self):
        self.laser_std = tuple(float(v) for v in self.laser_std)
        self.radar_std = tuple(float(v) for v in self.radar_std)
        self.default_state = tuple(float(v) for v in self.default_state)
        self.laser_fallback_state = tuple(float(v) for v in self.laser_fallback_state)

        if len(self.laser_std) != 2:
            raise ValueError(f"laser_std must have 2 values, got {len(self.laser_std)}")
        if len(self.radar_std) != 3:
            raise ValueError(f"radar_std must have 3 values, got {len(self.radar_std)}")
        for name in ('default_state', 'laser_fallback_state'):
            if len(getattr(self, name)) != 4:
                raise ValueError(f"{name} must have 4 values")
        for name in ('noise_ax', 'noise_ay', 'initial_position_variance',
                     'initial_velocity_variance', 'epsilon'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if min(self.laser_std + self.radar_std) <= 0:
            raise ValueError("Sensor standard deviations must be positive")

    @property
    def R_laser(self) -> np.ndarray:
        """Laser measurement noise covariance (2x2)."""
        return np.diag(np.square(self.laser_std))

    @property
    def R_radar(self) -> np.ndarray:
        """Radar measurement noise covariance (3x3)."""
        return np.diag(np.square(self.radar_std))

    @property
    def H_laser(self) -> np.ndarray:
        """Laser measurement matrix (observe position only)."""
        return np.array([
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 1.0, 0.0, 0.0]
        ])

    @property
    def P_init(self) -> np.ndarray:
        """Initial state covariance."""
        return np.diag([
            self.initial_position_variance,
            self.initial_position_variance,
            self.initial_velocity_variance,
            self.initial_velocity_variance
        ])

    @classmethod
    def from_dict(cls, values: Dict) -> 'FusionConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**values)

    def to_dict(self) -> Dict:
        values = asdict(self)
        for key, value in values.items():
            if isinstance(value, tuple):
                values[key] = list(value)
        return values


def load_config(path: Union[str, Path]) -> FusionConfig:
    """
    Load a fusion configuration from a YAML file.

    Keys missing from the file keep their default values.

    Args:
        path: Path to the YAML file

    Returns:
        FusionConfig
    """
    with open(path, 'r') as fp:
        values = yaml.load(fp, yaml.FullLoader)
    if values is None:
        values = {}
    if not isinstance(values, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return FusionConfig.from_dict(values)


def save_config(config: FusionConfig, path: Union[str, Path]):
    """Write a configuration to a YAML file."""
    with open(path, 'w') as fp:
        yaml.dump(config.to_dict(), fp, sort_keys=False)
