"""
Example usage of the laser/radar fusion system.
Generates a synthetic trajectory, simulates both sensors and runs the EKF.
"""
import numpy as np
from typing import List, Optional, Tuple

from ekf_fusion.config import FusionConfig
from ekf_fusion.coordinate_transforms import cartesian_to_polar, normalize_angle
from ekf_fusion.data_structures import GroundTruth, LaserMeasurement, Measurement, RadarMeasurement, SensorType
from ekf_fusion.fusion_ekf import run_fusion
from ekf_fusion.metrics import nis_consistency, print_rmse


def generate_synthetic_measurements(num_steps: int = 200,
                                    step_us: int = 50000,
                                    center: Tuple[float, float] = (10.0, 5.0),
                                    radius: float = 6.0,
                                    angular_rate: float = 0.3,
                                    config: Optional[FusionConfig] = None,
                                    seed: Optional[int] = 0) -> List[Tuple[Measurement, GroundTruth]]:
    """
    Simulate alternating laser and radar readings of an object on a circle.

    Args:
        num_steps: Number of measurements to generate
        step_us: Time between consecutive measurements (microseconds)
        center: Circle center (m)
        radius: Circle radius (m)
        angular_rate: Angular rate around the center (rad/s)
        config: Noise profile used for the sensor noise (defaults if None)
        seed: Random seed

    Returns:
        List of (measurement, ground_truth) tuples in timestamp order
    """
    config = config or FusionConfig()
    rng = np.random.default_rng(seed)
    laser_std = np.array(config.laser_std)
    radar_std = np.array(config.radar_std)

    records = []
    t0 = 1477010443000000
    for k in range(num_steps):
        t = k * step_us / 1e6
        angle = angular_rate * t
        px = center[0] + radius * np.cos(angle)
        py = center[1] + radius * np.sin(angle)
        vx = -radius * angular_rate * np.sin(angle)
        vy = radius * angular_rate * np.cos(angle)
        truth = GroundTruth([px, py, vx, vy])
        timestamp = t0 + k * step_us

        if k % 2 == 0:
            z = np.array([px, py]) + rng.normal(0.0, laser_std)
            measurement = LaserMeasurement(z, timestamp)
        else:
            rho, phi = cartesian_to_polar(px, py)
            rho_dot = (px * vx + py * vy) / rho
            z = np.array([rho, phi, rho_dot]) + rng.normal(0.0, radar_std)
            z[1] = normalize_angle(z[1])
            measurement = RadarMeasurement(z, timestamp)

        records.append((measurement, truth))

    return records


def run_fusion_example():
    """Run complete fusion example with synthetic data."""
    print("Generating synthetic laser/radar data...")
    records = generate_synthetic_measurements(num_steps=400)

    result = run_fusion(records)

    print(f"Processed {len(result.estimates)} measurements "
          f"({len(result.rejected)} rejected)")
    print_rmse(result.rmse, label="Synthetic circle")

    for sensor_type, values in result.nis.items():
        if values:
            dim_z = 2 if sensor_type is SensorType.LASER else 3
            ratio = nis_consistency(values, dim_z)
            print(f"  {sensor_type.name} NIS within 95% bound: {ratio:.2%}")

    return result


if __name__ == "__main__":
    run_fusion_example()
