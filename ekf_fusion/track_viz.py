import os
import matplotlib.pyplot as plt
import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence, Union
from ekf_fusion.data_structures import Estimate, GroundTruth, Measurement, SensorType


def prepare_output_directories(output_dir: Union[str, Path]):
    """Create the output directory if needed."""
    os.makedirs(output_dir, exist_ok=True)


def plot_trajectory(
        estimates: Sequence[Estimate],
        measurements: Sequence[Measurement],
        ground_truth: Optional[Sequence[Optional[GroundTruth]]],
        save_path: Union[str, Path],
        title: str = 'Laser/Radar Fusion'
) -> Path:
    """
    Plot the fused trajectory with the raw measurements and ground truth.

    Laser measurements are drawn as circles, radar measurements (converted
    to Cartesian) as triangles.
    """
    save_path = Path(save_path)
    prepare_output_directories(save_path.parent)

    plt.figure(figsize=(8, 6))
    ax = plt.gca()

    laser = np.array([m.position for m in measurements if m.sensor_type is SensorType.LASER])
    radar = np.array([m.position for m in measurements if m.sensor_type is SensorType.RADAR])
    if laser.size:
        ax.scatter(laser[:, 0], laser[:, 1], s=12, marker='o', c='tab:green',
                   alpha=0.6, label='Laser')
    if radar.size:
        ax.scatter(radar[:, 0], radar[:, 1], s=12, marker='^', c='tab:orange',
                   alpha=0.6, label='Radar')

    if ground_truth is not None:
        gt = np.array([g.state for g in ground_truth if g is not None])
        if gt.size:
            ax.plot(gt[:, 0], gt[:, 1], 'k--', linewidth=1.0, label='Ground truth')

    if estimates:
        est = np.array([e.state for e in estimates])
        ax.plot(est[:, 0], est[:, 1], '-', color='tab:blue', linewidth=1.5, label='EKF estimate')

    ax.set_xlabel('x (m)')
    ax.set_ylabel('y (m)')
    ax.set_title(title)
    ax.set_aspect('equal', adjustable='datalim')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='best')

    plt.tight_layout()
    plt.savefig(save_path, dpi=150)
    plt.close()
    return save_path


def plot_covariance_trace(estimates: List[Estimate], save_path: Union[str, Path]) -> Path:
    """Plot position and velocity variance over time."""
    save_path = Path(save_path)
    prepare_output_directories(save_path.parent)

    t0 = estimates[0].timestamp
    times = np.array([(e.timestamp - t0) / 1e6 for e in estimates])
    var = np.array([np.diag(e.covariance) for e in estimates])

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(8, 6), sharex=True)
    ax1.plot(times, var[:, 0], label='var(px)')
    ax1.plot(times, var[:, 1], label='var(py)')
    ax1.set_ylabel('m^2')
    ax1.set_yscale('log')
    ax1.legend()
    ax2.plot(times, var[:, 2], label='var(vx)')
    ax2.plot(times, var[:, 3], label='var(vy)')
    ax2.set_ylabel('(m/s)^2')
    ax2.set_yscale('log')
    ax2.set_xlabel('Time (s)')
    ax2.legend()

    plt.tight_layout()
    plt.savefig(save_path, dpi=150)
    plt.close(fig)
    return save_path
