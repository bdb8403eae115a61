"""
Accuracy metrics for the fused state estimates.
Compares estimated states against ground truth with per-component RMSE and
checks filter consistency with the normalized innovation squared (NIS).
"""
import numpy as np
from typing import Optional, Sequence
from scipy.stats import chi2

from ekf_fusion.data_structures import RMSEResult


def calculate_rmse(estimations: Sequence[np.ndarray],
                   ground_truth: Sequence[np.ndarray]) -> RMSEResult:
    """
    Root-mean-square error for each state component.

    Args:
        estimations: Estimated state vectors [px, py, vx, vy]
        ground_truth: True state vectors, parallel to estimations

    Returns:
        RMSEResult with the per-component error
    """
    if len(estimations) == 0:
        raise ValueError("Cannot compute RMSE of an empty estimation sequence")
    if len(estimations) != len(ground_truth):
        raise ValueError(
            f"Estimations ({len(estimations)}) and ground truth ({len(ground_truth)}) differ in length"
        )

    est = np.asarray(estimations, dtype=float)
    gt = np.asarray(ground_truth, dtype=float)
    if est.shape != gt.shape:
        raise ValueError(f"Shape mismatch: {est.shape} vs {gt.shape}")

    residuals = est - gt
    rmse = np.sqrt(np.mean(residuals ** 2, axis=0))

    return RMSEResult(rmse=rmse, num_samples=len(est))


class RMSETracker:
    """
    Running RMSE accumulator, updated one estimate at a time.
    """

    def __init__(self, dim: int = 4):
        self.dim = dim
        self.reset()

    def add(self, estimate: np.ndarray, truth: np.ndarray):
        """Add one estimate/ground truth pair."""
        residual = np.asarray(estimate, dtype=float).reshape(-1) - np.asarray(truth, dtype=float).reshape(-1)
        if residual.shape[0] != self.dim:
            raise ValueError(f"Expected {self.dim} components, got {residual.shape[0]}")
        self._sum_squares += residual ** 2
        self.num_samples += 1

    @property
    def rmse(self) -> Optional[RMSEResult]:
        """Current RMSE, or None before any sample was added."""
        if self.num_samples == 0:
            return None
        return RMSEResult(rmse=np.sqrt(self._sum_squares / self.num_samples),
                          num_samples=self.num_samples)

    def reset(self):
        self._sum_squares = np.zeros(self.dim)
        self.num_samples = 0


def nis_consistency(nis_values: Sequence[float], dim_z: int, confidence: float = 0.95) -> float:
    """
    Fraction of NIS values below the chi-square bound for dim_z degrees of freedom.

    For a consistent filter this fraction is close to the confidence level.

    Args:
        nis_values: Normalized innovation squared of each update
        dim_z: Measurement dimension (2 for laser, 3 for radar)
        confidence: Chi-square confidence level

    Returns:
        Fraction of values within the bound
    """
    if len(nis_values) == 0:
        raise ValueError("No NIS values provided")
    bound = chi2.ppf(confidence, df=dim_z)
    return float(np.mean(np.asarray(nis_values, dtype=float) <= bound))


def print_rmse(result: RMSEResult, label: Optional[str] = None):
    """
    Print RMSE in a readable format.

    Args:
        result: RMSEResult to print
        label: Optional header label
    """
    header = f"{label} RMSE:" if label is not None else "RMSE:"
    print(f"\n{header}")
    print(f"  px: {result.px:.4f} m")
    print(f"  py: {result.py:.4f} m")
    print(f"  vx: {result.vx:.4f} m/s")
    print(f"  vy: {result.vy:.4f} m/s")
    print(f"  Samples: {result.num_samples}")
