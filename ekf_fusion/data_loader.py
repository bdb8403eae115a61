# data_loader.py  Reads laser/radar measurement logs and writes fused estimates.
"""
Input log format, one record per line (tab or space separated):

    L  px   py    timestamp  [gt_px gt_py gt_vx gt_vy]
    R  rho  phi  rho_dot  timestamp  [gt_px gt_py gt_vx gt_vy]

Blank lines and text after '#' are ignored. Errors name the file line.
"""
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from ekf_fusion.data_structures import (
    Estimate,
    GroundTruth,
    Measurement,
    SensorType,
    make_measurement,
)
from ekf_fusion.exceptions import MeasurementShapeError

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    'est_px', 'est_py', 'est_vx', 'est_vy',
    'meas_px', 'meas_py',
    'gt_px', 'gt_py', 'gt_vx', 'gt_vy',
]


def parse_record(tag: str, values: Sequence[float], line_no: int) -> Tuple[Measurement, Optional[GroundTruth]]:
    """
    Build a measurement (and optional ground truth) from one log record.

    Args:
        tag: Sensor tag, 'L' or 'R'
        values: Numeric fields following the tag
        line_no: File line number used in error messages

    Returns:
        Tuple of (measurement, ground_truth or None)
    """
    try:
        sensor_type = SensorType(tag)
    except ValueError:
        raise MeasurementShapeError(f"Line {line_no}: unknown sensor tag '{tag}'") from None

    dim_z = 2 if sensor_type is SensorType.LASER else 3
    values = list(values)

    if len(values) not in (dim_z + 1, dim_z + 5):
        raise MeasurementShapeError(
            f"Line {line_no}: {sensor_type.name} record needs {dim_z} measurement values, "
            f"a timestamp and optionally 4 ground truth values; got {len(values)} fields"
        )

    if not np.isfinite(values[dim_z]):
        raise MeasurementShapeError(f"Line {line_no}: timestamp must be finite, got {values[dim_z]}")

    raw = values[:dim_z]
    timestamp = int(round(values[dim_z]))
    try:
        measurement = make_measurement(sensor_type, raw, timestamp)
    except MeasurementShapeError as e:
        raise MeasurementShapeError(f"Line {line_no}: {e}") from None

    ground_truth = None
    if len(values) == dim_z + 5:
        ground_truth = GroundTruth(values[dim_z + 1:])

    return measurement, ground_truth


def read_fields(path: Union[str, Path]) -> pd.Series:
    """
    Split a log file into whitespace separated fields.

    Returns:
        Series of field lists indexed by 1-based file line number, without
        blank or comment-only lines
    """
    lines = Path(path).read_text().splitlines()
    fields = (pd.Series(lines, index=range(1, len(lines) + 1), dtype=object)
              .str.replace(r'#.*$', '', regex=True)
              .str.split())
    return fields[fields.str.len() > 0]


def load_measurements(path: Union[str, Path],
                      skip_invalid: bool = False) -> List[Tuple[Measurement, Optional[GroundTruth]]]:
    """
    Load a measurement log.

    Args:
        path: Path to the log file
        skip_invalid: Log and skip malformed records instead of raising

    Returns:
        List of (measurement, ground_truth or None) in file order
    """
    records = []
    for line_no, tokens in read_fields(path).items():
        try:
            try:
                values = [float(v) for v in tokens[1:]]
            except ValueError:
                raise MeasurementShapeError(f"Line {line_no}: non-numeric field in {tokens}") from None
            records.append(parse_record(tokens[0], values, line_no))
        except MeasurementShapeError as e:
            if not skip_invalid:
                raise
            logger.warning("Skipping invalid record: %s", e)

    logger.info("Loaded %d records from %s", len(records), path)
    return records


def measurement_position(measurement: Measurement) -> Tuple[float, float]:
    """Measured position in Cartesian coordinates."""
    return tuple(float(v) for v in measurement.position)


def estimates_to_dataframe(estimates: Sequence[Estimate],
                           measurements: Sequence[Measurement],
                           ground_truth: Optional[Sequence[Optional[GroundTruth]]] = None) -> pd.DataFrame:
    """
    Tabulate estimates next to their measurements and ground truth.

    Args:
        estimates: Estimates, one per processed measurement
        measurements: Measurements parallel to estimates
        ground_truth: Optional ground truth parallel to estimates

    Returns:
        DataFrame with OUTPUT_COLUMNS
    """
    if len(estimates) != len(measurements):
        raise ValueError("estimates and measurements must have the same length")
    if ground_truth is None:
        ground_truth = [None] * len(estimates)

    rows = []
    for est, meas, gt in zip(estimates, measurements, ground_truth):
        gt_state = gt.state if gt is not None else np.full(4, np.nan)
        rows.append([*est.state, *measurement_position(meas), *gt_state])

    return pd.DataFrame(rows, columns=OUTPUT_COLUMNS)


def write_estimates(path: Union[str, Path],
                    estimates: Sequence[Estimate],
                    measurements: Sequence[Measurement],
                    ground_truth: Optional[Sequence[Optional[GroundTruth]]] = None):
    """Write estimates to a tab-separated file."""
    df = estimates_to_dataframe(estimates, measurements, ground_truth)
    df.to_csv(path, sep='\t', index=False, float_format='%.6f')
    logger.info("Wrote %d estimates to %s", len(df), path)
