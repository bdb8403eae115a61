import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from ekf_fusion.data_loader import OUTPUT_COLUMNS, load_measurements, parse_record, write_estimates
from ekf_fusion.data_structures import LaserMeasurement, RadarMeasurement
from ekf_fusion.exceptions import MeasurementShapeError
from ekf_fusion.fusion_ekf import run_fusion
from ekf_fusion.paths_internal import DATA_DIR

SAMPLE_FILE = DATA_DIR / 'sample-laser-radar-measurement-data.txt'


def test_load_sample_file():
    records = load_measurements(SAMPLE_FILE)

    assert len(records) == 10
    first, first_gt = records[0]
    assert isinstance(first, LaserMeasurement)
    assert first.timestamp == 1477010443000000
    assert_allclose(first.raw_measurements, [3.122427e-01, 5.803398e-01])
    assert_allclose(first_gt.state, [0.6, 0.6, 2.199937, 0.0])

    second, _ = records[1]
    assert isinstance(second, RadarMeasurement)
    assert second.timestamp == 1477010443050000
    assert second.rho == pytest.approx(1.014892)


def test_records_without_ground_truth(tmp_path):
    path = tmp_path / 'no_gt.txt'
    path.write_text("L 1.0 2.0 100\nR 2.0 0.5 0.1 200\n")

    records = load_measurements(path)

    assert [gt for _, gt in records] == [None, None]
    assert records[1][0].timestamp == 200


@pytest.mark.parametrize("line", [
    "R 1.0 0.5 1477010443000000\n",
    "L 1.0 2.0 3.0 1477010443000000\n",
    "X 1.0 2.0 1477010443000000\n",
    "L 1.0 abc 1477010443000000\n",
])
def test_malformed_record_fails_fast(tmp_path, line):
    path = tmp_path / 'bad.txt'
    path.write_text("L 1.0 2.0 100\n" + line)

    with pytest.raises(ValueError):
        load_measurements(path)


def test_wrong_radar_length_reports_line(tmp_path):
    path = tmp_path / 'bad.txt'
    path.write_text("L 1.0 2.0 100\nR 1.0 0.5 200\n")

    with pytest.raises(MeasurementShapeError, match="Line 2"):
        load_measurements(path)


def test_error_reports_file_line_past_comments(tmp_path):
    path = tmp_path / 'commented.txt'
    path.write_text("# header\n\nL 1.0 2.0 100  # first\nR 1.0 0.5 200\n")

    with pytest.raises(MeasurementShapeError, match="Line 4"):
        load_measurements(path)


OVERLONG = "L 1.0 2.0 100\nR 1 0.5 0.1 200 1 2 3 4 5 6\nL 1.1 2.0 300\n"


def test_overlong_record_fails_fast(tmp_path):
    path = tmp_path / 'overlong.txt'
    path.write_text(OVERLONG)

    with pytest.raises(MeasurementShapeError, match="Line 2"):
        load_measurements(path)


def test_overlong_record_is_skipped(tmp_path):
    path = tmp_path / 'overlong.txt'
    path.write_text(OVERLONG)

    records = load_measurements(path, skip_invalid=True)

    assert [m.timestamp for m, _ in records] == [100, 300]


def test_non_finite_timestamp_rejected(tmp_path):
    path = tmp_path / 'bad_ts.txt'
    path.write_text("L 1.0 2.0 nan\n")

    with pytest.raises(MeasurementShapeError, match="timestamp"):
        load_measurements(path)


def test_skip_invalid_records(tmp_path):
    path = tmp_path / 'mixed.txt'
    path.write_text("L 1.0 2.0 100\nR 1.0 0.5 200\nL 1.1 2.0 300\n")

    records = load_measurements(path, skip_invalid=True)

    assert [m.timestamp for m, _ in records] == [100, 300]


def test_empty_file(tmp_path):
    path = tmp_path / 'empty.txt'
    path.write_text("")
    assert load_measurements(path) == []


def test_parse_record_with_ground_truth():
    measurement, truth = parse_record('R', [1.0, 0.1, 0.2, 500, 1.0, 0.1, 0.5, 0.0], 1)
    assert isinstance(measurement, RadarMeasurement)
    assert measurement.timestamp == 500
    assert_allclose(truth.state, [1.0, 0.1, 0.5, 0.0])


def test_write_estimates(tmp_path):
    result = run_fusion(load_measurements(SAMPLE_FILE))
    out = tmp_path / 'estimates.txt'

    write_estimates(out, result.estimates, result.measurements, result.ground_truth)

    df = pd.read_csv(out, sep='\t')
    assert list(df.columns) == OUTPUT_COLUMNS
    assert len(df) == 10
    assert df['est_px'].iloc[0] == pytest.approx(3.122427e-01, abs=1e-6)
    # Radar rows carry the measurement converted to Cartesian coordinates
    rho, phi = 1.014892, 5.543292e-01
    assert df['meas_px'].iloc[1] == pytest.approx(rho * np.cos(phi), abs=1e-5)
    assert df['gt_vx'].iloc[2] == pytest.approx(5.199429, abs=1e-6)
