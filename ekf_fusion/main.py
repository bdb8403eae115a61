# main.py

"""Run the laser/radar EKF over a measurement log"""

import argparse
import logging
import sys
from pathlib import Path

from ekf_fusion.config import FusionConfig, load_config
from ekf_fusion.data_loader import load_measurements, write_estimates
from ekf_fusion.exceptions import FusionError
from ekf_fusion.fusion_ekf import run_fusion
from ekf_fusion.metrics import print_rmse
from ekf_fusion.paths_internal import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Fuse laser and radar measurements with an extended Kalman filter.')
    parser.add_argument('input', type=Path, help='Measurement log (L/R records).')
    parser.add_argument('output', type=Path, help='Where to write the estimates (tab separated).')
    parser.add_argument('--config', type=Path, default=None,
                        help=f'YAML noise profile (default: {DEFAULT_CONFIG.name} if present).')
    parser.add_argument('--plot', type=Path, default=None, help='Save a trajectory plot to this PNG file.')
    parser.add_argument('--skip-invalid', action='store_true',
                        help='Skip malformed or rejected records instead of stopping.')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(format="%(levelname)s: %(message)s", level=getattr(logging, args.log_level))

    if args.config is not None:
        config = load_config(args.config)
    elif DEFAULT_CONFIG.exists():
        config = load_config(DEFAULT_CONFIG)
    else:
        config = FusionConfig()

    try:
        records = load_measurements(args.input, skip_invalid=args.skip_invalid)
        result = run_fusion(records, config=config, skip_invalid=args.skip_invalid)
    except FusionError as e:
        logger.error("Failed to process %s: %s", args.input, e)
        return 1

    write_estimates(args.output, result.estimates, result.measurements, result.ground_truth)

    if result.rmse is not None:
        print_rmse(result.rmse, label=args.input.name)

    if args.plot is not None:
        from ekf_fusion.track_viz import plot_trajectory
        plot_trajectory(result.estimates, result.measurements, result.ground_truth, args.plot)
        logger.info("Saved trajectory plot to %s", args.plot)

    return 0


if __name__ == '__main__':
    sys.exit(main())
