#!/usr/bin/env python3
"""
===============================================================================
SWING-TWIST DECOMPOSITION - MAIN ENTRY POINT
===============================================================================
Verifies the swing-twist rotation decomposition r = p * q on the canonical
special cases and on a campaign of uniformly random rotations and
directions, printing a textual report.

USAGE:
    python main.py                     # Canonical cases + 1000 random trials
    python main.py --trials 50         # Fewer random trials
    python main.py --verbose           # Print every trial's report block
    python main.py --csv out/run.csv   # Export per-trial results
    python main.py --plot out/run.png  # Save summary figure

EXIT STATUS:
    0  every trial passed
    1  a verification failed or the configuration could not be loaded
    2  command-line usage error

DEPENDENCIES:
    numpy, scipy, pandas, matplotlib, pyyaml
===============================================================================
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

import yaml

# ---------------------------------------------------------------------------
# Path setup: ensure all project modules are importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from verification.harness import VerificationConfig, VerificationHarness

DEFAULT_CONFIG_PATH = PROJECT_ROOT.parent.parent / 'config' / 'verification_config.yaml'

logger = logging.getLogger('SWING_TWIST_MAIN')


def setup_logging(level: str = 'WARNING') -> None:
    """Configure root logging on stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def load_config(config_path: Optional[str] = None) -> VerificationConfig:
    """
    Load verification settings from a YAML file.

    Args:
        config_path: Path to YAML config. Defaults to
            config/verification_config.yaml; if that default is absent the
            built-in defaults are used.

    Returns:
        VerificationConfig built from the file's 'verification' mapping.

    Raises:
        FileNotFoundError: An explicitly given path does not exist.
        ValueError: The file holds unknown or invalid settings.
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.info("No configuration file found, using defaults")
            return VerificationConfig()
        config_path = str(DEFAULT_CONFIG_PATH)

    logger.info(f"Loading configuration from: {config_path}")
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}
    return VerificationConfig.from_dict(raw.get('verification', {}))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Swing-twist rotation decomposition verification',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                      Default campaign
  python main.py --trials 10000       Larger random campaign
  python main.py --keep-going         Run every group even after a failure
        """
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to verification config YAML')
    parser.add_argument('--trials', type=int, default=None,
                        help='Number of random trials')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed of the campaign')
    parser.add_argument('--verbose', action='store_true',
                        help='Print the report block of every trial')
    parser.add_argument('--keep-going', action='store_true',
                        help='Do not stop at the first failing group')
    parser.add_argument('--csv', type=str, default=None,
                        help='Write per-trial results to this CSV file')
    parser.add_argument('--plot', type=str, default=None,
                        help='Save a summary figure to this path')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse command line arguments, run the verification campaign and
    return the process exit status.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    # Command line overrides the file
    if args.trials is not None:
        if args.trials < 0:
            logger.error(f"--trials must be >= 0, got {args.trials}")
            return 1
        config.num_trials = args.trials
    if args.seed is not None:
        config.seed = args.seed
    if args.verbose:
        config.verbose = True
    if args.keep_going:
        config.stop_on_failure = False
    if args.csv is not None:
        config.csv_path = args.csv
    if args.plot is not None:
        config.plot_path = args.plot

    harness = VerificationHarness(config)
    ok = harness.run()

    summary = harness.summary()
    logger.info(f"Trials: {summary['total']}, passed: {summary['passed']}, "
                f"failed: {summary['failed']}")
    for key, value in summary.get('worst', {}).items():
        logger.info(f"  worst {key}: {value:.3e}")

    if config.csv_path:
        harness.save_csv(config.csv_path)
    if config.plot_path and not harness.results.empty:
        from verification.plots import plot_angle_summary
        plot_angle_summary(harness.results, config.plot_path, config.tolerances)
        logger.info(f"Summary figure saved to {config.plot_path}")

    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
