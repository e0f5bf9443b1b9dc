"""
Command-line interface for the camera-tracking drift check.

Usage:
    orrery-track config.yaml [--ticks N] [--dt DT] [--output-dir OUTPUT_DIR] [--plot]
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import TrackerConfig
from .simulation import run_drift_comparison, save_history_csv, save_report


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def main(argv=None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description='Track a synthetic orbit with both precision backends and report camera drift',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Run 1000 ticks with default output
    orrery-track config.yaml

    # Longer run with a drift plot
    orrery-track config.yaml --ticks 20000 --plot -o ./results

    # Verbose output (per-tick backend deltas when compare_backends is set)
    orrery-track config.yaml -v
'''
    )

    parser.add_argument(
        'config',
        type=str,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--ticks', '-n',
        type=int,
        default=1000,
        help='Number of ticks to simulate (default: 1000)'
    )

    parser.add_argument(
        '--dt',
        type=float,
        default=1.0,
        help='Simulation time per tick (default: 1.0)'
    )

    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default=None,
        help='Output directory for results (default: next to config file)'
    )

    parser.add_argument(
        '--plot',
        action='store_true',
        help='Write a drift plot (drift.png)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = TrackerConfig.from_yaml(args.config)

        if args.output_dir:
            output_dir = Path(args.output_dir)
        else:
            output_dir = Path(args.config).parent / 'tracking_results'

        output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Output directory: {output_dir}")

        report = run_drift_comparison(config, ticks=args.ticks, dt=args.dt, progress=True)

        save_report(report, str(output_dir / 'drift_report.json'))
        save_history_csv(report, str(output_dir / 'drift_history.csv'))

        if args.plot:
            from .plotting import plot_drift
            plot_drift(report, str(output_dir / 'drift.png'))

        print("\n" + "=" * 60)
        print("DRIFT SUMMARY")
        print("=" * 60)
        print(f"Tracked body:           {report.body_id}")
        print(f"Ticks:                  {report.ticks} (dt={report.dt})")
        print(f"High-precision digits:  {report.digits}")
        print(f"Tick-1 agreement:       {report.first_tick_agreement:.3e}")
        for name, history in report.histories.items():
            print(f"\n{name}:")
            print(f"  Final error:          {history.final_error:.3e}")
            print(f"  Max error:            {history.max_error:.3e}")
            print(f"  Degenerate ticks:     {history.degenerate_ticks}")
        print(f"\nThreshold:              {report.threshold:.1e}")
        print("=" * 60)

        if report.passed:
            logger.info("Drift check PASSED")
            return 0
        logger.error("Drift check FAILED (error above threshold)")
        return 1

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
