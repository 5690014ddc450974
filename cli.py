import os
import sys
import logging
import argparse

# Add the current directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from configuration import (
    DEFAULT_PROPERTIES_FILE, DEFAULT_METRICS_PORT, DEFAULT_PLOTS_DIR, DEFAULT_LOG_LEVEL,
    DEFAULT_CSV_FILENAME, PROP_MAX_THREADS, PROP_NUM_SKIERS, PROP_NUM_SKI_LIFTS, PROP_SKI_DAY,
    PROP_RESORT, PROP_HOST_ADDRESS, PROP_CSV_FILENAME,
)
from common.errors import ConfigurationError, CoordinationError

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(level: str = DEFAULT_LOG_LEVEL, log_file: str = None):
    """Set up root logging once; an already configured root only gets its level changed."""
    if not logging.root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file)
    else:
        logging.root.setLevel(level)


class SkierLoadTestCLI:
    """Simple CLI interface for the skier API load test."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description='Skier API Load Test CLI',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Run warm-up, peak and cooldown with settings from a properties file
  python cli.py run --properties arguments.properties

  # Override individual properties and expose live metrics
  python cli.py run --max-threads 64 --host-address http://localhost:8080/api --metrics-port 9100

  # Generate plots from a finished run
  python cli.py visualize --csv-prefix request-stats --output-dir plots
            """
        )
        parser.add_argument('--log-level', type=str.upper, default=DEFAULT_LOG_LEVEL,
                            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                            help=f'Logging level (default: {DEFAULT_LOG_LEVEL})')
        parser.add_argument('--log-file', type=str, default=None,
                            help='Write logs to this file instead of stderr')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Run command
        run_parser = subparsers.add_parser('run', help='Run the three-phase load test')
        run_parser.add_argument('--properties', type=str, default=DEFAULT_PROPERTIES_FILE,
                                help=f'Properties file with run settings (default: {DEFAULT_PROPERTIES_FILE})')
        run_parser.add_argument('--max-threads', type=int, dest=PROP_MAX_THREADS,
                                help='Peak phase thread count (min 4)')
        run_parser.add_argument('--num-skiers', type=int, dest=PROP_NUM_SKIERS,
                                help='Skier population, 1-50000')
        run_parser.add_argument('--num-ski-lifts', type=int, dest=PROP_NUM_SKI_LIFTS,
                                help='Number of ski lifts, 5-60')
        run_parser.add_argument('--ski-day', type=int, dest=PROP_SKI_DAY,
                                help='Day of the season, 1-366')
        run_parser.add_argument('--resort', type=str, dest=PROP_RESORT,
                                help='Resort id sent with every request')
        run_parser.add_argument('--host-address', type=str, dest=PROP_HOST_ADDRESS,
                                help='Base URL of the skier API')
        run_parser.add_argument('--csv-filename', type=str, dest=PROP_CSV_FILENAME,
                                help=f'Output file prefix (default: {DEFAULT_CSV_FILENAME})')
        run_parser.add_argument('--metrics-port', type=int, default=DEFAULT_METRICS_PORT,
                                help=f'Prometheus metrics port (0 = disabled, default: {DEFAULT_METRICS_PORT})')

        # Visualize command
        visualize_parser = subparsers.add_parser('visualize', help='Generate plots from run results')
        visualize_parser.add_argument('--csv-prefix', type=str, default=DEFAULT_CSV_FILENAME,
                                      help=f'Prefix of the run CSV files (default: {DEFAULT_CSV_FILENAME})')
        visualize_parser.add_argument('--output-dir', type=str, default=DEFAULT_PLOTS_DIR,
                                      help=f'Output directory for generated plots (default: {DEFAULT_PLOTS_DIR})')

        return parser

    def run_load_test(self, args):
        """Run the load test and print the execution report."""
        from common.arguments import Arguments
        from common.host_monitor import HostMonitor
        from persistence.prom import PrometheusExporter
        from runner.benchmark import BenchmarkRunner

        overrides = {
            name: getattr(args, name)
            for name in (PROP_MAX_THREADS, PROP_NUM_SKIERS, PROP_NUM_SKI_LIFTS, PROP_SKI_DAY,
                         PROP_RESORT, PROP_HOST_ADDRESS, PROP_CSV_FILENAME)
        }

        try:
            arguments = Arguments.from_properties_file(args.properties, overrides)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        try:
            logger.info("=== Skier API Load Test ===")
            exporter = PrometheusExporter(args.metrics_port) if args.metrics_port else None
            runner = BenchmarkRunner(arguments, exporter=exporter, host_monitor=HostMonitor())
            result = runner.run()
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1
        except CoordinationError as e:
            logger.error(f"Load test failed: {e}")
            return 1

        print(result.report)
        logger.info(f"Request records written to {result.csv_path}")
        if result.histogram_path:
            logger.info(f"Request start histogram written to {result.histogram_path}")
        return 0

    def run_visualize(self, args):
        """Run the visualization phase."""
        from runner.visualiser import BenchmarkVisualizer

        logger.info("=== Visualization Phase ===")

        visualizer = BenchmarkVisualizer(args.csv_prefix, args.output_dir)
        plots = visualizer.create_all_plots()

        if plots:
            logger.info(f"Successfully created {len(plots)} plots in {args.output_dir}")
            for plot in plots:
                logger.info(f"  - {plot}")
            return 0
        else:
            logger.error("No plots were created")
            return 1

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)
        configure_logging(parsed_args.log_level, parsed_args.log_file)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            if parsed_args.command == 'run':
                return self.run_load_test(parsed_args)
            elif parsed_args.command == 'visualize':
                return self.run_visualize(parsed_args)
            else:
                logger.error(f"Unknown command: {parsed_args.command}")
                return 1

        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1
        except Exception as e:
            logger.exception(f"Unexpected error: {e}")
            return 1


def main():
    """Main entry point."""
    cli = SkierLoadTestCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
